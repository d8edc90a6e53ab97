"""Shared types for module handlers.

Every orchestration module receives a ``ModuleCommonParameter`` plus its
own configuration dataclass, and returns either a status string or a
``ModuleHandlerReturnType`` envelope.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ModuleName(str, Enum):
    """Module names used in dry-run output and handler results."""

    AWS_ORGANIZATIONS = "aws-organizations"
    CONTROL_TOWER = "aws-control-tower"
    CONTROL_TOWER_LANDING_ZONE = "aws-control-tower-landing-zone"
    AMAZON_EC2 = "amazon-ec2"
    AWS_SSM = "aws-ssm"
    AWS_IAM = "aws-iam"
    AWS_GUARDDUTY = "aws-guardduty"
    AMAZON_MACIE = "amazon-macie"
    AWS_SECURITY_HUB = "aws-security-hub"
    AMAZON_DETECTIVE = "amazon-detective"
    AWS_LAMBDA = "aws-lambda"
    SERVICE_QUOTAS = "service-quotas"


class ModuleStatus(str, Enum):
    """Outcome of a module handler call."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    NO_CHANGE = "NO_CHANGE"


@dataclass(frozen=True)
class AssumeRoleCredentials:
    """Short-lived credentials returned by STS AssumeRole."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: Optional[datetime] = None


@dataclass(frozen=True)
class ModuleCommonParameter:
    """Common fields of every handler invocation.

    Created by the caller per invocation and never mutated by a module.
    """

    operation: str
    partition: str
    region: str
    account: Optional[str] = None
    solution_id: Optional[str] = None
    dry_run: bool = False
    module_name: Optional[str] = None
    global_region: Optional[str] = None
    use_existing_role: bool = False
    credentials: Optional[AssumeRoleCredentials] = None


@dataclass(frozen=True)
class ModuleDefaultParameter:
    """Common parameter values after defaults are applied."""

    module_name: str
    global_region: str
    use_existing_role: bool
    dry_run: bool


@dataclass
class ModuleHandlerReturnType:
    """Uniform result envelope for module handlers."""

    status: ModuleStatus
    message: str
    module_name: str
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the result for JSON output."""
        return {
            "status": self.status.value,
            "message": self.message,
            "moduleName": self.module_name,
            "data": self.data,
        }


HandlerResult = Union[str, ModuleHandlerReturnType]


@dataclass(frozen=True)
class Tag:
    """AWS resource tag."""

    key: str
    value: str


def tags_to_aws(tags: Optional[List[Tag]]) -> List[Dict[str, str]]:
    """Convert configuration tags to the AWS ``[{'Key', 'Value'}]`` shape."""
    return [{"Key": tag.key, "Value": tag.value} for tag in tags or []]
