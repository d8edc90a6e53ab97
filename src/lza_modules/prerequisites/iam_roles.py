"""IAM service roles required by AWS Control Tower.

Control Tower expects four service roles in the management account before
``CreateLandingZone`` is called. They are created only when none of them
exists yet.
"""

import json
import logging
from typing import Any, Dict, List

from botocore.exceptions import ClientError

from ..core.aws_client import AWSClientManager
from ..core.exceptions import InvalidInputError, ServiceException
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)

ROLE_PATH = "/service-role/"
ROLE_WAITER_CONFIG = {"Delay": 5, "MaxAttempts": 60}


class IAMRolesManager:
    """Creates the Control Tower service roles.

    Each role is described by its trusted service, an optional inline policy
    and an optional managed policy; ``{partition}`` placeholders are filled
    in at creation time.
    """

    CONTROL_TOWER_ROLES: Dict[str, Dict[str, Any]] = {
        "AWSControlTowerAdmin": {
            "trust_service": "controltower.amazonaws.com",
            "inline_policy_name": "AWSControlTowerAdminPolicy",
            "inline_policy": [
                {"Action": "ec2:DescribeAvailabilityZones", "Resource": "*", "Effect": "Allow"},
            ],
            "managed_policy": "arn:{partition}:iam::aws:policy/service-role/AWSControlTowerServiceRolePolicy",
        },
        "AWSControlTowerCloudTrailRole": {
            "trust_service": "cloudtrail.amazonaws.com",
            "inline_policy_name": "AWSControlTowerCloudTrailRolePolicy",
            "inline_policy": [
                {
                    "Action": "logs:CreateLogStream",
                    "Resource": "arn:{partition}:logs:*:*:log-group:aws-controltower/CloudTrailLogs:*",
                    "Effect": "Allow",
                },
                {
                    "Action": "logs:PutLogEvents",
                    "Resource": "arn:{partition}:logs:*:*:log-group:aws-controltower/CloudTrailLogs:*",
                    "Effect": "Allow",
                },
            ],
        },
        "AWSControlTowerStackSetRole": {
            "trust_service": "cloudformation.amazonaws.com",
            "inline_policy_name": "AWSControlTowerStackSetRolePolicy",
            "inline_policy": [
                {
                    "Action": ["sts:AssumeRole"],
                    "Resource": ["arn:{partition}:iam::*:role/AWSControlTowerExecution"],
                    "Effect": "Allow",
                },
            ],
        },
        "AWSControlTowerConfigAggregatorRoleForOrganizations": {
            "trust_service": "config.amazonaws.com",
            "managed_policy": "arn:{partition}:iam::aws:policy/service-role/AWSConfigRoleForOrganizations",
        },
    }

    def __init__(self, aws_client: AWSClientManager, partition: str) -> None:
        """Initialize IAM roles manager.

        Args:
            aws_client: Client manager of the management account
            partition: AWS partition used in policy ARNs
        """
        self.aws_client = aws_client
        self.partition = partition

    def _get_client(self) -> Any:
        return self.aws_client.get_client("iam")

    def role_exists(self, role_name: str) -> bool:
        """Check if an IAM role exists.

        Raises:
            ServiceException: When GetRole returns no Role object
        """
        try:
            response = throttling_back_off(self._get_client().get_role, RoleName=role_name)
        except ClientError as e:
            if e.response["Error"]["Code"] == "NoSuchEntity":
                return False
            raise
        if not response.get("Role"):
            raise ServiceException("GetRole api didn't return Role object")
        return response["Role"].get("RoleName") == role_name

    def get_existing_roles(self) -> List[str]:
        """List which of the Control Tower roles already exist."""
        return [role_name for role_name in self.CONTROL_TOWER_ROLES if self.role_exists(role_name)]

    def create_control_tower_roles(self) -> None:
        """Create every Control Tower role.

        Raises:
            InvalidInputError: When any of the roles already exists
        """
        existing_roles = self.get_existing_roles()
        if existing_roles:
            raise InvalidInputError(
                f'There are existing AWS Control Tower Landing Zone roles "{",".join(existing_roles)}", '
                "the solution cannot deploy AWS Control Tower Landing Zone"
            )

        for role_name, definition in self.CONTROL_TOWER_ROLES.items():
            self._create_role(role_name, definition)

    def _create_role(self, role_name: str, definition: Dict[str, Any]) -> None:
        client = self._get_client()
        logger.info(f"Creating AWS Control Tower Landing Zone role {role_name}.")

        trust_policy = {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"Service": [definition["trust_service"]]},
                    "Action": "sts:AssumeRole",
                }
            ],
        }
        throttling_back_off(
            client.create_role,
            RoleName=role_name,
            Path=ROLE_PATH,
            AssumeRolePolicyDocument=json.dumps(trust_policy),
        )
        client.get_waiter("role_exists").wait(RoleName=role_name, WaiterConfig=ROLE_WAITER_CONFIG)

        if definition.get("inline_policy"):
            policy = {"Version": "2012-10-17", "Statement": self._fill_partition(definition["inline_policy"])}
            throttling_back_off(
                client.put_role_policy,
                RoleName=role_name,
                PolicyName=definition["inline_policy_name"],
                PolicyDocument=json.dumps(policy),
            )

        if definition.get("managed_policy"):
            throttling_back_off(
                client.attach_role_policy,
                RoleName=role_name,
                PolicyArn=definition["managed_policy"].format(partition=self.partition),
            )

        logger.info(f"AWS Control Tower Landing Zone role {role_name} created successfully.")

    def _fill_partition(self, statements: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return json.loads(json.dumps(statements).replace("{partition}", self.partition))
