"""Create, update or delete AWS Organizations policies."""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

from botocore.exceptions import ClientError

from ..core.base import ModuleBase
from ..core.exceptions import MODULE_EXCEPTIONS, ServiceException
from ..core.functions import collect_pages, generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import (
    ModuleCommonParameter,
    ModuleHandlerReturnType,
    ModuleName,
    ModuleStatus,
    Tag,
    tags_to_aws,
)
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)


class PolicyType(str, Enum):
    SERVICE_CONTROL_POLICY = "SERVICE_CONTROL_POLICY"
    RESOURCE_CONTROL_POLICY = "RESOURCE_CONTROL_POLICY"
    TAG_POLICY = "TAG_POLICY"
    BACKUP_POLICY = "BACKUP_POLICY"
    AISERVICES_OPT_OUT_POLICY = "AISERVICES_OPT_OUT_POLICY"
    CHATBOT_POLICY = "CHATBOT_POLICY"
    DECLARATIVE_POLICY_EC2 = "DECLARATIVE_POLICY_EC2"


class OperationFlag(str, Enum):
    UPSERT = "UPSERT"
    DELETE = "DELETE"


@dataclass
class ManagePolicyConfiguration:
    """Policy to manage.

    The policy document comes either inline through ``content`` or from S3
    through ``bucket_name`` and ``object_path``. DELETE needs neither.
    """

    name: str
    type: PolicyType
    operation_flag: OperationFlag
    content: Optional[str] = None
    bucket_name: Optional[str] = None
    object_path: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[Tag]] = None


def validate_content_source(configuration: ManagePolicyConfiguration) -> List[str]:
    """Check that the policy document is given exactly one way.

    Returns:
        Error messages; empty when the configuration is usable
    """
    if configuration.operation_flag == OperationFlag.DELETE:
        return []

    invalid = MODULE_EXCEPTIONS.INVALID_INPUT.value
    has_s3 = bool(configuration.bucket_name or configuration.object_path)
    errors = []

    if configuration.content and has_s3:
        errors.append(
            f"{invalid}: Cannot specify both direct policy content and S3 location. Use either 'content' field for "
            "inline policy or 'bucketName'+'objectPath' for S3-stored policy"
        )
    if bool(configuration.bucket_name) != bool(configuration.object_path):
        errors.append(
            f"{invalid}: Both 'bucketName' and 'objectPath' are required together to retrieve policy content from S3"
        )
    if not configuration.content and not has_s3:
        errors.append(
            f"{invalid}: Policy content must be provided. Use either 'content' field for inline policy or both "
            "'bucketName' and 'objectPath' for S3-stored policy"
        )
    return errors


class ManagePolicyModule(ModuleBase):
    """Keeps an organization policy in line with its configuration."""

    module_name = ModuleName.AWS_ORGANIZATIONS
    configuration_type = ManagePolicyConfiguration

    def handler(
        self, parameter: ModuleCommonParameter, configuration: ManagePolicyConfiguration
    ) -> ModuleHandlerReturnType:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        errors = validate_content_source(configuration)

        if defaults.dry_run:
            return ModuleHandlerReturnType(
                status=ModuleStatus.SUCCESS,
                message=self._get_dry_run_response(defaults.module_name, parameter.operation, configuration, errors),
                module_name=defaults.module_name,
            )

        if errors:
            message = "\n".join(errors)
            logger.error(message)
            return ModuleHandlerReturnType(
                status=ModuleStatus.FAILED, message=message, module_name=defaults.module_name
            )

        client_manager = self._client_manager(parameter)
        client = client_manager.get_client("organizations")

        if configuration.operation_flag == OperationFlag.DELETE:
            deleted = self._delete_policy(client, configuration)
            if not deleted:
                return ModuleHandlerReturnType(
                    status=ModuleStatus.NO_CHANGE,
                    message=f'Policy "{configuration.name}" does not exist, delete operation skipped.',
                    module_name=defaults.module_name,
                )
            return ModuleHandlerReturnType(
                status=ModuleStatus.SUCCESS,
                message=f'Policy "{configuration.name}" successfully deleted',
                module_name=defaults.module_name,
            )

        content = self._get_policy_content(client_manager, configuration)
        try:
            json.loads(content)
        except ValueError as e:
            message = f"{MODULE_EXCEPTIONS.INVALID_INPUT.value}: Invalid JSON in policy content: {e}"
            logger.error(message)
            return ModuleHandlerReturnType(
                status=ModuleStatus.FAILED, message=message, module_name=defaults.module_name
            )

        policy_id, operation = self._create_or_update_policy(client, configuration, content)
        if operation is None:
            return ModuleHandlerReturnType(
                status=ModuleStatus.NO_CHANGE,
                message=f'Policy "{configuration.name}" is up to date. Policy ID: {policy_id}',
                module_name=defaults.module_name,
            )
        return ModuleHandlerReturnType(
            status=ModuleStatus.SUCCESS,
            message=f'Policy "{configuration.name}" successfully {operation}. Policy ID: {policy_id}',
            module_name=defaults.module_name,
        )

    @staticmethod
    def _get_dry_run_response(
        module_name: str, operation: str, configuration: ManagePolicyConfiguration, errors: List[str]
    ) -> str:
        if errors:
            message = "Will experience " + "\n".join(errors)
        elif configuration.operation_flag == OperationFlag.UPSERT:
            message = (
                f'Will create policy "{configuration.name}" of type {configuration.type.value} '
                "or update if it already exists"
            )
        else:
            message = f'Will detach and delete policy "{configuration.name}" if it exists'
        return generate_dry_run_response(module_name, operation, message)

    @staticmethod
    def _get_policy_content(client_manager: Any, configuration: ManagePolicyConfiguration) -> str:
        if configuration.content:
            return configuration.content

        logger.info(f"Reading policy content from s3://{configuration.bucket_name}/{configuration.object_path}")
        response = throttling_back_off(
            client_manager.get_client("s3").get_object,
            Bucket=configuration.bucket_name,
            Key=configuration.object_path,
        )
        return response["Body"].read().decode("utf-8")

    @staticmethod
    def _get_policy_id(client: Any, name: str, policy_type: PolicyType) -> Optional[str]:
        for policy in collect_pages(client.list_policies, "Policies", Filter=policy_type.value):
            if policy.get("Name") == name:
                return policy.get("Id")
        return None

    def _create_or_update_policy(
        self, client: Any, configuration: ManagePolicyConfiguration, content: str
    ) -> Tuple[str, Optional[str]]:
        """Create the policy or update it when it differs.

        Returns:
            Policy ID and "created", "updated" or None when unchanged
        """
        description = configuration.description or ""
        policy_id = self._get_policy_id(client, configuration.name, configuration.type)

        if not policy_id:
            logger.info(f'Creating policy "{configuration.name}" of type {configuration.type.value}')
            response = throttling_back_off(
                client.create_policy,
                Content=content,
                Description=description,
                Name=configuration.name,
                Type=configuration.type.value,
                Tags=tags_to_aws(configuration.tags),
            )
            new_policy_id = ((response.get("Policy") or {}).get("PolicySummary") or {}).get("Id")
            if not new_policy_id:
                raise ServiceException(
                    f'Failed to create policy "{configuration.name}" of type {configuration.type.value} - '
                    "Policy ID not returned from AWS"
                )
            return new_policy_id, "created"

        existing = throttling_back_off(client.describe_policy, PolicyId=policy_id).get("Policy") or {}
        existing_description = (existing.get("PolicySummary") or {}).get("Description") or ""
        if _same_document(existing.get("Content"), content) and existing_description == description:
            logger.info(f'Policy "{configuration.name}" is up to date')
            return policy_id, None

        logger.info(f'Updating policy "{configuration.name}" ({policy_id})')
        throttling_back_off(
            client.update_policy,
            PolicyId=policy_id,
            Name=configuration.name,
            Description=description,
            Content=content,
        )
        return policy_id, "updated"

    def _delete_policy(self, client: Any, configuration: ManagePolicyConfiguration) -> bool:
        """Detach the policy from every target and delete it.

        Returns:
            False when the policy did not exist
        """
        policy_id = self._get_policy_id(client, configuration.name, configuration.type)
        if not policy_id:
            logger.info(f"Policy {configuration.name} not found for deletion. Already deleted or doesn't exist.")
            return False

        for target in collect_pages(client.list_targets_for_policy, "Targets", PolicyId=policy_id):
            if target.get("TargetId"):
                self._detach_from_target(client, policy_id, target["TargetId"])

        try:
            throttling_back_off(client.delete_policy, PolicyId=policy_id)
        except ClientError as e:
            if e.response["Error"]["Code"] == "PolicyNotFoundException":
                logger.info(f"Policy {configuration.name} not found for deletion. Already deleted or doesn't exist.")
                return False
            logger.error(f"Failed to delete policy {configuration.name}: {e}")
            raise
        return True

    @staticmethod
    def _detach_from_target(client: Any, policy_id: str, target_id: str) -> None:
        try:
            throttling_back_off(client.detach_policy, PolicyId=policy_id, TargetId=target_id)
        except ClientError as e:
            if e.response["Error"]["Code"] == "PolicyNotAttachedException":
                return
            logger.error(f'Failed to detach policy "{policy_id}" from target {target_id}')
            raise


def _same_document(existing: Optional[str], desired: str) -> bool:
    if existing is None:
        return False
    try:
        return json.loads(existing) == json.loads(desired)
    except ValueError:
        return existing == desired
