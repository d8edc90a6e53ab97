"""Amazon EBS default encryption for the account."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..core.base import ModuleBase
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError, ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleName
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)


@dataclass
class EbsDefaultEncryptionConfiguration:
    enable_default_encryption: bool
    kms_key_id: Optional[str] = None


class EbsDefaultEncryptionModule(ModuleBase):
    """Enables or disables EBS default encryption and sets its KMS key."""

    module_name = ModuleName.AMAZON_EC2
    configuration_type = EbsDefaultEncryptionConfiguration

    def handler(self, parameter: ModuleCommonParameter, configuration: EbsDefaultEncryptionConfiguration) -> str:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        configuration_valid = not (configuration.enable_default_encryption and not configuration.kms_key_id)

        client = self._client_manager(parameter).get_client("ec2")
        encryption_enabled = self._is_default_encryption_enabled(client)
        existing_key_id = self._get_default_key_id(client)

        if defaults.dry_run:
            return generate_dry_run_response(
                defaults.module_name,
                parameter.operation,
                self._get_dry_run_message(configuration, configuration_valid, encryption_enabled, existing_key_id),
            )

        if not configuration_valid:
            raise InvalidInputError("when default encryption is enabled kms key id can not be undefined or missing.")

        if configuration.enable_default_encryption:
            return self._enable(client, encryption_enabled, existing_key_id, configuration.kms_key_id)
        return self._disable(client, encryption_enabled)

    @staticmethod
    def _is_default_encryption_enabled(client: Any) -> bool:
        logger.info("Retrieving existing default EBS encryption settings.")
        response = throttling_back_off(client.get_ebs_encryption_by_default)
        if response.get("EbsEncryptionByDefault") is None:
            raise ServiceException("GetEbsEncryptionByDefault API did not return EbsEncryptionByDefault object.")
        return response["EbsEncryptionByDefault"]

    @staticmethod
    def _get_default_key_id(client: Any) -> str:
        logger.info("Retrieving existing default encryption key.")
        response = throttling_back_off(client.get_ebs_default_kms_key_id)
        if not response.get("KmsKeyId"):
            raise ServiceException("GetEbsDefaultKmsKeyId API did not return KmsKeyId.")
        return response["KmsKeyId"]

    def _enable(self, client: Any, encryption_enabled: bool, existing_key_id: str, kms_key_id: str) -> str:
        if not encryption_enabled:
            logger.info("Enabling default encryption for EBS.")
            throttling_back_off(client.enable_ebs_encryption_by_default)

        if existing_key_id != kms_key_id:
            logger.info("Modifying default encryption key for EBS.")
            response = throttling_back_off(client.modify_ebs_default_kms_key_id, KmsKeyId=kms_key_id)
            if not response.get("KmsKeyId"):
                raise ServiceException("ModifyEbsDefaultKmsKeyId API did not return KmsKeyId.")
            return (
                f'Amazon EBS default encryption set to kms key id changed from "{existing_key_id}" to '
                f'"{response["KmsKeyId"]}" for the environment.'
            )

        if not encryption_enabled:
            return f'Enabled Amazon EBS default encryption with kms key id "{kms_key_id}" for the environment.'

        return (
            f'Amazon EBS default encryption already set to kms key id to "{kms_key_id}" for the environment, '
            "accelerator skipped the process of enabling EBS default encryption key."
        )

    @staticmethod
    def _disable(client: Any, encryption_enabled: bool) -> str:
        if not encryption_enabled:
            return (
                "Amazon EBS default encryption already disabled for the environment, "
                "accelerator skipped the process of disabling EBS default encryption key."
            )
        logger.info("Disabling default encryption for EBS.")
        throttling_back_off(client.disable_ebs_encryption_by_default)
        return "Disabled Amazon EBS default encryption for the environment."

    @staticmethod
    def _get_dry_run_message(
        configuration: EbsDefaultEncryptionConfiguration,
        configuration_valid: bool,
        encryption_enabled: bool,
        existing_key_id: str,
    ) -> str:
        if not configuration_valid:
            return (
                f"Will experience {MODULE_EXCEPTIONS.INVALID_INPUT.value}. Reason default encryption is set to "
                "enable, but kms key id is undefined or missing."
            )
        if not configuration.enable_default_encryption:
            if encryption_enabled:
                return (
                    "Amazon EBS default encryption enabled for the environment, "
                    "accelerator will disable default encryption."
                )
            return (
                "Amazon EBS default encryption already disabled for the environment, "
                "accelerator will skip the process of disabling EBS default encryption key."
            )
        if not encryption_enabled:
            return (
                "Amazon EBS default encryption not enabled for the environment, accelerator will enable default "
                f'encryption and set the default encryption kms key to "{configuration.kms_key_id}".'
            )
        if existing_key_id != configuration.kms_key_id:
            return (
                f"Existing Amazon EBS default encryption key id is {existing_key_id}, accelerator will set default "
                f'encryption key to "{configuration.kms_key_id}".'
            )
        return (
            f'Existing Amazon EBS default encryption key id is "{configuration.kms_key_id}", '
            "accelerator will skip the process of enabling EBS default encryption key."
        )
