"""AWS Systems Manager block public document sharing."""

import logging
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import ClientError

from ..core.base import ModuleBase
from ..core.exceptions import ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleName
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)

PUBLIC_SHARING_SETTING_ID = "/ssm/documents/console/public-sharing-permission"
# "Disable" turns public sharing off, which means the block is on
SHARING_BLOCKED = "Disable"
SHARING_ALLOWED = "Enable"


@dataclass
class SsmDocumentSharingConfiguration:
    enable: bool


def is_public_sharing_blocked(client: Any) -> bool:
    """Read the public sharing setting; a missing setting means sharing is allowed."""
    logger.info("Retrieving current SSM Block Public Document Sharing state.")
    try:
        response = throttling_back_off(client.get_service_setting, SettingId=PUBLIC_SHARING_SETTING_ID)
    except ClientError as e:
        if e.response["Error"]["Code"] == "ServiceSettingNotFound":
            logger.info("SSM Block Public Document Sharing setting not found, defaulting to public sharing allowed.")
            return False
        raise

    value = (response.get("ServiceSetting") or {}).get("SettingValue")
    if value is None:
        raise ServiceException("GetServiceSetting API did not return SettingValue.")
    return value == SHARING_BLOCKED


class SsmDocumentSharingModule(ModuleBase):
    """Turns the SSM public document sharing block on or off."""

    module_name = ModuleName.AWS_SSM
    configuration_type = SsmDocumentSharingConfiguration

    def handler(self, parameter: ModuleCommonParameter, configuration: SsmDocumentSharingConfiguration) -> str:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        client = self._client_manager(parameter).get_client("ssm")

        blocked = is_public_sharing_blocked(client)

        if defaults.dry_run:
            if configuration.enable and blocked:
                message = (
                    "SSM Block Public Document Sharing already enabled for the environment, accelerator will skip "
                    "the process of enabling SSM Block Public Document Sharing."
                )
            elif not configuration.enable and not blocked:
                message = (
                    "SSM Block Public Document Sharing already disabled for the environment, accelerator will skip "
                    "the process of disabling SSM Block Public Document Sharing."
                )
            elif configuration.enable:
                message = (
                    "SSM Block Public Document Sharing not enabled for the environment, accelerator will enable "
                    "SSM Block Public Document Sharing."
                )
            else:
                message = (
                    "SSM Block Public Document Sharing enabled for the environment, accelerator will disable "
                    "SSM Block Public Document Sharing."
                )
            return generate_dry_run_response(defaults.module_name, parameter.operation, message)

        if configuration.enable:
            if blocked:
                return (
                    "SSM Block Public Document Sharing already enabled for the environment, accelerator skipped "
                    "the process of enabling SSM Block Public Document Sharing."
                )
            logger.info("Enabling SSM Block Public Document Sharing.")
            throttling_back_off(
                client.update_service_setting, SettingId=PUBLIC_SHARING_SETTING_ID, SettingValue=SHARING_BLOCKED
            )
            return "Enabled SSM Block Public Document Sharing for the environment."

        if not blocked:
            return (
                "SSM Block Public Document Sharing already disabled for the environment, accelerator skipped "
                "the process of disabling SSM Block Public Document Sharing."
            )
        logger.info("Disabling SSM Block Public Document Sharing.")
        throttling_back_off(
            client.update_service_setting, SettingId=PUBLIC_SHARING_SETTING_ID, SettingValue=SHARING_ALLOWED
        )
        return "Disabled SSM Block Public Document Sharing for the environment."
