"""Registration of organizational units with AWS Control Tower.

An OU is registered by enabling the ``AWSControlTowerBaseline`` on it at
the baseline version matching the landing zone version. Registration is
asynchronous; the baseline operation is polled until it settles.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..common.control_tower import (
    get_available_baselines,
    get_enabled_baselines,
    get_landing_zone_details,
    get_landing_zone_identifier,
)
from ..common.organizations import get_organizational_unit_arn, get_organizational_unit_id_by_path
from ..core.base import ModuleBase
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError, ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleName
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)

CONTROL_TOWER_BASELINE_NAME = "AWSControlTowerBaseline"
IDENTITY_CENTER_BASELINE_NAME = "IdentityCenterBaseline"
BASELINE_VERSION_DOCS = "https://docs.aws.amazon.com/controltower/latest/userguide/table-of-baselines.html"

# Landing zone versions grouped by the baseline version they require
BASELINE_VERSION_BY_LANDING_ZONE_VERSION = {
    **{version: "1.0" for version in ("2.0", "2.1", "2.2", "2.3", "2.4", "2.5", "2.6", "2.7")},
    "2.8": "2.0",
    "2.9": "2.0",
    "3.0": "3.0",
    "3.1": "3.0",
}
LATEST_BASELINE_VERSION = "4.0"

DEFAULT_POLL_INTERVAL_SECONDS = 120
DEFAULT_MAX_POLL_ATTEMPTS = 30


@dataclass
class RegisterOrganizationalUnitConfiguration:
    """Target OU, given by ARN or by path (``Level1/Level2``)."""

    ou_arn: Optional[str] = None
    ou_path: Optional[str] = None

    def __post_init__(self) -> None:
        if bool(self.ou_arn) == bool(self.ou_path):
            raise ValueError("exactly one of ouArn or ouPath must be provided")


def get_baseline_version(landing_zone_version: Optional[str]) -> str:
    """Map a landing zone version to the baseline version it requires.

    Unknown or malformed versions map to the latest baseline version.
    """
    return BASELINE_VERSION_BY_LANDING_ZONE_VERSION.get(landing_zone_version, LATEST_BASELINE_VERSION)


class RegisterOrganizationalUnitModule(ModuleBase):
    """Registers an organizational unit with AWS Control Tower."""

    module_name = ModuleName.CONTROL_TOWER
    configuration_type = RegisterOrganizationalUnitConfiguration

    def handler(
        self, parameter: ModuleCommonParameter, configuration: RegisterOrganizationalUnitConfiguration
    ) -> str:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        client_manager = self._client_manager(parameter)
        client = client_manager.get_client("controltower")

        landing_zone_identifier = get_landing_zone_identifier(client)
        if not landing_zone_identifier:
            if defaults.dry_run:
                return generate_dry_run_response(
                    defaults.module_name,
                    parameter.operation,
                    "Will experience error because the environment does not have AWS Control Tower Landing Zone.",
                )
            raise InvalidInputError(f'AWS Control Tower Landing Zone not found in the region "{parameter.region}".')

        landing_zone_details = get_landing_zone_details(client, parameter.region, landing_zone_identifier)
        baseline_version = get_baseline_version(landing_zone_details.version)

        ou_arn = configuration.ou_arn or self._resolve_ou_arn(
            client_manager.get_client("organizations", defaults.global_region), configuration.ou_path
        )
        if not ou_arn:
            message = f'AWS Organizations organizational unit "{configuration.ou_path}" not found.'
            if defaults.dry_run:
                return generate_dry_run_response(
                    defaults.module_name,
                    parameter.operation,
                    f"Will experience {MODULE_EXCEPTIONS.INVALID_INPUT.value}. Reason {message}",
                )
            raise InvalidInputError(message)
        ou_id = ou_arn.split("/")[-1]

        enabled_baselines = get_enabled_baselines(client)
        registration = next(
            (
                item
                for item in enabled_baselines
                if (item.get("targetIdentifier") or "").lower() == ou_arn.lower()
            ),
            None,
        )

        if registration:
            if defaults.dry_run:
                return self._get_dry_run_response(
                    defaults.module_name, parameter.operation, ou_id, baseline_version, registration
                )
            return self._get_registration_status(ou_id, baseline_version, registration)

        try:
            control_tower_baseline_arn, baseline_parameters = self._get_baseline_inputs(
                client, landing_zone_details.enable_identity_center_access, enabled_baselines
            )
        except ServiceException as e:
            if defaults.dry_run:
                return generate_dry_run_response(
                    defaults.module_name,
                    parameter.operation,
                    f"Will experience {MODULE_EXCEPTIONS.SERVICE_EXCEPTION.value}. Reason {e.message}",
                )
            raise

        if defaults.dry_run:
            return self._get_dry_run_response(defaults.module_name, parameter.operation, ou_id, baseline_version, None)

        return self._register(client, ou_arn, ou_id, baseline_version, control_tower_baseline_arn, baseline_parameters)

    @staticmethod
    def _resolve_ou_arn(organizations_client: Any, ou_path: str) -> Optional[str]:
        ou_id = get_organizational_unit_id_by_path(organizations_client, ou_path)
        if not ou_id:
            return None
        return get_organizational_unit_arn(organizations_client, ou_id)

    @staticmethod
    def _get_registration_status(ou_id: str, baseline_version: str, registration: Dict[str, Any]) -> str:
        """Report on an OU that already has the Control Tower baseline."""
        status = (registration.get("statusSummary") or {}).get("status")
        existing_version = registration.get("baselineVersion")

        if status == "FAILED":
            message = (
                f'AWS Organizations organizational unit (OU) "{ou_id}" is already registered with AWS Control Tower, '
                f"but registration status is {status}, manual fix is required, re-register the OU from the "
                "AWS Control Tower console."
            )
            logger.warning(message)
            return message

        if existing_version != baseline_version:
            message = (
                f'AWS Organizations organizational unit (OU) "{ou_id}" is already registered with AWS Control Tower, '
                f"but the baseline version is {existing_version} which is different from expected baseline version "
                f"{baseline_version} and registration status is {status}, update baseline is required for OU, "
                "perform update baseline from console."
            )
            logger.warning(message)
            return message

        message = (
            f'AWS Organizations organizational unit (OU) "{ou_id}" is already registered with AWS Control Tower, '
            f"registration status is {status} and baseline version is {existing_version}, operation skipped."
        )
        logger.info(message)
        return message

    def _get_baseline_inputs(
        self, client: Any, identity_center_enabled: Optional[bool], enabled_baselines: List[Dict[str, Any]]
    ) -> Tuple[str, List[Dict[str, str]]]:
        """Find the Control Tower baseline ARN and the EnableBaseline parameters.

        Raises:
            ServiceException: When a required baseline cannot be found
        """
        available_baselines = get_available_baselines(client)
        control_tower_baseline_arn = self._find_baseline_arn(available_baselines, CONTROL_TOWER_BASELINE_NAME)
        if not control_tower_baseline_arn:
            raise ServiceException(
                f"{CONTROL_TOWER_BASELINE_NAME} identifier not found in available Control Tower baselines "
                "returned by ListBaselines api."
            )

        identity_center_arn = self._get_identity_center_enabled_baseline_arn(available_baselines, enabled_baselines)
        if identity_center_enabled and not identity_center_arn:
            raise ServiceException(
                "AWS Control Tower Landing Zone is configured with IAM Identity Center, but "
                f"{IDENTITY_CENTER_BASELINE_NAME} not found in enabled baselines returned by "
                "ListEnabledBaselines api."
            )

        parameters = []
        if identity_center_arn:
            parameters.append({"key": "IdentityCenterEnabledBaselineArn", "value": identity_center_arn})
        return control_tower_baseline_arn, parameters

    def _register(
        self,
        client: Any,
        ou_arn: str,
        ou_id: str,
        baseline_version: str,
        control_tower_baseline_arn: str,
        parameters: List[Dict[str, str]],
    ) -> str:
        logger.info(f'Registering AWS Organizations organizational unit (OU) "{ou_id}" with AWS Control Tower.')
        response = throttling_back_off(
            client.enable_baseline,
            baselineIdentifier=control_tower_baseline_arn,
            baselineVersion=baseline_version,
            targetIdentifier=ou_arn,
            parameters=parameters,
        )
        operation_identifier = response.get("operationIdentifier")
        if not operation_identifier:
            raise ServiceException(
                f'AWS Organizations organizational unit (OU) "{ou_id}" EnableBaseline api didn\'t return '
                "operationIdentifier object."
            )

        self._wait_until_baseline_completes(client, ou_id, operation_identifier)

        message = f'Registration of AWS Organizations organizational unit (OU) "{ou_id}" with AWS Control Tower is successful.'
        logger.info(message)
        return message

    def _wait_until_baseline_completes(self, client: Any, ou_id: str, operation_identifier: str) -> None:
        poller = self._poller(
            "poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS, "max_poll_attempts", DEFAULT_MAX_POLL_ATTEMPTS
        )
        timeout_minutes = int(poller.interval_seconds * poller.max_attempts // 60)

        poller.poll(
            lambda: self._get_baseline_operation_status(client, ou_id, operation_identifier),
            lambda status: status == "SUCCEEDED",
            ServiceException(
                f'AWS Organizations organizational unit "{ou_id}" baseline operation took more than '
                f"{timeout_minutes} minutes. Pipeline aborted, please review AWS Control Tower console to make sure "
                "organization unit registration completes."
            ),
            description=f'Baseline operation "{operation_identifier}" for OU "{ou_id}"',
        )

    @staticmethod
    def _get_baseline_operation_status(client: Any, ou_id: str, operation_identifier: str) -> str:
        response = throttling_back_off(client.get_baseline_operation, operationIdentifier=operation_identifier)
        status = (response.get("baselineOperation") or {}).get("status")
        if not status:
            raise ServiceException("AWS Control Tower GetBaselineOperation api didn't return operation status.")
        if status == "FAILED":
            raise ServiceException(
                f'AWS Organizations organizational unit "{ou_id}" baseline operation with identifier '
                f'"{operation_identifier}" in "{status}" state. Investigate baseline operation before executing pipeline.'
            )
        return status

    @staticmethod
    def _find_baseline_arn(baselines: List[Dict[str, Any]], name: str) -> Optional[str]:
        for baseline in baselines:
            if (baseline.get("name") or "").lower() == name.lower():
                return baseline.get("arn")
        return None

    def _get_identity_center_enabled_baseline_arn(
        self, available_baselines: List[Dict[str, Any]], enabled_baselines: List[Dict[str, Any]]
    ) -> Optional[str]:
        identity_center_arn = self._find_baseline_arn(available_baselines, IDENTITY_CENTER_BASELINE_NAME)
        if not identity_center_arn:
            return None
        for enabled in enabled_baselines:
            if enabled.get("baselineIdentifier") == identity_center_arn:
                return enabled.get("arn")
        return None

    @staticmethod
    def _get_dry_run_response(
        module_name: str,
        operation: str,
        ou_id: str,
        baseline_version: str,
        registration: Optional[Dict[str, Any]],
    ) -> str:
        if not registration:
            message = (
                f'AWS Organizations organizational unit (OU) "{ou_id}" is not registered with AWS Control Tower '
                "accelerator will register the OU with AWS Control Tower."
            )
            return generate_dry_run_response(module_name, operation, message)

        status = (registration.get("statusSummary") or {}).get("status")
        existing_version = registration.get("baselineVersion")

        if status == "FAILED":
            message = (
                f'AWS Organizations organizational unit (OU) "{ou_id}" is already registered with AWS Control Tower, '
                f"registration status is {status}, manual fix is required before the OU can be re-registered."
            )
        elif existing_version != baseline_version:
            message = (
                f'AWS Organizations organizational unit (OU) "{ou_id}" is already registered with AWS Control Tower, '
                f"but the baseline version is {existing_version} which is different from expected baseline version "
                f"{baseline_version} and registration status is {status}, manual baseline update is required. "
                f"Baseline version compatibility metrics can be found here {BASELINE_VERSION_DOCS}"
            )
        else:
            message = (
                f'AWS Organizations organizational unit (OU) "{ou_id}" is already registered with AWS Control Tower, '
                f"registration status is {status}, accelerator will skip the registration process."
            )
        return generate_dry_run_response(module_name, operation, message)
