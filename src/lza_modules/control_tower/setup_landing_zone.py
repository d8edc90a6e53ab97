"""Deployment and maintenance of the AWS Control Tower landing zone.

Without a landing zone the prerequisites are completed and a new landing
zone is created. With one, the landing zone is reset when it drifted and
updated when its configuration or version changed; otherwise nothing
happens.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from ..common.control_tower import LandingZoneDetails, get_landing_zone_details, get_landing_zone_identifier
from ..core.base import ModuleBase
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError, ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleName
from ..core.polling import delay
from ..core.throttle import throttling_back_off
from ..prerequisites.accounts import AccountManager, create_shared_accounts
from ..prerequisites.iam_roles import IAMRolesManager
from ..prerequisites.kms_key import KmsKeyManager
from ..prerequisites.organizations import GOV_CLOUD_PARTITION, OrganizationsManager
from .manifest import LandingZoneSettings, governed_regions_changed, make_manifest


logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 300
DEFAULT_MAX_POLL_ATTEMPTS = 36
DEFAULT_ROLE_PROPAGATION_SECONDS = 300


@dataclass
class RetentionConfiguration:
    logging_bucket: int
    access_logging_bucket: int


@dataclass
class LoggingConfiguration:
    organization_trail: bool
    retention: RetentionConfiguration


@dataclass
class SecurityConfiguration:
    enable_identity_center_access: bool


@dataclass
class SharedAccountConfiguration:
    name: str
    email: str


@dataclass
class SharedAccountsConfiguration:
    management: SharedAccountConfiguration
    logging: SharedAccountConfiguration
    audit: SharedAccountConfiguration


@dataclass
class SetupLandingZoneConfiguration:
    """Desired landing zone configuration."""

    version: str
    enabled_regions: List[str]
    logging: LoggingConfiguration
    security: SecurityConfiguration
    shared_accounts: SharedAccountsConfiguration


@dataclass
class LandingZoneUpdateOrResetRequired:
    update_required: bool
    reset_required: bool
    target_version: Optional[str]
    reason: str


def validate_landing_zone_version(
    config_version: str,
    latest_version: Optional[str],
    reason: Optional[str] = None,
    operation_type: Optional[str] = None,
) -> None:
    """Check the configured version is the latest available one.

    Raises:
        InvalidInputError: When the versions differ
    """
    if latest_version == config_version:
        return
    if reason and operation_type:
        action = "updated" if operation_type == "update" else operation_type
        raise InvalidInputError(
            f'It is necessary to {operation_type} the AWS Control Tower Landing Zone because "{reason}". '
            f"AWS Control Tower Landing Zone's most recent version is {latest_version}, which is different from "
            f"the version {config_version} provided. AWS Control Tower Landing Zone can be {action} when you "
            "specify the latest version in the configuration."
        )
    raise InvalidInputError(
        f"AWS Control Tower Landing Zone's most recent version is {latest_version}, which is different from the "
        f"version {config_version} provided, execution terminated."
    )


def landing_zone_update_or_reset_required(
    settings: LandingZoneSettings, details: LandingZoneDetails
) -> LandingZoneUpdateOrResetRequired:
    """Decide whether the existing landing zone needs a reset or an update.

    A drifted landing zone is reset. Changes to log retention, identity
    center access, governed regions or version require an update to the
    latest available version.

    Raises:
        InvalidInputError: When a change is needed but the configured
            version is not the latest available one
    """
    if details.drift_status == "DRIFTED":
        reason = "The Landing Zone has drifted"
        validate_landing_zone_version(settings.version, details.latest_available_version, reason, "reset")
        return LandingZoneUpdateOrResetRequired(
            update_required=False,
            reset_required=True,
            target_version=details.latest_available_version,
            reason=reason,
        )

    reasons = []
    if details.access_logging_bucket_retention_days != settings.access_logging_bucket_retention_days:
        reasons.append(
            "Changes made in Centralized Logging AccessLoggingBucketRetentionDays from "
            f"{details.access_logging_bucket_retention_days} to {settings.access_logging_bucket_retention_days}"
        )
    if details.logging_bucket_retention_days != settings.logging_bucket_retention_days:
        reasons.append(
            "Changes made in Centralized Logging LoggingBucketRetentionDays from "
            f"{details.logging_bucket_retention_days} to {settings.logging_bucket_retention_days}"
        )
    if details.enable_identity_center_access != settings.enable_identity_center_access:
        reasons.append(
            "Changes made in EnableIdentityCenterAccess from "
            f"{details.enable_identity_center_access} to {settings.enable_identity_center_access}"
        )
    if governed_regions_changed(details.governed_regions, settings.governed_regions):
        reasons.append(
            f"Changes made in governed regions from [{','.join(details.governed_regions)}] to "
            f"[{','.join(settings.governed_regions)}]"
        )
    if details.version != settings.version:
        reasons.append(f"Changes made in control tower version from {details.version} to {settings.version}")

    if reasons:
        reason = ". ".join(reasons)
        validate_landing_zone_version(settings.version, details.latest_available_version, reason, "update")
        return LandingZoneUpdateOrResetRequired(
            update_required=True,
            reset_required=False,
            target_version=details.latest_available_version,
            reason=reason,
        )

    return LandingZoneUpdateOrResetRequired(
        update_required=False,
        reset_required=False,
        target_version=details.latest_available_version,
        reason="There were no changes found to update or reset the Landing Zone.",
    )


class SetupLandingZoneModule(ModuleBase):
    """Creates, updates or resets the AWS Control Tower landing zone."""

    module_name = ModuleName.CONTROL_TOWER_LANDING_ZONE
    configuration_type = SetupLandingZoneConfiguration

    def handler(self, parameter: ModuleCommonParameter, configuration: SetupLandingZoneConfiguration) -> str:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        client_manager = self._client_manager(parameter)
        client = client_manager.get_client("controltower")

        landing_zone_identifier = get_landing_zone_identifier(client)

        if not landing_zone_identifier:
            if defaults.dry_run:
                message = "No existing AWS Control Tower landing zone found it will be created"
                logger.info(message)
                return generate_dry_run_response(defaults.module_name, parameter.operation, message)
            return self._create_landing_zone(
                client_manager, client, parameter, configuration, defaults.global_region, defaults.use_existing_role
            )

        details = get_landing_zone_details(client, parameter.region, landing_zone_identifier)
        organizations = OrganizationsManager(client_manager, defaults.global_region)
        try:
            settings = self._get_landing_zone_settings(organizations, configuration, defaults.global_region)
            required = landing_zone_update_or_reset_required(settings, details)
        except InvalidInputError as e:
            if defaults.dry_run:
                return generate_dry_run_response(
                    defaults.module_name, parameter.operation, f"Will experience {e}"
                )
            raise

        if defaults.dry_run:
            return self._get_dry_run_response(defaults.module_name, parameter.operation, required, details)

        if details.status == "PROCESSING":
            raise ServiceException(
                "AWS Control Tower Landing Zone update operation failed with error - ConflictException - "
                "AWS Control Tower cannot begin landing zone setup while another execution is in progress."
            )
        if details.status == "FAILED":
            raise ServiceException(
                'AWS Control Tower Landing Zone Module has status of "FAILED". Before continuing, proceed to '
                "AWS Control Tower and evaluate the status"
            )

        if required.update_required:
            return self._update_landing_zone(client, required, settings, details, defaults.module_name)
        if required.reset_required:
            return self._reset_landing_zone(client, details.landing_zone_identifier, required.reason, defaults.module_name)

        return f'Module "{defaults.module_name}" completed successfully with status {required.reason}'

    @staticmethod
    def _get_governed_regions(configuration: SetupLandingZoneConfiguration, global_region: str) -> List[str]:
        governed_regions = list(configuration.enabled_regions)
        if global_region not in governed_regions:
            governed_regions.append(global_region)
        return governed_regions

    def _get_landing_zone_settings(
        self,
        organizations: OrganizationsManager,
        configuration: SetupLandingZoneConfiguration,
        global_region: str,
    ) -> LandingZoneSettings:
        log_archive = organizations.get_account_by_email(configuration.shared_accounts.logging.email)
        audit = organizations.get_account_by_email(configuration.shared_accounts.audit.email)
        return LandingZoneSettings(
            version=configuration.version,
            governed_regions=self._get_governed_regions(configuration, global_region),
            log_archive_account_id=log_archive["Id"],
            audit_account_id=audit["Id"],
            enable_identity_center_access=configuration.security.enable_identity_center_access,
            logging_bucket_retention_days=configuration.logging.retention.logging_bucket,
            access_logging_bucket_retention_days=configuration.logging.retention.access_logging_bucket,
            enable_organization_trail=configuration.logging.organization_trail,
        )

    def _create_landing_zone(
        self,
        client_manager: Any,
        client: Any,
        parameter: ModuleCommonParameter,
        configuration: SetupLandingZoneConfiguration,
        global_region: str,
        use_existing_role: bool,
    ) -> str:
        shared_accounts = configuration.shared_accounts
        organizations = OrganizationsManager(client_manager, global_region)
        organizations.validate(parameter.partition, shared_accounts.logging.email, shared_accounts.audit.email)
        management_account = organizations.get_account_by_email(shared_accounts.management.email)

        if not use_existing_role:
            IAMRolesManager(client_manager, parameter.partition).create_control_tower_roles()
            # CreateLandingZone fails with CUSTOMER_ASSUME_ROLE_FAILED until new roles propagate
            wait_seconds = self._setting("role_propagation_seconds", DEFAULT_ROLE_PROPAGATION_SECONDS)
            logger.info(f"Created AWS Control Tower roles, sleeping for {wait_seconds} seconds for role creations to complete.")
            delay(wait_seconds, self._sleep)

        if parameter.partition != GOV_CLOUD_PARTITION:
            account_manager = AccountManager(client_manager, global_region, sleep=self._sleep)
            create_shared_accounts(account_manager, shared_accounts.logging, shared_accounts.audit)

        kms_key_arn = KmsKeyManager(client_manager).create_control_tower_key(
            parameter.partition, management_account["Id"], parameter.region
        )

        settings = self._get_landing_zone_settings(organizations, configuration, global_region)
        manifest = make_manifest(settings, kms_key_arn=kms_key_arn)

        response = throttling_back_off(client.create_landing_zone, version=settings.version, manifest=manifest)
        operation_identifier = self._get_operation_identifier(response, "CreateLandingZone")
        logger.info(
            f"The Landing Zone deployment operation has started asynchronously (ID: {operation_identifier}). "
            "The process will continue running independent of this session."
        )
        self._wait_until_operation_completes(client, operation_identifier)

        return f'Module "{self.module_name.value}" The Landing Zone deployed successfully.'

    def _update_landing_zone(
        self,
        client: Any,
        required: LandingZoneUpdateOrResetRequired,
        settings: LandingZoneSettings,
        details: LandingZoneDetails,
        module_name: str,
    ) -> str:
        logger.info(f'The Landing Zone update operation will begin, because "{required.reason}"')
        if not details.security_ou_name:
            raise ServiceException("GetLandingZone api did not return security Ou name")

        manifest = make_manifest(
            settings,
            security_ou_name=details.security_ou_name,
            kms_key_arn=details.kms_key_arn,
            sandbox_ou_name=details.sandbox_ou_name,
            existing_manifest=details.manifest,
        )
        response = throttling_back_off(
            client.update_landing_zone,
            version=required.target_version,
            landingZoneIdentifier=details.landing_zone_identifier,
            manifest=manifest,
        )
        operation_identifier = self._get_operation_identifier(response, "UpdateLandingZone")
        logger.info(
            f"The Landing Zone update operation has started asynchronously (ID: {operation_identifier}). "
            "The process will continue running independent of this session."
        )
        self._wait_until_operation_completes(client, operation_identifier)

        return f'Module "{module_name}" The Landing Zone update operation completed successfully.'

    def _reset_landing_zone(self, client: Any, landing_zone_identifier: str, reason: str, module_name: str) -> str:
        logger.info(f'The Landing Zone reset operation will begin, because "{reason}"')
        response = throttling_back_off(client.reset_landing_zone, landingZoneIdentifier=landing_zone_identifier)
        operation_identifier = self._get_operation_identifier(response, "ResetLandingZone")
        logger.info(
            f"The Landing Zone reset operation has started asynchronously (ID: {operation_identifier}). "
            "The process will continue running independent of this session."
        )
        self._wait_until_operation_completes(client, operation_identifier)

        return f'Module "{module_name}" The Landing Zone reset operation completed successfully.'

    @staticmethod
    def _get_operation_identifier(response: dict, api_name: str) -> str:
        operation_identifier = response.get("operationIdentifier")
        if not operation_identifier:
            logger.warning(f"{api_name} did not return operationIdentifier")
            raise ServiceException(f"{api_name} did not return operationIdentifier")
        return operation_identifier

    def _wait_until_operation_completes(self, client: Any, operation_identifier: str) -> None:
        poller = self._poller(
            "poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS, "max_poll_attempts", DEFAULT_MAX_POLL_ATTEMPTS
        )
        poller.poll(
            lambda: self._get_operation_status(client, operation_identifier),
            lambda status: status != "IN_PROGRESS",
            ServiceException(
                f"AWS Control Tower Landing Zone operation with identifier {operation_identifier} did not complete "
                f"after {poller.max_attempts} status checks. Review the operation in AWS Control Tower console."
            ),
            description=f"AWS Control Tower Landing Zone operation {operation_identifier}",
        )

    @staticmethod
    def _get_operation_status(client: Any, operation_identifier: str) -> str:
        response = throttling_back_off(client.get_landing_zone_operation, operationIdentifier=operation_identifier)
        status = (response.get("operationDetails") or {}).get("status")
        if not status:
            raise ServiceException("GetLandingZoneOperation did not return operation status")
        if status == "FAILED":
            message = (
                f'AWS Control Tower Landing Zone operation with identifier "{operation_identifier}" in "{status}" '
                "state. Before continuing, proceed to AWS Control Tower and evaluate the status."
            )
            logger.warning(message)
            raise ServiceException(message)
        return status

    @staticmethod
    def _get_dry_run_response(
        module_name: str,
        operation: str,
        required: LandingZoneUpdateOrResetRequired,
        details: LandingZoneDetails,
    ) -> str:
        if not required.reset_required and not required.update_required:
            message = "Existing AWS Control Tower landing zone found, no changes required"
            logger.info(message)
            return generate_dry_run_response(module_name, operation, message)

        action = "reset" if required.reset_required else "update"
        message = (
            f"Existing AWS Control Tower landing zone found, {action} is required for following changes\n "
            f"{required.reason}"
        )
        if details.status != "ACTIVE":
            message = (
                f"Will experience {MODULE_EXCEPTIONS.SERVICE_EXCEPTION.value}. Reason AWS Control Tower not in "
                f'"ACTIVE" status, current status is "{details.status}". {message}'
            )
        logger.info(message)
        return generate_dry_run_response(module_name, operation, message)
