"""Shared decision matrix for security service delegated administrators.

Every service follows the same rules:

* enable, no admin: designate the account
* enable, same admin: nothing to do
* enable, other admin: ``INVALID_INPUT``
* disable, no admin: nothing to remove
* disable, same admin: remove the designation
* disable, other admin: ``INVALID_INPUT``

Subclasses supply the service calls; admin changes are confirmed by
re-reading the admin list with ``wait_until``.
"""

import logging
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from botocore.exceptions import ClientError

from ..core.base import ModuleBase
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError, ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter
from ..core.polling import wait_until


logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_INTERVAL_SECONDS = 60
DEFAULT_CONFIRMATION_RETRY_LIMIT = 5
DEFAULT_DESIGNATION_ATTEMPTS = 5


@dataclass
class OrganizationAdminConfiguration:
    enable: bool
    account_id: str


class OrganizationAdminModule(ModuleBase):
    """Base for modules managing a service's organization admin account."""

    configuration_type = OrganizationAdminConfiguration

    #: Display name of the service, e.g. "GuardDuty"
    service_label: str

    #: boto3 service name
    client_service: str

    @abstractmethod
    def get_organization_admin(self, client: Any) -> Optional[str]:
        """Get the current admin account ID, or None when none is set.

        Raises:
            ServiceException: When several admins exist or one is being disabled
        """

    @abstractmethod
    def _enable_admin_account(self, client: Any, account_id: str) -> None:
        pass

    @abstractmethod
    def _disable_admin_account(self, client: Any, account_id: str) -> None:
        pass

    def is_service_enabled(self, client: Any) -> bool:
        return True

    def _enable_service(self, client: Any) -> None:
        """Turn the service on in the calling account; a no-op by default."""

    def _is_retryable_designation_error(self, error: ClientError) -> bool:
        return False

    def _is_admin_removed(self, client: Any, account_id: str) -> bool:
        return self.get_organization_admin(client) is None

    def handler(self, parameter: ModuleCommonParameter, configuration: OrganizationAdminConfiguration) -> str:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        client = self._client_manager(parameter).get_client(self.client_service)

        service_enabled = self.is_service_enabled(client)
        current_admin = self.get_organization_admin(client)

        if defaults.dry_run:
            return generate_dry_run_response(
                defaults.module_name,
                parameter.operation,
                self._get_dry_run_message(configuration, service_enabled, current_admin),
            )

        account_id = configuration.account_id
        if configuration.enable:
            if current_admin == account_id:
                return f"AWS Account with ID {account_id} is already the {self.service_label} Organization Admin"
            if current_admin:
                raise InvalidInputError(
                    f"{self.service_label} delegated admin is already set to {current_admin} account, cannot "
                    f"assign another delegated account {account_id}. Please remove {current_admin} as a "
                    "delegated administrator and rerun the pipeline."
                )
            if not service_enabled:
                logger.info(f"{self.service_label} is not enabled, enabling it before setting the Organization Admin")
                self._enable_service(client)
            return self._set_organization_admin(client, account_id)

        if not current_admin:
            return (
                f"There is no {self.service_label} Organization Admin currently set, so AWS Account with ID "
                f"{account_id} was not removed"
            )
        if current_admin != account_id:
            raise InvalidInputError(
                f"Could not remove Account with ID {account_id} as {self.service_label} Organization Admin because "
                f"the current Admin is AWS Account with ID {current_admin}"
            )
        return self._remove_organization_admin(client, account_id)

    def _wait_until(self, predicate: Callable[[], bool], error_message: str) -> None:
        wait_until(
            predicate,
            error_message,
            retry_limit=self._setting("confirmation_retry_limit", DEFAULT_CONFIRMATION_RETRY_LIMIT),
            interval_seconds=self._setting("confirmation_interval_seconds", DEFAULT_CONFIRMATION_INTERVAL_SECONDS),
            sleep=self._sleep,
        )

    def _set_organization_admin(self, client: Any, account_id: str) -> str:
        logger.info(f"Setting {self.service_label} Organization Admin to AWS Account with ID {account_id}")
        poller = self._poller(
            "confirmation_interval_seconds",
            DEFAULT_CONFIRMATION_INTERVAL_SECONDS,
            "designation_attempts",
            DEFAULT_DESIGNATION_ATTEMPTS,
        )
        try:
            poller.retry(
                lambda: self._enable_admin_account(client, account_id),
                lambda error: isinstance(error, ClientError) and self._is_retryable_designation_error(error),
                description=f"Setting {self.service_label} Organization Admin to {account_id}",
            )
        except ClientError as e:
            logger.error(
                f'There was an "{e}" error when setting the {self.service_label} Organization Admin to {account_id}'
            )
            raise

        self._wait_until(
            lambda: self.get_organization_admin(client) == account_id,
            f"Could not get confirmation that {self.service_label} Organization admin was set to {account_id}",
        )
        return f"Successfully set {self.service_label} Organization Admin to AWS Account with ID {account_id}"

    def _remove_organization_admin(self, client: Any, account_id: str) -> str:
        logger.info(f"Removing AWS Account with ID {account_id} as {self.service_label} Organization Admin")
        try:
            self._disable_admin_account(client, account_id)
        except ClientError as e:
            logger.error(
                f'There was an "{e}" error when removing {account_id} as {self.service_label} Organization Admin'
            )
            raise

        self._wait_until(
            lambda: self._is_admin_removed(client, account_id),
            f"Could not get confirmation that {account_id} was removed as {self.service_label} Organization Admin",
        )
        return f"Successfully removed AWS Account with ID {account_id} as {self.service_label} Organization Admin"

    def _get_dry_run_message(
        self, configuration: OrganizationAdminConfiguration, service_enabled: bool, current_admin: Optional[str]
    ) -> str:
        account_id = configuration.account_id
        label = self.service_label
        if configuration.enable:
            if not current_admin:
                return f"AWS Account with ID {account_id} will be set as the {label} Organization Admin"
            if current_admin != account_id:
                return (
                    f"Will experience {MODULE_EXCEPTIONS.INVALID_INPUT.value} because the {label} Organization "
                    f"Administrator is already set to {current_admin}, cannot additionally assign {account_id}"
                )
            return f"AWS Account with ID {account_id} is already the {label} Organization Administrator"

        if not service_enabled:
            return (
                f"{label} is not enabled, so there is no Organization Admin currently set, so AWS Account with ID "
                f"{account_id} will not need to be removed"
            )
        if not current_admin:
            return (
                f"There is no Organization Admin currently set, so AWS Account with ID {account_id} "
                "will not need to be removed"
            )
        if current_admin != account_id:
            return (
                f"Will experience {MODULE_EXCEPTIONS.INVALID_INPUT.value} because AWS Account with ID {current_admin} "
                f"is currently set as the {label} Organization Admin, which differs from the expected account "
                f"{account_id}"
            )
        return f"AWS Account with ID {account_id} will be removed as {label} Organization Administrator"


def single_admin(admin_ids: List[str], label: str) -> Optional[str]:
    """Reduce a list of admin account IDs to at most one.

    Raises:
        ServiceException: When more than one admin is set
    """
    if not admin_ids:
        return None
    if len(admin_ids) > 1:
        raise ServiceException(f"Multiple admin accounts for {label} in organization")
    return admin_ids[0]
