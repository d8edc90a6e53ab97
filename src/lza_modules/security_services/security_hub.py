"""AWS Security Hub delegated administrator."""

import logging
from typing import Any, Optional

from botocore.exceptions import ClientError

from ..core.exceptions import ServiceException
from ..core.functions import collect_pages
from ..core.interfaces import ModuleName
from ..core.throttle import throttling_back_off
from .base import OrganizationAdminModule, single_admin


logger = logging.getLogger(__name__)


class SecurityHubOrganizationAdminModule(OrganizationAdminModule):
    """Sets or removes the Security Hub organization admin account.

    The hub is enabled in the calling account first. Designation is retried
    because it can fail while the hub is still being set up.
    """

    module_name = ModuleName.AWS_SECURITY_HUB
    service_label = "Security Hub"
    client_service = "securityhub"

    def get_organization_admin(self, client: Any) -> Optional[str]:
        admin_accounts = collect_pages(client.list_organization_admin_accounts, "AdminAccounts")
        if len(admin_accounts) == 1 and admin_accounts[0].get("Status") == "DISABLE_IN_PROGRESS":
            raise ServiceException(
                f"Admin account {admin_accounts[0].get('AccountId')} is in {admin_accounts[0]['Status']}"
            )
        return single_admin([account.get("AccountId") for account in admin_accounts], self.service_label)

    def _enable_security_hub(self, client: Any) -> None:
        try:
            throttling_back_off(client.enable_security_hub)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceConflictException":
                logger.warning(f"Security Hub already enabled: {e}")
                return
            raise

    def _set_organization_admin(self, client: Any, account_id: str) -> str:
        self._enable_security_hub(client)
        return super()._set_organization_admin(client, account_id)

    def _is_retryable_designation_error(self, error: ClientError) -> bool:
        return True

    def _enable_admin_account(self, client: Any, account_id: str) -> None:
        throttling_back_off(client.enable_organization_admin_account, AdminAccountId=account_id)

    def _disable_admin_account(self, client: Any, account_id: str) -> None:
        throttling_back_off(client.disable_organization_admin_account, AdminAccountId=account_id)
