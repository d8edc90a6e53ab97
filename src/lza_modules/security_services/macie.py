"""Amazon Macie delegated administrator."""

from typing import Any, List, Optional

from botocore.exceptions import ClientError

from ..core.exceptions import ServiceException
from ..core.functions import collect_pages
from ..core.interfaces import ModuleName
from ..core.throttle import throttling_back_off
from .base import OrganizationAdminModule, single_admin


MACIE_ENABLED = "ENABLED"


class MacieOrganizationAdminModule(OrganizationAdminModule):
    """Sets or removes the Macie organization admin account.

    Macie reports admins in both enabled and disabling states; only enabled
    ones count as the current admin.
    """

    module_name = ModuleName.AMAZON_MACIE
    service_label = "Macie"
    client_service = "macie2"

    def is_service_enabled(self, client: Any) -> bool:
        try:
            response = throttling_back_off(client.get_macie_session)
        except ClientError as e:
            # GetMacieSession is denied while Macie is off
            if e.response["Error"]["Code"] == "AccessDeniedException":
                return False
            raise
        return response.get("status") == MACIE_ENABLED

    def _enable_service(self, client: Any) -> None:
        throttling_back_off(client.enable_macie, status=MACIE_ENABLED)
        self._wait_until(lambda: self.is_service_enabled(client), "Could not get confirmation that macie was enabled")

    def _list_admin_accounts(self, client: Any) -> List[dict]:
        try:
            return collect_pages(client.list_organization_admin_accounts, "adminAccounts", token_name="nextToken")
        except ClientError as e:
            if e.response["Error"]["Code"] == "AccessDeniedException":
                raise ServiceException(
                    "Could not run ListOrganizationAdminAccounts because you must be a user of the management account"
                )
            raise

    def get_organization_admin(self, client: Any) -> Optional[str]:
        enabled = [
            account["accountId"]
            for account in self._list_admin_accounts(client)
            if account.get("status") == MACIE_ENABLED and account.get("accountId")
        ]
        return single_admin(enabled, self.service_label)

    def _is_admin_removed(self, client: Any, account_id: str) -> bool:
        return not any(
            account.get("status") == MACIE_ENABLED or account.get("accountId") == account_id
            for account in self._list_admin_accounts(client)
        )

    def _enable_admin_account(self, client: Any, account_id: str) -> None:
        throttling_back_off(client.enable_organization_admin_account, adminAccountId=account_id)

    def _disable_admin_account(self, client: Any, account_id: str) -> None:
        throttling_back_off(client.disable_organization_admin_account, adminAccountId=account_id)
