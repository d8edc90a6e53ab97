"""Amazon Detective delegated administrator."""

from typing import Any, Optional

from botocore.exceptions import ClientError

from ..core.functions import collect_pages
from ..core.interfaces import ModuleName
from ..core.throttle import throttling_back_off
from .base import OrganizationAdminModule, single_admin


SERVICE_LINKED_ROLE_ERROR = "service linked role cannot be created"


class DetectiveOrganizationAdminModule(OrganizationAdminModule):
    """Sets or removes the Detective organization admin account."""

    module_name = ModuleName.AMAZON_DETECTIVE
    service_label = "Detective"
    client_service = "detective"

    def get_organization_admin(self, client: Any) -> Optional[str]:
        administrators = collect_pages(client.list_organization_admin_accounts, "Administrators")
        return single_admin([admin.get("AccountId") for admin in administrators], self.service_label)

    def _is_retryable_designation_error(self, error: ClientError) -> bool:
        # Designation fails until Detective's service-linked role exists
        return SERVICE_LINKED_ROLE_ERROR in error.response["Error"].get("Message", "").lower()

    def _enable_admin_account(self, client: Any, account_id: str) -> None:
        throttling_back_off(client.enable_organization_admin_account, AccountId=account_id)

    def _disable_admin_account(self, client: Any, account_id: str) -> None:
        throttling_back_off(client.disable_organization_admin_account, AccountId=account_id)
