"""Amazon GuardDuty delegated administrator."""

from typing import Any, Optional

from ..core.exceptions import ServiceException
from ..core.functions import collect_pages
from ..core.interfaces import ModuleName
from ..core.throttle import throttling_back_off
from .base import OrganizationAdminModule


class GuardDutyOrganizationAdminModule(OrganizationAdminModule):
    """Sets or removes the GuardDuty organization admin account.

    GuardDuty is turned on in the calling account (by creating a detector)
    before an admin is designated.
    """

    module_name = ModuleName.AWS_GUARDDUTY
    service_label = "GuardDuty"
    client_service = "guardduty"

    def is_service_enabled(self, client: Any) -> bool:
        detector_ids = throttling_back_off(client.list_detectors).get("DetectorIds") or []
        if not detector_ids:
            return False
        detector = throttling_back_off(client.get_detector, DetectorId=detector_ids[0])
        return detector.get("Status") == "ENABLED"

    def _enable_service(self, client: Any) -> None:
        throttling_back_off(client.create_detector, Enable=True)
        self._wait_until(
            lambda: self.is_service_enabled(client),
            "Could not get confirmation that GuardDuty was enabled, create detector operation might have failed, "
            "check detector status",
        )

    def get_organization_admin(self, client: Any) -> Optional[str]:
        admin_accounts = collect_pages(client.list_organization_admin_accounts, "AdminAccounts")
        if len(admin_accounts) > 1:
            raise ServiceException("Multiple admin accounts for GuardDuty in organization")
        if not admin_accounts:
            return None

        admin = admin_accounts[0]
        if admin.get("AdminStatus") == "DISABLE_IN_PROGRESS":
            raise ServiceException(f"Admin account {admin.get('AdminAccountId')} is in {admin['AdminStatus']}")
        if admin.get("AdminStatus") == "ENABLED":
            return admin.get("AdminAccountId")
        return None

    def _enable_admin_account(self, client: Any, account_id: str) -> None:
        throttling_back_off(client.enable_organization_admin_account, AdminAccountId=account_id)

    def _disable_admin_account(self, client: Any, account_id: str) -> None:
        throttling_back_off(client.disable_organization_admin_account, AdminAccountId=account_id)
