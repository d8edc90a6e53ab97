"""Unit tests for security service delegated administrator modules."""

import pytest
from botocore.exceptions import ClientError

from lza_modules.core.exceptions import InvalidInputError, ServiceException
from lza_modules.security_services.base import OrganizationAdminConfiguration, single_admin
from lza_modules.security_services.detective import DetectiveOrganizationAdminModule
from lza_modules.security_services.guardduty import GuardDutyOrganizationAdminModule
from lza_modules.security_services.macie import MacieOrganizationAdminModule
from lza_modules.security_services.security_hub import SecurityHubOrganizationAdminModule

from conftest import client_error, make_parameter

ADMIN = "333333333333"
OTHER = "444444444444"


def guardduty_admins(*statuses):
    """ListOrganizationAdminAccounts pages, one per call, for the audit account."""
    return [
        {"AdminAccounts": [{"AdminAccountId": ADMIN, "AdminStatus": status}] if status else []}
        for status in statuses
    ]


class TestSingleAdmin:
    """Test cases for single_admin."""

    def test_values(self):
        assert single_admin([], "Detective") is None
        assert single_admin([ADMIN], "Detective") == ADMIN

    def test_multiple(self):
        with pytest.raises(ServiceException) as exc_info:
            single_admin([ADMIN, OTHER], "Detective")

        assert "Multiple admin accounts for Detective in organization" in str(exc_info.value)


class TestGuardDutyOrganizationAdmin:
    """Test cases for GuardDutyOrganizationAdminModule."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_factory, sleep, no_backoff_sleep):
        self.guardduty = aws_clients["guardduty"]
        self.guardduty.list_detectors.return_value = {"DetectorIds": ["d-1"]}
        self.guardduty.get_detector.return_value = {"Status": "ENABLED"}
        self.sleep = sleep
        self.module = GuardDutyOrganizationAdminModule(client_factory=client_factory, sleep=sleep)

    def run(self, enable=True, account_id=ADMIN, dry_run=False):
        return self.module.handler(
            make_parameter(operation="manage-organization-admin", dry_run=dry_run),
            OrganizationAdminConfiguration(enable=enable, account_id=account_id),
        )

    def test_sets_admin(self):
        self.guardduty.list_organization_admin_accounts.side_effect = guardduty_admins(None, "ENABLED")

        result = self.run()

        assert result == f"Successfully set GuardDuty Organization Admin to AWS Account with ID {ADMIN}"
        self.guardduty.enable_organization_admin_account.assert_called_once_with(AdminAccountId=ADMIN)
        self.guardduty.create_detector.assert_not_called()

    def test_enables_guardduty_first(self):
        self.guardduty.list_detectors.side_effect = [{"DetectorIds": []}, {"DetectorIds": ["d-1"]}]
        self.guardduty.list_organization_admin_accounts.side_effect = guardduty_admins(None, "ENABLED")

        self.run()

        self.guardduty.create_detector.assert_called_once_with(Enable=True)
        self.guardduty.enable_organization_admin_account.assert_called_once()

    def test_already_admin_makes_no_calls(self):
        self.guardduty.list_organization_admin_accounts.return_value = guardduty_admins("ENABLED")[0]

        result = self.run()

        assert result == f"AWS Account with ID {ADMIN} is already the GuardDuty Organization Admin"
        self.guardduty.enable_organization_admin_account.assert_not_called()

    def test_other_admin(self):
        self.guardduty.list_organization_admin_accounts.return_value = {
            "AdminAccounts": [{"AdminAccountId": OTHER, "AdminStatus": "ENABLED"}]
        }

        with pytest.raises(InvalidInputError) as exc_info:
            self.run()

        assert f"already set to {OTHER} account" in str(exc_info.value)

    def test_disable_in_progress(self):
        self.guardduty.list_organization_admin_accounts.return_value = guardduty_admins("DISABLE_IN_PROGRESS")[0]

        with pytest.raises(ServiceException) as exc_info:
            self.run()

        assert "DISABLE_IN_PROGRESS" in str(exc_info.value)

    def test_confirmation_times_out(self):
        self.guardduty.list_organization_admin_accounts.return_value = guardduty_admins(None)[0]

        with pytest.raises(ServiceException) as exc_info:
            self.run()

        assert "Could not get confirmation that GuardDuty Organization admin was set" in str(exc_info.value)
        assert self.sleep.call_count == 5

    def test_removes_admin(self):
        self.guardduty.list_organization_admin_accounts.side_effect = guardduty_admins("ENABLED", None)

        result = self.run(enable=False)

        assert result == f"Successfully removed AWS Account with ID {ADMIN} as GuardDuty Organization Admin"
        self.guardduty.disable_organization_admin_account.assert_called_once_with(AdminAccountId=ADMIN)

    def test_remove_without_admin(self):
        self.guardduty.list_organization_admin_accounts.return_value = guardduty_admins(None)[0]

        result = self.run(enable=False)

        assert "There is no GuardDuty Organization Admin currently set" in result
        self.guardduty.disable_organization_admin_account.assert_not_called()

    def test_remove_other_admin(self):
        self.guardduty.list_organization_admin_accounts.return_value = guardduty_admins("ENABLED")[0]

        with pytest.raises(InvalidInputError):
            self.run(enable=False, account_id=OTHER)

        self.guardduty.disable_organization_admin_account.assert_not_called()

    def test_remove_error_propagates(self):
        self.guardduty.list_organization_admin_accounts.return_value = guardduty_admins("ENABLED")[0]
        self.guardduty.disable_organization_admin_account.side_effect = client_error("BadRequestException")

        with pytest.raises(ClientError):
            self.run(enable=False)

    def test_dry_run(self):
        self.guardduty.list_organization_admin_accounts.return_value = guardduty_admins(None)[0]

        result = self.run(dry_run=True)

        assert f"AWS Account with ID {ADMIN} will be set as the GuardDuty Organization Admin" in result
        self.guardduty.enable_organization_admin_account.assert_not_called()
        self.guardduty.create_detector.assert_not_called()

    def test_dry_run_other_admin(self):
        self.guardduty.list_organization_admin_accounts.return_value = {
            "AdminAccounts": [{"AdminAccountId": OTHER, "AdminStatus": "ENABLED"}]
        }

        assert "Validation: ✗ Failed" in self.run(dry_run=True)

    def test_dry_run_disable_when_not_enabled(self):
        self.guardduty.list_detectors.return_value = {"DetectorIds": []}
        self.guardduty.list_organization_admin_accounts.return_value = guardduty_admins(None)[0]

        assert "GuardDuty is not enabled" in self.run(enable=False, dry_run=True)


class TestMacieOrganizationAdmin:
    """Test cases for MacieOrganizationAdminModule."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_factory, sleep, no_backoff_sleep):
        self.macie = aws_clients["macie2"]
        self.macie.get_macie_session.return_value = {"status": "ENABLED"}
        self.module = MacieOrganizationAdminModule(client_factory=client_factory, sleep=sleep)

    def run(self, enable=True, dry_run=False):
        return self.module.handler(
            make_parameter(operation="manage-organization-admin", dry_run=dry_run),
            OrganizationAdminConfiguration(enable=enable, account_id=ADMIN),
        )

    def test_enables_macie_then_sets_admin(self):
        self.macie.get_macie_session.side_effect = [client_error("AccessDeniedException"), {"status": "ENABLED"}]
        self.macie.list_organization_admin_accounts.side_effect = [
            {"adminAccounts": []},
            {"adminAccounts": [{"accountId": ADMIN, "status": "ENABLED"}]},
        ]

        result = self.run()

        assert result == f"Successfully set Macie Organization Admin to AWS Account with ID {ADMIN}"
        self.macie.enable_macie.assert_called_once_with(status="ENABLED")
        self.macie.enable_organization_admin_account.assert_called_once_with(adminAccountId=ADMIN)

    def test_disabling_admin_is_not_current(self):
        self.macie.list_organization_admin_accounts.return_value = {
            "adminAccounts": [{"accountId": ADMIN, "status": "DISABLING_IN_PROGRESS"}]
        }

        assert self.module.get_organization_admin(self.macie) is None

    def test_removal_waits_until_account_gone(self):
        self.macie.list_organization_admin_accounts.side_effect = [
            {"adminAccounts": [{"accountId": ADMIN, "status": "ENABLED"}]},
            {"adminAccounts": [{"accountId": ADMIN, "status": "DISABLING_IN_PROGRESS"}]},
            {"adminAccounts": []},
        ]

        self.run(enable=False)

        self.macie.disable_organization_admin_account.assert_called_once_with(adminAccountId=ADMIN)
        assert self.macie.list_organization_admin_accounts.call_count == 3

    def test_not_management_account(self):
        self.macie.list_organization_admin_accounts.side_effect = client_error("AccessDeniedException")

        with pytest.raises(ServiceException) as exc_info:
            self.run()

        assert "management account" in str(exc_info.value)


class TestSecurityHubOrganizationAdmin:
    """Test cases for SecurityHubOrganizationAdminModule."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_factory, sleep, no_backoff_sleep):
        self.securityhub = aws_clients["securityhub"]
        self.sleep = sleep
        self.module = SecurityHubOrganizationAdminModule(client_factory=client_factory, sleep=sleep)

    def run(self, enable=True):
        return self.module.handler(
            make_parameter(operation="manage-organization-admin"),
            OrganizationAdminConfiguration(enable=enable, account_id=ADMIN),
        )

    def test_retries_designation(self):
        self.securityhub.enable_security_hub.side_effect = client_error("ResourceConflictException")
        self.securityhub.enable_organization_admin_account.side_effect = [client_error("InvalidAccessException"), {}]
        self.securityhub.list_organization_admin_accounts.side_effect = [
            {"AdminAccounts": []},
            {"AdminAccounts": [{"AccountId": ADMIN, "Status": "ENABLED"}]},
        ]

        result = self.run()

        assert result == f"Successfully set Security Hub Organization Admin to AWS Account with ID {ADMIN}"
        assert self.securityhub.enable_organization_admin_account.call_count == 2
        self.sleep.assert_called_once_with(60)

    def test_designation_attempts_exhausted(self):
        self.securityhub.list_organization_admin_accounts.return_value = {"AdminAccounts": []}
        self.securityhub.enable_organization_admin_account.side_effect = client_error("InvalidAccessException")

        with pytest.raises(ClientError):
            self.run()

        assert self.securityhub.enable_organization_admin_account.call_count == 5

    def test_designation_attempts_setting(self, client_factory):
        self.securityhub.list_organization_admin_accounts.return_value = {"AdminAccounts": []}
        self.securityhub.enable_organization_admin_account.side_effect = client_error("InvalidAccessException")
        module = SecurityHubOrganizationAdminModule(
            client_factory=client_factory,
            sleep=self.sleep,
            settings={"designation_attempts": 2, "confirmation_interval_seconds": 5},
        )

        with pytest.raises(ClientError):
            module.handler(
                make_parameter(operation="manage-organization-admin"),
                OrganizationAdminConfiguration(enable=True, account_id=ADMIN),
            )

        assert self.securityhub.enable_organization_admin_account.call_count == 2
        self.sleep.assert_called_once_with(5)

    def test_enable_hub_error_propagates(self):
        self.securityhub.list_organization_admin_accounts.return_value = {"AdminAccounts": []}
        self.securityhub.enable_security_hub.side_effect = client_error("AccessDeniedException")

        with pytest.raises(ClientError):
            self.run()

        self.securityhub.enable_organization_admin_account.assert_not_called()

    def test_disable_in_progress(self):
        self.securityhub.list_organization_admin_accounts.return_value = {
            "AdminAccounts": [{"AccountId": ADMIN, "Status": "DISABLE_IN_PROGRESS"}]
        }

        with pytest.raises(ServiceException):
            self.run()


class TestDetectiveOrganizationAdmin:
    """Test cases for DetectiveOrganizationAdminModule."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_factory, sleep, no_backoff_sleep):
        self.detective = aws_clients["detective"]
        self.detective.list_organization_admin_accounts.side_effect = [
            {"Administrators": []},
            {"Administrators": [{"AccountId": ADMIN}]},
        ]
        self.module = DetectiveOrganizationAdminModule(client_factory=client_factory, sleep=sleep)

    def run(self):
        return self.module.handler(
            make_parameter(operation="manage-organization-admin"),
            OrganizationAdminConfiguration(enable=True, account_id=ADMIN),
        )

    def test_retries_until_service_linked_role_exists(self):
        self.detective.enable_organization_admin_account.side_effect = [
            client_error("ValidationException", "The service linked role cannot be created"),
            {},
        ]

        self.run()

        assert self.detective.enable_organization_admin_account.call_count == 2
        self.detective.enable_organization_admin_account.assert_called_with(AccountId=ADMIN)

    def test_other_errors_not_retried(self):
        self.detective.enable_organization_admin_account.side_effect = client_error("ValidationException", "bad")

        with pytest.raises(ClientError):
            self.run()

        self.detective.enable_organization_admin_account.assert_called_once()
