"""Unit tests for moving accounts between organizational units."""

import pytest
from botocore.exceptions import ClientError

from lza_modules.core.exceptions import InvalidInputError, ServiceException
from lza_modules.organizations.move_account import MoveAccountConfiguration, MoveAccountModule

from conftest import client_error, make_parameter, organization_tree


class TestMoveAccount:
    """Test cases for MoveAccountModule."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_factory, no_backoff_sleep):
        self.organizations = aws_clients["organizations"]
        organization_tree(self.organizations)
        self.organizations.list_accounts.return_value = {
            "Accounts": [{"Id": "222222222222", "Email": "workload@example.com"}]
        }
        self.organizations.list_parents.return_value = {"Parents": [{"Id": "r-1", "Type": "ROOT"}]}
        self.module = MoveAccountModule(client_factory=client_factory)

    def run(self, destination="Security/Audit", email="workload@example.com", dry_run=False):
        return self.module.handler(
            make_parameter(operation="move-account", dry_run=dry_run),
            MoveAccountConfiguration(email=email, destination_ou=destination),
        )

    def test_moves_account(self):
        result = self.run()

        assert result == (
            'AWS Account with email "workload@example.com" successfully moved from "r-1" OU to "ou-audit" OU.'
        )
        self.organizations.move_account.assert_called_once_with(
            AccountId="222222222222", SourceParentId="r-1", DestinationParentId="ou-audit"
        )

    def test_already_in_destination(self):
        self.organizations.list_parents.return_value = {"Parents": [{"Id": "ou-audit", "Type": "ORGANIZATIONAL_UNIT"}]}

        result = self.run()

        assert "accelerator skipped the Account move process" in result
        self.organizations.move_account.assert_not_called()

    def test_destination_not_found(self):
        with pytest.raises(InvalidInputError) as exc_info:
            self.run(destination="Nowhere")

        assert 'Organizational Unit path "Nowhere" not found.' in str(exc_info.value)

    def test_account_not_in_organization(self):
        with pytest.raises(InvalidInputError):
            self.run(email="stranger@example.com")

        self.organizations.list_parents.assert_not_called()

    def test_child_not_found(self):
        self.organizations.list_parents.side_effect = client_error("ChildNotFoundException")

        with pytest.raises(InvalidInputError) as exc_info:
            self.run()

        assert "does not have parent OU" in str(exc_info.value)

    def test_multiple_parents(self):
        self.organizations.list_parents.return_value = {"Parents": [{"Id": "r-1"}, {"Id": "ou-sec"}]}

        with pytest.raises(ServiceException) as exc_info:
            self.run()

        assert "multiple Parents" in str(exc_info.value)

    def test_move_error_propagates(self):
        self.organizations.move_account.side_effect = client_error("AccessDeniedException")

        with pytest.raises(ClientError):
            self.run()

    def test_dry_run_move(self):
        result = self.run(dry_run=True)

        assert 'accelerator will move the account into "ou-audit" OU.' in result
        self.organizations.move_account.assert_not_called()

    def test_dry_run_invalid_destination(self):
        result = self.run(destination="Nowhere", dry_run=True)

        assert "Validation: ✗ Failed" in result
        assert 'Invalid destination ou: "Nowhere"' in result

    def test_second_run_makes_no_mutations(self):
        def move_account(AccountId, SourceParentId, DestinationParentId):
            self.organizations.list_parents.return_value = {
                "Parents": [{"Id": DestinationParentId, "Type": "ORGANIZATIONAL_UNIT"}]
            }
            return {}

        self.organizations.move_account.side_effect = move_account

        first = self.run()
        second = self.run()
        third = self.run()

        assert "successfully moved" in first
        assert "accelerator skipped the Account move process" in second
        assert "accelerator skipped the Account move process" in third
        assert self.organizations.move_account.call_count == 1
