"""Unit tests for organizational unit creation."""

import pytest

from lza_modules.core.exceptions import InvalidInputError, ServiceException
from lza_modules.core.interfaces import Tag
from lza_modules.organizations.create_organizational_unit import (
    CreateOrganizationalUnitConfiguration,
    CreateOrganizationalUnitModule,
    split_ou_path,
)

from conftest import make_parameter, organization_tree


class TestCreateOrganizationalUnit:
    """Test cases for CreateOrganizationalUnitModule."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_factory, no_backoff_sleep):
        self.organizations = aws_clients["organizations"]
        organization_tree(self.organizations)
        self.client_factory = client_factory
        self.module = CreateOrganizationalUnitModule(client_factory=client_factory)

    def run(self, name, dry_run=False, tags=None):
        return self.module.handler(
            make_parameter(operation="create-organizational-unit", region="eu-west-1", dry_run=dry_run),
            CreateOrganizationalUnitConfiguration(name=name, tags=tags),
        )

    def test_split_ou_path(self):
        assert split_ou_path("Sandbox") == ("Root", "Sandbox")
        assert split_ou_path("Security/Audit/Logs") == ("Security/Audit", "Logs")
        assert split_ou_path("Security/") == ("Root", "Security")

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            CreateOrganizationalUnitConfiguration(name="/")

    def test_creates_ou_under_parent(self):
        self.organizations.create_organizational_unit.return_value = {"OrganizationalUnit": {"Id": "ou-logs"}}

        result = self.run("Security/Logs", tags=[Tag("Env", "prod")])

        assert result == 'AWS Organizations organizational unit "Logs" created successfully. New OU id is "ou-logs".'
        self.organizations.create_organizational_unit.assert_called_once_with(
            ParentId="ou-sec", Name="Logs", Tags=[{"Key": "Env", "Value": "prod"}]
        )

    def test_uses_global_region(self):
        self.organizations.create_organizational_unit.return_value = {"OrganizationalUnit": {"Id": "ou-new"}}

        self.run("Sandbox")

        assert self.client_factory.call_args.kwargs["region"] == "us-east-1"

    def test_existing_ou_skipped(self):
        result = self.run("Security/Audit")

        assert "exist, ou creation operation skipped" in result
        self.organizations.create_organizational_unit.assert_not_called()

    def test_missing_parent(self):
        with pytest.raises(InvalidInputError) as exc_info:
            self.run("Missing/Child")

        assert 'Parent OU "Missing" of new ou Child not found.' in str(exc_info.value)
        self.organizations.create_organizational_unit.assert_not_called()

    def test_response_without_id(self):
        self.organizations.create_organizational_unit.return_value = {}

        with pytest.raises(ServiceException):
            self.run("Sandbox")

    def test_dry_run_create(self):
        result = self.run("Sandbox", dry_run=True)

        assert result.startswith(
            "[DRY-RUN]: aws-organizations create-organizational-unit (no actual changes were made)"
        )
        assert 'does not exists, accelerator will create the new OU.' in result
        self.organizations.create_organizational_unit.assert_not_called()

    def test_dry_run_existing(self):
        result = self.run("Security/Audit", dry_run=True)

        assert "accelerator will skip the OU creation process" in result

    def test_dry_run_missing_parent(self):
        result = self.run("Missing/Child", dry_run=True)

        assert "Validation: ✗ Failed" in result
        assert 'parent ou "Missing" of new ou "Child" not found' in result

    def test_split_ou_path_with_leading_slash(self):
        assert split_ou_path("/Dev") == ("Root", "Dev")
        assert split_ou_path("/Security/Logs/") == ("Security", "Logs")

    def test_leading_slash_creates_under_root(self):
        self.organizations.create_organizational_unit.return_value = {"OrganizationalUnit": {"Id": "ou-dev"}}

        self.run("/Dev")

        self.organizations.create_organizational_unit.assert_called_once_with(ParentId="r-1", Name="Dev", Tags=[])

    def test_second_run_makes_no_mutations(self):
        children = organization_tree(self.organizations)

        def create_organizational_unit(ParentId, Name, Tags):
            children[ParentId].append({"Id": "ou-logs", "Name": Name})
            return {"OrganizationalUnit": {"Id": "ou-logs"}}

        self.organizations.create_organizational_unit.side_effect = create_organizational_unit

        first = self.run("Security/Logs")
        second = self.run("Security/Logs")
        third = self.run("Security/Logs")

        assert "created successfully" in first
        assert "exist, ou creation operation skipped" in second
        assert "exist, ou creation operation skipped" in third
        assert self.organizations.create_organizational_unit.call_count == 1
