"""Unit tests for the organizational unit inventory."""

import pytest

from lza_modules.core.exceptions import ServiceException
from lza_modules.core.interfaces import ModuleStatus
from lza_modules.organizations.get_organizational_units_detail import (
    GetOrganizationalUnitsDetailConfiguration,
    GetOrganizationalUnitsDetailModule,
)

from conftest import client_error, make_parameter, organization_tree


def with_arns(client):
    """Give every OU of the sample tree an ARN."""
    listing = client.list_organizational_units_for_parent.side_effect

    def list_with_arns(ParentId):
        units = listing(ParentId=ParentId)["OrganizationalUnits"]
        return {
            "OrganizationalUnits": [
                dict(unit, Arn=f"arn:aws:organizations::111:ou/o-1/{unit['Id']}") for unit in units
            ]
        }

    client.list_organizational_units_for_parent.side_effect = list_with_arns


class TestGetOrganizationalUnitsDetail:
    """Test cases for GetOrganizationalUnitsDetailModule."""

    @pytest.fixture(autouse=True)
    def setup(self, aws_clients, client_factory, no_backoff_sleep):
        self.organizations = aws_clients["organizations"]
        self.controltower = aws_clients["controltower"]
        self.organizations.describe_organization.return_value = {"Organization": {"Id": "o-1"}}
        organization_tree(self.organizations)
        with_arns(self.organizations)
        self.module = GetOrganizationalUnitsDetailModule(client_factory=client_factory)

    def run(self, enable_control_tower=False, dry_run=False):
        return self.module.handler(
            make_parameter(operation="get-organizational-units-detail", dry_run=dry_run),
            GetOrganizationalUnitsDetailConfiguration(enable_control_tower=enable_control_tower),
        )

    def test_walks_tree_depth_first(self):
        result = self.run()

        assert result.status is ModuleStatus.SUCCESS
        assert result.message == "Found 3 organizational units."
        assert [item["completePath"] for item in result.data] == ["Security", "Security/Audit", "Workloads"]

        audit = result.data[1]
        assert audit["ouLevel"] == 2
        assert audit["parentId"] == "ou-sec"
        assert audit["parentName"] == "Security"
        assert audit["parentCompletePath"] == "Security"
        assert audit["organizationId"] == "o-1"
        assert audit["rootId"] == "r-1"
        assert audit["registeredWithControlTower"] is False

        assert result.data[0]["parentName"] == "Root"
        assert result.data[0]["parentCompletePath"] == ""

    def test_organizations_not_configured(self):
        self.organizations.describe_organization.side_effect = client_error("AWSOrganizationsNotInUseException")

        result = self.run()

        assert result.status is ModuleStatus.NO_CHANGE
        assert result.data == []

    def test_control_tower_registration(self):
        self.controltower.list_landing_zones.return_value = {"landingZones": [{"arn": "arn:lz"}]}
        self.controltower.list_enabled_baselines.return_value = {
            "enabledBaselines": [{"targetIdentifier": "ARN:AWS:ORGANIZATIONS::111:OU/O-1/OU-SEC"}]
        }

        result = self.run(enable_control_tower=True)

        registered = {item["name"]: item["registeredWithControlTower"] for item in result.data}
        assert registered == {"Security": True, "Audit": False, "Workloads": False}

    def test_control_tower_without_landing_zone(self):
        self.controltower.list_landing_zones.return_value = {"landingZones": []}

        result = self.run(enable_control_tower=True)

        assert not any(item["registeredWithControlTower"] for item in result.data)
        self.controltower.list_enabled_baselines.assert_not_called()

    def test_dry_run_reads_the_same(self):
        assert self.run(dry_run=True).data == self.run().data

    def test_incomplete_ou_record(self):
        self.organizations.list_organizational_units_for_parent.side_effect = None
        self.organizations.list_organizational_units_for_parent.return_value = {
            "OrganizationalUnits": [{"Id": "ou-x", "Name": "NoArn"}]
        }

        with pytest.raises(ServiceException):
            self.run()
