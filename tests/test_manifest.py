"""Unit tests for landing zone manifest generation."""

import pytest

from lza_modules.control_tower.manifest import (
    LandingZoneSettings,
    governed_regions_changed,
    make_manifest,
    validate_manifest,
)
from lza_modules.core.exceptions import InvalidInputError


def settings(**overrides):
    values = {
        "version": "3.3",
        "log_archive_account_id": "222222222222",
        "audit_account_id": "333333333333",
        "enable_identity_center_access": True,
        "logging_bucket_retention_days": 365,
        "access_logging_bucket_retention_days": 3650,
        "enable_organization_trail": True,
        "governed_regions": ["us-east-1", "us-west-2"],
    }
    values.update(overrides)
    return LandingZoneSettings(**values)


class TestMakeManifest:
    """Test cases for make_manifest."""

    def test_new_manifest(self):
        manifest = make_manifest(settings(), kms_key_arn="arn:kms")

        assert manifest == {
            "governedRegions": ["us-east-1", "us-west-2"],
            "organizationStructure": {"security": {"name": "Security"}},
            "centralizedLogging": {
                "accountId": "222222222222",
                "configurations": {
                    "loggingBucket": {"retentionDays": 365},
                    "accessLoggingBucket": {"retentionDays": 3650},
                    "kmsKeyArn": "arn:kms",
                },
                "enabled": True,
            },
            "securityRoles": {"accountId": "333333333333"},
            "accessManagement": {"enabled": True},
        }

    def test_sandbox_and_custom_security_ou(self):
        manifest = make_manifest(settings(), security_ou_name="Sec", sandbox_ou_name="Sandbox")

        assert manifest["organizationStructure"] == {"security": {"name": "Sec"}, "sandbox": {"name": "Sandbox"}}
        assert "kmsKeyArn" not in manifest["centralizedLogging"]["configurations"]

    def test_merges_over_existing_manifest(self):
        existing = {"backup": {"enabled": False}, "governedRegions": ["us-east-1"]}

        manifest = make_manifest(settings(), existing_manifest=existing)

        assert manifest["backup"] == {"enabled": False}
        assert manifest["governedRegions"] == ["us-east-1", "us-west-2"]
        assert existing["governedRegions"] == ["us-east-1"]


class TestValidateManifest:
    """Test cases for validate_manifest."""

    def test_valid(self):
        assert validate_manifest(make_manifest(settings())) is True

    def test_missing_field(self):
        manifest = make_manifest(settings())
        del manifest["securityRoles"]

        with pytest.raises(InvalidInputError) as exc_info:
            validate_manifest(manifest)

        assert "securityRoles" in str(exc_info.value)

    def test_empty_regions(self):
        with pytest.raises(InvalidInputError):
            make_manifest(settings(governed_regions=[]))

    def test_invalid_account_id(self):
        with pytest.raises(InvalidInputError) as exc_info:
            make_manifest(settings(audit_account_id="123"))

        assert "Invalid securityRoles account ID format: 123" in str(exc_info.value)

    def test_same_account_for_logging_and_audit(self):
        with pytest.raises(InvalidInputError):
            make_manifest(settings(audit_account_id="222222222222"))


class TestGovernedRegionsChanged:
    """Test cases for governed_regions_changed."""

    def test_order_ignored(self):
        assert governed_regions_changed(["us-west-2", "us-east-1"], ["us-east-1", "us-west-2"]) is False

    def test_added_region(self):
        assert governed_regions_changed(["us-east-1"], ["us-east-1", "eu-west-1"]) is True

    def test_replaced_region(self):
        assert governed_regions_changed(["us-east-1", "us-west-2"], ["us-east-1", "eu-west-1"]) is True
