"""AWS Control Tower landing zone manifest generation and validation.

The manifest is the document passed to ``CreateLandingZone`` and
``UpdateLandingZone``. On update it is merged over the existing manifest so
settings owned by other tooling are preserved.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.exceptions import InvalidInputError


DEFAULT_SECURITY_OU_NAME = "Security"

REQUIRED_FIELDS = ("governedRegions", "organizationStructure", "centralizedLogging", "securityRoles")


@dataclass
class LandingZoneSettings:
    """Desired landing zone state resolved from module configuration."""

    version: str
    log_archive_account_id: str
    audit_account_id: str
    enable_identity_center_access: bool
    logging_bucket_retention_days: int
    access_logging_bucket_retention_days: int
    enable_organization_trail: bool
    governed_regions: List[str] = field(default_factory=list)


def make_manifest(
    settings: LandingZoneSettings,
    security_ou_name: str = DEFAULT_SECURITY_OU_NAME,
    kms_key_arn: Optional[str] = None,
    sandbox_ou_name: Optional[str] = None,
    existing_manifest: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the landing zone manifest.

    Args:
        settings: Desired landing zone settings
        security_ou_name: Name of the security OU
        kms_key_arn: Optional KMS key encrypting centralized logs
        sandbox_ou_name: Optional name of the sandbox OU
        existing_manifest: Current manifest when updating

    Returns:
        Manifest document
    """
    organization_structure: Dict[str, Any] = {"security": {"name": security_ou_name}}
    if sandbox_ou_name:
        organization_structure["sandbox"] = {"name": sandbox_ou_name}

    configurations: Dict[str, Any] = {
        "loggingBucket": {"retentionDays": settings.logging_bucket_retention_days},
        "accessLoggingBucket": {"retentionDays": settings.access_logging_bucket_retention_days},
    }
    if kms_key_arn:
        configurations["kmsKeyArn"] = kms_key_arn

    manifest = {
        "governedRegions": list(settings.governed_regions),
        "organizationStructure": organization_structure,
        "centralizedLogging": {
            "accountId": settings.log_archive_account_id,
            "configurations": configurations,
            "enabled": settings.enable_organization_trail,
        },
        "securityRoles": {"accountId": settings.audit_account_id},
        "accessManagement": {"enabled": settings.enable_identity_center_access},
    }

    if existing_manifest:
        merged = copy.deepcopy(existing_manifest)
        merged.update(manifest)
        manifest = merged

    validate_manifest(manifest)
    return manifest


def validate_manifest(manifest: Dict[str, Any]) -> bool:
    """Validate manifest structure before it is sent to Control Tower.

    Raises:
        InvalidInputError: When the manifest is malformed
    """
    for name in REQUIRED_FIELDS:
        if name not in manifest:
            raise InvalidInputError(f"Missing required field in manifest: {name}")

    governed_regions = manifest["governedRegions"]
    if not isinstance(governed_regions, list) or not governed_regions:
        raise InvalidInputError("governedRegions must be a non-empty list")

    if "security" not in manifest["organizationStructure"]:
        raise InvalidInputError("organizationStructure must contain 'security' OU")

    log_account_id = manifest["centralizedLogging"].get("accountId")
    audit_account_id = manifest["securityRoles"].get("accountId")
    for label, account_id in (("centralizedLogging", log_account_id), ("securityRoles", audit_account_id)):
        if not isinstance(account_id, str) or len(account_id) != 12 or not account_id.isdigit():
            raise InvalidInputError(f"Invalid {label} account ID format: {account_id}")

    if log_account_id == audit_account_id:
        raise InvalidInputError("centralizedLogging and securityRoles must use different account IDs")

    return True


def governed_regions_changed(existing_regions: List[str], config_regions: List[str]) -> bool:
    """Check whether two governed region lists differ, ignoring order."""
    if len(existing_regions) != len(config_regions):
        return True
    return not all(region in config_regions for region in existing_regions)
