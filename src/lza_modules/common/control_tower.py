"""Read-only AWS Control Tower lookups."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from ..core.exceptions import ServiceException
from ..core.functions import collect_pages
from ..core.throttle import throttling_back_off


@dataclass
class LandingZoneDetails:
    """Current landing zone state parsed from GetLandingZone."""

    landing_zone_identifier: str
    status: Optional[str] = None
    version: Optional[str] = None
    latest_available_version: Optional[str] = None
    drift_status: Optional[str] = None
    governed_regions: List[str] = field(default_factory=list)
    security_ou_name: Optional[str] = None
    sandbox_ou_name: Optional[str] = None
    enable_identity_center_access: Optional[bool] = None
    logging_bucket_retention_days: Optional[int] = None
    access_logging_bucket_retention_days: Optional[int] = None
    kms_key_arn: Optional[str] = None
    manifest: Dict[str, Any] = field(default_factory=dict)


def get_landing_zone_identifier(client: Any) -> Optional[str]:
    """Get the ARN of the landing zone, or None when none is deployed.

    Raises:
        ServiceException: When more than one landing zone is returned
    """
    landing_zones = collect_pages(client.list_landing_zones, "landingZones", token_name="nextToken")
    if len(landing_zones) > 1:
        raise ServiceException(
            f"Internal error: ListLandingZonesCommand returned multiple landing zones ({len(landing_zones)})."
        )
    if landing_zones:
        return landing_zones[0].get("arn")
    return None


def get_landing_zone_details(
    client: Any, region: str, landing_zone_identifier: Optional[str] = None
) -> Optional[LandingZoneDetails]:
    """Get landing zone configuration and status.

    Args:
        client: Control Tower client
        region: Region the module is running in
        landing_zone_identifier: Landing zone ARN; None means no landing zone

    Returns:
        LandingZoneDetails, or None without an identifier

    Raises:
        ServiceException: When the landing zone lives in another home region
    """
    if not landing_zone_identifier:
        return None

    try:
        response = throttling_back_off(
            client.get_landing_zone, landingZoneIdentifier=landing_zone_identifier
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceNotFoundException":
            raise ServiceException(
                "Existing AWS Control Tower Landing Zone home region differs from the executing "
                f"environment region {region}. Existing Landing Zone identifier is {landing_zone_identifier}"
            )
        raise

    details = LandingZoneDetails(landing_zone_identifier=landing_zone_identifier)
    landing_zone = response.get("landingZone")
    if not landing_zone:
        return details

    manifest = landing_zone.get("manifest") or {}
    details.manifest = manifest
    details.governed_regions = list(manifest.get("governedRegions", []))

    access_management = manifest.get("accessManagement")
    if access_management is not None:
        details.enable_identity_center_access = access_management.get("enabled")

    organization_structure = manifest.get("organizationStructure") or {}
    details.security_ou_name = organization_structure.get("security", {}).get("name")
    details.sandbox_ou_name = organization_structure.get("sandbox", {}).get("name")

    configurations = (manifest.get("centralizedLogging") or {}).get("configurations") or {}
    details.logging_bucket_retention_days = configurations.get("loggingBucket", {}).get("retentionDays")
    details.access_logging_bucket_retention_days = configurations.get("accessLoggingBucket", {}).get(
        "retentionDays"
    )
    details.kms_key_arn = configurations.get("kmsKeyArn")

    details.landing_zone_identifier = landing_zone.get("arn", landing_zone_identifier)
    details.status = landing_zone.get("status")
    details.version = landing_zone.get("version")
    details.latest_available_version = landing_zone.get("latestAvailableVersion")
    details.drift_status = (landing_zone.get("driftStatus") or {}).get("status")
    return details


def get_enabled_baselines(client: Any) -> List[Dict[str, Any]]:
    """List every enabled baseline record."""
    return collect_pages(client.list_enabled_baselines, "enabledBaselines", token_name="nextToken")


def get_available_baselines(client: Any) -> List[Dict[str, Any]]:
    """List every baseline Control Tower offers."""
    return collect_pages(client.list_baselines, "baselines", token_name="nextToken")
