"""Read-only AWS Organizations lookups.

Lookups return None, False or an empty list when the thing asked for does
not exist, and raise ``ServiceException`` only when an API response breaks
its documented contract.
"""

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from ..core.exceptions import ServiceException
from ..core.functions import collect_pages
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)

ROOT_NAME = "Root"


def is_organizations_configured(client: Any) -> bool:
    """Check whether the account belongs to an AWS Organization."""
    try:
        throttling_back_off(client.describe_organization)
        return True
    except ClientError as e:
        if e.response["Error"]["Code"] == "AWSOrganizationsNotInUseException":
            return False
        raise


def get_organization_id(client: Any) -> str:
    """Get the organization ID.

    Raises:
        ServiceException: When DescribeOrganization returns no organization ID
    """
    response = throttling_back_off(client.describe_organization)
    organization = response.get("Organization")
    if organization is None:
        raise ServiceException("DescribeOrganizationCommand api did not return Organization object.")
    if not organization.get("Id"):
        raise ServiceException("DescribeOrganizationCommand api did not return Organization object Id property.")
    return organization["Id"]


def get_organization_root_id(client: Any) -> str:
    """Get the organization root ID.

    Raises:
        ServiceException: When ListRoots returns no root with an ID
    """
    response = throttling_back_off(client.list_roots)
    roots = response.get("Roots")
    if roots is None:
        raise ServiceException("ListRootsCommand api did not return Roots object.")
    if not roots:
        raise ServiceException("ListRootsCommand api returned no organization roots.")
    root_id = roots[0].get("Id")
    if not root_id:
        raise ServiceException("ListRootsCommand api did not return Root object Id property.")
    return root_id


def get_organizational_units_for_parent(client: Any, parent_id: str) -> List[Dict[str, Any]]:
    """List the organizational units directly under a parent."""
    return collect_pages(
        client.list_organizational_units_for_parent, "OrganizationalUnits", ParentId=parent_id
    )


def get_organizational_unit_id_by_path(client: Any, path: str) -> Optional[str]:
    """Resolve an OU path such as ``Level1/Level2`` to an OU ID.

    A leading ``Root`` segment is optional and ``Root`` alone resolves to the
    organization root.

    Args:
        client: Organizations client
        path: Slash-delimited OU path

    Returns:
        OU (or root) ID, or None when any segment does not exist
    """
    segments = [segment for segment in (path or "").split("/") if segment]
    if not segments:
        return None

    parent_id = get_organization_root_id(client)
    if segments[0] == ROOT_NAME:
        segments = segments[1:]
        # "Root/Root" also denotes the root itself
        if segments == [ROOT_NAME]:
            segments = []

    for name in segments:
        match = next(
            (ou for ou in get_organizational_units_for_parent(client, parent_id) if ou.get("Name") == name),
            None,
        )
        if not match or not match.get("Id"):
            logger.info(f"Organizational unit '{name}' not found in path '{path}'")
            return None
        parent_id = match["Id"]

    return parent_id


def get_parent_ou_id(client: Any, parent_path: str) -> Optional[str]:
    """Get the ID of a parent given its path; ``Root`` is the organization root."""
    if parent_path == ROOT_NAME:
        return get_organization_root_id(client)
    return get_organizational_unit_id_by_path(client, parent_path)


def get_organizational_unit_arn(client: Any, ou_id: str) -> Optional[str]:
    """Get the ARN of an OU, or None when it does not exist."""
    try:
        response = throttling_back_off(client.describe_organizational_unit, OrganizationalUnitId=ou_id)
    except ClientError as e:
        if e.response["Error"]["Code"] == "OrganizationalUnitNotFoundException":
            return None
        raise
    return response.get("OrganizationalUnit", {}).get("Arn")


def get_organization_accounts(client: Any) -> List[Dict[str, Any]]:
    """List every account of the organization."""
    return collect_pages(client.list_accounts, "Accounts")


def get_account_details_from_organizations(client: Any, email: str) -> Optional[Dict[str, Any]]:
    """Find an organization account by email, case-insensitively."""
    for account in get_organization_accounts(client):
        if account.get("Email") and account["Email"].lower() == email.lower():
            return account
    return None

