"""AWS Organizations checks before a landing zone is created.

A new landing zone can only be deployed into an organization that is still
empty: no enabled service access, no OUs, no accounts beyond the management
account (GovCloud: exactly the management, log archive and audit accounts)
and no IAM Identity Center instance.
"""

import logging
from typing import Any, Dict, List

from botocore.exceptions import ClientError

from ..common.organizations import (
    get_account_details_from_organizations,
    get_organization_accounts,
    get_organization_root_id,
    get_organizational_units_for_parent,
)
from ..core.aws_client import AWSClientManager
from ..core.exceptions import InvalidInputError
from ..core.functions import collect_pages
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)

GOV_CLOUD_PARTITION = "aws-us-gov"


class OrganizationsManager:
    """Validates and prepares AWS Organizations for Control Tower."""

    def __init__(self, aws_client: AWSClientManager, global_region: str) -> None:
        """Initialize Organizations manager.

        Args:
            aws_client: Client manager of the management account
            global_region: Region of the Organizations endpoint
        """
        self.aws_client = aws_client
        self.global_region = global_region

    def _get_client(self) -> Any:
        return self.aws_client.get_client("organizations", self.global_region)

    def validate(self, partition: str, log_archive_email: str, audit_email: str) -> None:
        """Check the organization can host a new landing zone, then enable all features.

        Args:
            partition: AWS partition
            log_archive_email: Email of the log archive account
            audit_email: Email of the audit account

        Raises:
            InvalidInputError: Listing every issue found
        """
        client = self._get_client()
        errors: List[str] = []

        if self._identity_center_enabled():
            errors.append("AWS Control Tower Landing Zone cannot deploy because IAM Identity Center is configured.")

        if not self._organization_configured(client):
            errors.append(
                "AWS Control Tower Landing Zone cannot deploy because AWS Organizations have not been configured "
                "for the environment."
            )
        else:
            if self._any_service_enabled(client):
                errors.append(
                    "AWS Control Tower Landing Zone cannot deploy because AWS Organizations have services enabled."
                )
            if self._has_organizational_units(client):
                errors.append(
                    "AWS Control Tower Landing Zone cannot deploy because there are multiple organizational units "
                    "in AWS Organizations."
                )
            if self._has_additional_accounts(client, partition, log_archive_email, audit_email):
                if partition == GOV_CLOUD_PARTITION:
                    errors.append(
                        "Either AWS Organizations does not have required shared accounts (LogArchive and Audit) "
                        "or have other accounts."
                    )
                else:
                    errors.append(
                        "AWS Control Tower Landing Zone cannot deploy because there are multiple accounts in "
                        "AWS Organizations."
                    )

        if errors:
            raise InvalidInputError(f"AWS Organization validation has {len(errors)} issue(s):\n" + "\n".join(errors))

        self.enable_all_features()

    def enable_all_features(self) -> None:
        """Enable all features on the organization when only consolidated billing is on."""
        client = self._get_client()
        organization = throttling_back_off(client.describe_organization)["Organization"]
        if organization.get("FeatureSet") != "ALL":
            logger.warning(
                f"The existing AWS Organization {organization.get('Id')} does not have all features enabled. "
                "The solution will update your organization so that all features are enabled."
            )
            throttling_back_off(client.enable_all_features)

    def get_account_by_email(self, email: str) -> Dict[str, Any]:
        """Get an organization account by email.

        Raises:
            InvalidInputError: When no account with an ID has this email
        """
        account = get_account_details_from_organizations(self._get_client(), email)
        if not account or not account.get("Id"):
            raise InvalidInputError(f"Account with email {email} not found")
        return account

    @staticmethod
    def _organization_configured(client: Any) -> bool:
        try:
            response = throttling_back_off(client.describe_organization)
        except ClientError as e:
            if e.response["Error"]["Code"] == "AWSOrganizationsNotInUseException":
                return False
            raise
        if (response.get("Organization") or {}).get("Id"):
            logger.info("AWS Organizations already configured")
            return True
        return False

    @staticmethod
    def _any_service_enabled(client: Any) -> bool:
        principals = collect_pages(client.list_aws_service_access_for_organization, "EnabledServicePrincipals")
        if principals:
            names = ",".join(item.get("ServicePrincipal", "") for item in principals)
            logger.warning(
                f'AWS Organizations have multiple services enabled "{names}", the solution cannot deploy '
                "AWS Control Tower Landing Zone."
            )
            return True
        return False

    @staticmethod
    def _has_organizational_units(client: Any) -> bool:
        organizational_units = get_organizational_units_for_parent(client, get_organization_root_id(client))
        if organizational_units:
            names = ",".join(ou.get("Name", "") for ou in organizational_units)
            logger.warning(
                f'AWS Organizations have multiple organization units "{names}", the solution cannot deploy '
                "AWS Control Tower Landing Zone."
            )
            return True
        return False

    @staticmethod
    def _has_additional_accounts(client: Any, partition: str, log_archive_email: str, audit_email: str) -> bool:
        accounts = get_organization_accounts(client)
        listing = ",".join(f"{account.get('Name')} -> {account.get('Email')}" for account in accounts)

        if partition == GOV_CLOUD_PARTITION:
            emails = {account.get("Email") for account in accounts}
            if len(accounts) == 3 and log_archive_email in emails and audit_email in emails:
                return False
            logger.warning(
                "Either AWS Organizations does not have required shared accounts (LogArchive and Audit) or have "
                f'other accounts. Existing AWS Organizations accounts are - "{listing}", the solution cannot deploy '
                "AWS Control Tower Landing Zone."
            )
            return True

        if len(accounts) > 1:
            logger.warning(
                f'AWS Organizations have multiple accounts "{listing}", the solution cannot deploy '
                "AWS Control Tower Landing Zone."
            )
            return True
        return False

    def _identity_center_enabled(self) -> bool:
        client = self.aws_client.get_client("sso-admin")
        instances = collect_pages(client.list_instances, "Instances")
        if instances:
            stores = ",".join(instance.get("IdentityStoreId", "") for instance in instances)
            logger.warning(
                f'AWS Organizations have IAM Identity Center enabled "{stores}", the solution cannot deploy '
                "AWS Control Tower Landing Zone."
            )
            return True
        return False
