"""Moving organization accounts between organizational units."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from botocore.exceptions import ClientError

from ..common.organizations import get_account_details_from_organizations, get_organizational_unit_id_by_path
from ..core.base import ModuleBase
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError, ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleName
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)


@dataclass
class MoveAccountConfiguration:
    """Account (by email) and the OU path it should live in."""

    email: str
    destination_ou: str


class MoveAccountModule(ModuleBase):
    """Moves an account into its destination OU unless it is already there."""

    module_name = ModuleName.AWS_ORGANIZATIONS
    configuration_type = MoveAccountConfiguration

    def handler(self, parameter: ModuleCommonParameter, configuration: MoveAccountConfiguration) -> str:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        client = self._client_manager(parameter, region=defaults.global_region).get_client("organizations")

        account = get_account_details_from_organizations(client, configuration.email)
        destination_parent_id = get_organizational_unit_id_by_path(client, configuration.destination_ou)
        current_parent_id = None
        if account and account.get("Id"):
            current_parent_id = get_account_parent_id(client, configuration.email, account["Id"])

        if defaults.dry_run:
            return self._get_dry_run_response(
                defaults.module_name,
                parameter.operation,
                configuration,
                account,
                destination_parent_id,
                current_parent_id,
            )

        if not destination_parent_id:
            raise InvalidInputError(f'Organizational Unit path "{configuration.destination_ou}" not found.')
        if not account:
            raise InvalidInputError(f'Account with email "{configuration.email}" is not part of AWS Organizations.')
        if not current_parent_id:
            raise InvalidInputError(
                f'Account with email "{configuration.email}" does not have parent OU or the account is not part '
                "of AWS Organizations."
            )

        if current_parent_id == destination_parent_id:
            return (
                f'AWS Account with email "{configuration.email}" already part of AWS Organizations Organizational '
                f'Unit "{configuration.destination_ou}", accelerator skipped the Account move process.'
            )

        logger.info(
            f'Moving account "{configuration.email}" from "{current_parent_id}" to "{destination_parent_id}"'
        )
        try:
            throttling_back_off(
                client.move_account,
                AccountId=account["Id"],
                SourceParentId=current_parent_id,
                DestinationParentId=destination_parent_id,
            )
        except ClientError as e:
            logger.error(
                f'There was an "{e}" error when moving account "{configuration.email}" to OU "{destination_parent_id}".'
            )
            raise

        return (
            f'AWS Account with email "{configuration.email}" successfully moved from "{current_parent_id}" OU to '
            f'"{destination_parent_id}" OU.'
        )

    @staticmethod
    def _get_dry_run_response(
        module_name: str,
        operation: str,
        configuration: MoveAccountConfiguration,
        account: Optional[dict],
        destination_parent_id: Optional[str],
        current_parent_id: Optional[str],
    ) -> str:
        invalid = MODULE_EXCEPTIONS.INVALID_INPUT.value
        if not destination_parent_id:
            message = (
                f'Will experience {invalid}: because, Invalid destination ou: "{configuration.destination_ou}" '
                f"provided for the account with email {configuration.email}."
            )
        elif not account:
            message = (
                f'Will experience {invalid}: because, account with email "{configuration.email}" not part of '
                "AWS Organizations."
            )
        elif not current_parent_id:
            message = (
                f'Will experience {invalid}: because, account with "{configuration.email}" does not have parent OU '
                "or the account is not part of AWS Organizations."
            )
        elif current_parent_id == destination_parent_id:
            message = (
                f'AWS Account with email "{configuration.email}" already part of AWS Organizations Organizational '
                f'Unit "{configuration.destination_ou}", accelerator will skip the Account move process.'
            )
        else:
            message = (
                f'AWS Account with email "{configuration.email}" is part of AWS Organizations Organizational Unit '
                f'(OU) "{current_parent_id}", accelerator will move the account into "{destination_parent_id}" OU.'
            )
        return generate_dry_run_response(module_name, operation, message)


def get_account_parent_id(client: Any, email: str, account_id: str) -> Optional[str]:
    """Get the single parent of an account, or None when the account is unknown.

    Raises:
        ServiceException: When ListParents returns no, several or id-less parents
    """
    try:
        response = throttling_back_off(client.list_parents, ChildId=account_id)
    except ClientError as e:
        if e.response["Error"]["Code"] == "ChildNotFoundException":
            logger.error(
                f'Account "{email}" does not have parent OU or the account is not part of AWS Organizations, '
                "because ListParents api raised ChildNotFoundException."
            )
            return None
        raise

    parents = response.get("Parents")
    if parents is None:
        raise ServiceException(f'ListParents api did not returned Parents object for account "{email}"')
    if len(parents) > 1:
        raise ServiceException(f'ListParents api returned multiple Parents for account "{email}"')
    if not parents:
        raise ServiceException(f'ListParents api did not returned any Parents for account "{email}"')
    if not parents[0].get("Id"):
        raise ServiceException(
            f'ListParents api did not returned Id property of Parents object for account "{email}"'
        )
    return parents[0]["Id"]
