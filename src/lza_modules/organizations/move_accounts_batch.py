"""Moving several organization accounts to their destination OUs."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..common.organizations import get_organization_accounts, get_organizational_unit_id_by_path
from ..core.base import ModuleBase
from ..core.batch import DEFAULT_MAX_CONCURRENCY, process_batch, summarize_batch
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError
from ..core.functions import generate_dry_run_response, get_module_default_parameters, is_valid_email
from ..core.interfaces import ModuleCommonParameter, ModuleHandlerReturnType, ModuleName, ModuleStatus
from .move_account import MoveAccountConfiguration, MoveAccountModule, get_account_parent_id


logger = logging.getLogger(__name__)


@dataclass
class MoveAccountsBatchConfiguration:
    accounts: List[MoveAccountConfiguration]
    max_concurrent_execution: Optional[int] = None


@dataclass
class AccountPlacement:
    """Where an account is and where it should go; None marks what could not be resolved."""

    configuration: MoveAccountConfiguration
    account: Optional[Dict[str, Any]]
    current_parent_id: Optional[str]
    destination_parent_id: Optional[str]

    @property
    def needs_move(self) -> bool:
        return bool(
            self.account
            and self.current_parent_id
            and self.destination_parent_id
            and self.current_parent_id != self.destination_parent_id
        )

    @property
    def in_place(self) -> bool:
        return bool(self.current_parent_id and self.current_parent_id == self.destination_parent_id)


class MoveAccountsBatchModule(ModuleBase):
    """Moves every listed account into its destination OU.

    All placements are resolved and validated before anything moves. The
    moves themselves run through ``MoveAccountModule``.
    """

    module_name = ModuleName.AWS_ORGANIZATIONS
    configuration_type = MoveAccountsBatchConfiguration

    def handler(
        self, parameter: ModuleCommonParameter, configuration: MoveAccountsBatchConfiguration
    ) -> ModuleHandlerReturnType:
        defaults = get_module_default_parameters(self.module_name.value, parameter)

        if not configuration.accounts:
            return ModuleHandlerReturnType(
                status=ModuleStatus.NO_CHANGE,
                message="No accounts provided to move between Organizational Units.",
                module_name=defaults.module_name,
            )

        invalid_emails = [account.email for account in configuration.accounts if not is_valid_email(account.email)]
        for email in invalid_emails:
            logger.error(f'Invalid email id "{email}" provided for the account to be moved.')

        client = self._client_manager(parameter, region=defaults.global_region).get_client("organizations")
        placements = self._get_placements(client, configuration.accounts)

        if defaults.dry_run:
            return ModuleHandlerReturnType(
                status=ModuleStatus.SUCCESS,
                message=generate_dry_run_response(
                    defaults.module_name,
                    parameter.operation,
                    self._get_dry_run_message(invalid_emails, placements),
                ),
                module_name=defaults.module_name,
            )

        if invalid_emails:
            raise InvalidInputError(f'Invalid account email "{",".join(invalid_emails)}".')
        self._validate_placements(placements)

        to_move = [placement for placement in placements if placement.needs_move]
        in_place_count = sum(1 for placement in placements if placement.in_place)

        move_module = MoveAccountModule(client_factory=self._client_factory, sleep=self._sleep, settings=self._settings)
        results = process_batch(
            to_move,
            lambda placement: move_module.handler(parameter, placement.configuration),
            key=lambda placement: placement.configuration.email,
            max_concurrency=self._max_concurrency(configuration),
        )

        notes = []
        if in_place_count:
            notes.append(
                f"Total {in_place_count} AWS Account(s) already part of their destination AWS Organizations "
                "Organizational Unit, accelerator skipped the Account move process."
            )
        return summarize_batch(defaults.module_name, results, notes)

    def _max_concurrency(self, configuration: MoveAccountsBatchConfiguration) -> int:
        if configuration.max_concurrent_execution:
            return configuration.max_concurrent_execution
        return self._setting("max_concurrent_execution", DEFAULT_MAX_CONCURRENCY)

    @staticmethod
    def _get_placements(client: Any, accounts: List[MoveAccountConfiguration]) -> List[AccountPlacement]:
        by_email = {
            account["Email"].lower(): account for account in get_organization_accounts(client) if account.get("Email")
        }
        placements = []
        for configuration in accounts:
            account = by_email.get(configuration.email.lower())
            current_parent_id = None
            if account and account.get("Id"):
                current_parent_id = get_account_parent_id(client, configuration.email, account["Id"])
            placements.append(
                AccountPlacement(
                    configuration=configuration,
                    account=account,
                    current_parent_id=current_parent_id,
                    destination_parent_id=get_organizational_unit_id_by_path(client, configuration.destination_ou),
                )
            )
        return placements

    @staticmethod
    def _validate_placements(placements: List[AccountPlacement]) -> None:
        """Raise one error listing every unresolved placement.

        Raises:
            InvalidInputError: When a destination, account or current parent is missing
        """
        errors = []
        if any(not placement.account and not placement.destination_parent_id for placement in placements):
            errors.append("There are Account(s) for which could not retrieve destination ou and account details.")
        else:
            emails = [
                placement.configuration.email
                for placement in placements
                if placement.account and not placement.destination_parent_id
            ]
            if emails:
                errors.append(
                    f'Invalid destination organizational unit provided for account(s) with email "{",".join(emails)}".'
                )
            if any(not placement.account for placement in placements):
                errors.append("There are Account(s) not part of AWS Organizations, could not retrieve account details.")
            if any(placement.account and not placement.current_parent_id for placement in placements):
                errors.append(
                    "There are Account(s) without valid parent OU or the account not part of AWS Organizations."
                )

        if errors:
            raise InvalidInputError(" ".join(errors))

    @staticmethod
    def _get_dry_run_message(invalid_emails: List[str], placements: List[AccountPlacement]) -> str:
        invalid = MODULE_EXCEPTIONS.INVALID_INPUT.value
        if invalid_emails:
            return (
                f"Will experience {invalid}: because, Invalid email id(s) provided for one or more accounts to be "
                f'moved. Invalid email id(s) "{",".join(invalid_emails)}"'
            )
        if any(not placement.account and not placement.destination_parent_id for placement in placements):
            return (
                f"Will experience {invalid}: because, there are Account(s) for which could not retrieve destination "
                "ou and account details."
            )
        emails = [
            placement.configuration.email
            for placement in placements
            if placement.account and not placement.destination_parent_id
        ]
        if emails:
            return (
                f"Will experience {invalid}: because, Invalid destination organizational unit provided for "
                f"account(s) with email {','.join(emails)}."
            )
        if any(not placement.account for placement in placements):
            return (
                f"Will experience {invalid}: because, there are Account(s) not part of AWS Organizations, could not "
                "retrieve account details."
            )
        if any(not placement.current_parent_id for placement in placements):
            return (
                f"Will experience {invalid}: There are Account(s) without valid parent OU or the account not part "
                "of AWS Organizations."
            )

        move_count = sum(1 for placement in placements if placement.needs_move)
        skip_count = len(placements) - move_count
        if not move_count:
            return (
                "All AWS Accounts are already part of their destination AWS Organizations Organizational Units, "
                "accelerator will skip the Account move process."
            )
        if not skip_count:
            return "All AWS Accounts will be moved to their destination AWS Organizations Organizational Units."
        return (
            f"{move_count} AWS Account(s) will be moved to their destination AWS Organizations Organizational Units, "
            f"and {skip_count} AWS Account(s) will be skipped as they are already in their destination "
            "Organizational Units."
        )
