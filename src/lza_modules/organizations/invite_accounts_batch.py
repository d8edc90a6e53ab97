"""Invitation of several existing AWS accounts into AWS Organizations."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..common.organizations import get_organization_accounts
from ..core.base import ModuleBase
from ..core.batch import DEFAULT_MAX_CONCURRENCY, process_batch, summarize_batch
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError
from ..core.functions import generate_dry_run_response, get_module_default_parameters, is_valid_email
from ..core.interfaces import ModuleCommonParameter, ModuleHandlerReturnType, ModuleName, ModuleStatus
from .invite_account import InviteAccountConfiguration, InviteAccountModule


logger = logging.getLogger(__name__)


@dataclass
class InviteAccountsBatchConfiguration:
    accounts: List[InviteAccountConfiguration]
    max_concurrent_execution: Optional[int] = None


class InviteAccountsBatchModule(ModuleBase):
    """Invites every listed account that is not yet an organization member.

    Each invitation runs through ``InviteAccountModule``; a failed account
    is reported in the result without stopping the others.
    """

    module_name = ModuleName.AWS_ORGANIZATIONS
    configuration_type = InviteAccountsBatchConfiguration

    def handler(
        self, parameter: ModuleCommonParameter, configuration: InviteAccountsBatchConfiguration
    ) -> ModuleHandlerReturnType:
        defaults = get_module_default_parameters(self.module_name.value, parameter)

        if not configuration.accounts:
            return ModuleHandlerReturnType(
                status=ModuleStatus.NO_CHANGE,
                message="No accounts provided to invite to AWS Organizations.",
                module_name=defaults.module_name,
            )

        invalid_emails = [account.email for account in configuration.accounts if not is_valid_email(account.email)]
        for email in invalid_emails:
            logger.error(f'Invalid email id "{email}" provided for the account to be invited.')

        if invalid_emails and not defaults.dry_run:
            raise InvalidInputError(f'Invalid account email "{",".join(invalid_emails)}".')

        client = self._client_manager(parameter, region=defaults.global_region).get_client("organizations")
        member_emails = {
            account["Email"].lower() for account in get_organization_accounts(client) if account.get("Email")
        }
        to_invite = [account for account in configuration.accounts if account.email.lower() not in member_emails]
        existing_count = len(configuration.accounts) - len(to_invite)

        if defaults.dry_run:
            return self._get_dry_run_response(
                defaults.module_name, parameter.operation, invalid_emails, to_invite, existing_count
            )

        if not to_invite:
            return ModuleHandlerReturnType(
                status=ModuleStatus.NO_CHANGE,
                message=(
                    "All provided AWS Accounts are already part of AWS Organizations, accelerator skipped the "
                    "Account invitation process."
                ),
                module_name=defaults.module_name,
            )

        invite_module = InviteAccountModule(
            client_factory=self._client_factory, sleep=self._sleep, settings=self._settings
        )
        results = process_batch(
            to_invite,
            lambda account: invite_module.handler(parameter, account),
            key=lambda account: account.email,
            max_concurrency=self._max_concurrency(configuration),
        )

        notes = []
        if existing_count:
            notes.append(
                f"Total {existing_count} AWS Account(s) already part of AWS Organizations, accelerator skipped "
                "the Account invitation process."
            )
        return summarize_batch(defaults.module_name, results, notes)

    def _max_concurrency(self, configuration: InviteAccountsBatchConfiguration) -> int:
        if configuration.max_concurrent_execution:
            return configuration.max_concurrent_execution
        return self._setting("max_concurrent_execution", DEFAULT_MAX_CONCURRENCY)

    @staticmethod
    def _get_dry_run_response(
        module_name: str,
        operation: str,
        invalid_emails: List[str],
        to_invite: List[InviteAccountConfiguration],
        existing_count: int,
    ) -> ModuleHandlerReturnType:
        if invalid_emails:
            message = (
                f"Will experience {MODULE_EXCEPTIONS.INVALID_INPUT.value}. Reason Invalid email id(s) provided for "
                f'one or more accounts to be invited. Invalid email id(s) "{",".join(invalid_emails)}"'
            )
        elif not to_invite:
            message = (
                "All provided AWS Accounts are already part of AWS Organizations, accelerator will skip the "
                "Account invitation process."
            )
        else:
            emails = ",".join(account.email for account in to_invite)
            message = f'AWS Account(s) with email(s) "{emails}" will be invited into AWS Organizations.'
            if existing_count:
                message += (
                    f" Total {existing_count} AWS Account(s) already part of AWS Organizations, accelerator will "
                    "skip the Account invitation process for them."
                )

        return ModuleHandlerReturnType(
            status=ModuleStatus.SUCCESS,
            message=generate_dry_run_response(module_name, operation, message),
            module_name=module_name,
        )
