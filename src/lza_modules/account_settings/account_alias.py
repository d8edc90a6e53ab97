"""IAM account alias management.

An account has at most one alias. Changing it means deleting the current
alias and creating the new one; when creation fails the previous alias is
restored.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..core.base import ModuleBase
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleName
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)

ALIAS_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9]|-(?!-)){1,61}[a-z0-9]$")


@dataclass
class AccountAliasConfiguration:
    alias: str


def is_valid_alias(alias: str) -> bool:
    """3-63 lowercase alphanumeric characters or single hyphens, not starting or ending with a hyphen."""
    return ALIAS_PATTERN.match(alias) is not None


class AccountAliasModule(ModuleBase):
    """Sets the account alias, replacing any existing one."""

    module_name = ModuleName.AWS_IAM
    configuration_type = AccountAliasConfiguration

    def handler(self, parameter: ModuleCommonParameter, configuration: AccountAliasConfiguration) -> str:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        alias = configuration.alias
        alias_valid = is_valid_alias(alias)
        if not alias_valid:
            logger.error(f'Invalid alias format "{alias}"')
        invalid_reason = (
            f'Invalid alias format "{alias}" - must be 3-63 chars, lowercase alphanumeric with hyphens, '
            "no consecutive hyphens"
        )

        client = self._client_manager(parameter).get_client("iam")
        current_alias = self._get_current_alias(client)

        if defaults.dry_run:
            if not alias_valid:
                message = f"Will experience {MODULE_EXCEPTIONS.INVALID_INPUT.value}: {invalid_reason}"
            elif current_alias == alias:
                message = f'Account alias "{alias}" is already set for this account'
            elif current_alias:
                message = f'Will delete existing account alias "{current_alias}" and set new alias "{alias}"'
            else:
                message = f'Will set account alias "{alias}" (no existing alias)'
            return generate_dry_run_response(defaults.module_name, parameter.operation, message)

        if not alias_valid:
            raise InvalidInputError(invalid_reason)

        if current_alias == alias:
            message = f'Account alias "{alias}" is already set for this account'
            logger.info(message)
            return message

        statuses = []
        if current_alias:
            logger.info(f'Deleting existing account alias "{current_alias}"')
            throttling_back_off(client.delete_account_alias, AccountAlias=current_alias)
            statuses.append(f'Successfully deleted existing account alias "{current_alias}"')

        try:
            throttling_back_off(client.create_account_alias, AccountAlias=alias)
        except ClientError as e:
            if e.response["Error"]["Code"] != "EntityAlreadyExists":
                logger.error(f'Failed to create alias "{alias}": {e}')
                self._restore_alias(client, current_alias, statuses)
                raise
            message = (
                f'Alias "{alias}" is already taken by another AWS account. '
                "Aliases must be unique across all AWS accounts globally."
            )
            logger.error(message)
            statuses.append(message)
            self._restore_alias(client, current_alias, statuses)
            raise InvalidInputError("\n".join(statuses))
        except BotoCoreError as e:
            logger.error(f'Failed to create alias "{alias}": {e}')
            self._restore_alias(client, current_alias, statuses)
            raise

        message = f'Account alias "{alias}" successfully set.'
        logger.info(message)
        statuses.append(message)
        return "\n".join(statuses)

    @staticmethod
    def _get_current_alias(client: Any) -> Optional[str]:
        aliases = throttling_back_off(client.list_account_aliases).get("AccountAliases") or []
        return aliases[0] if aliases else None

    @staticmethod
    def _restore_alias(client: Any, previous_alias: Optional[str], statuses: List[str]) -> None:
        if not previous_alias:
            return
        try:
            throttling_back_off(client.create_account_alias, AccountAlias=previous_alias)
        except (ClientError, BotoCoreError) as e:
            message = f'Failed to revert to previous alias "{previous_alias}". Account left without alias.'
            logger.error(f"{message}: {e}")
            statuses.append(message)
            return
        message = f'Reverted to previous account alias "{previous_alias}"'
        logger.info(message)
        statuses.append(message)
