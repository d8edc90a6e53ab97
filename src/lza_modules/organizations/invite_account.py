"""Invitation of existing AWS accounts into AWS Organizations."""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..common.organizations import get_account_details_from_organizations
from ..common.sts import get_credentials
from ..core.base import ModuleBase
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError, ModuleError, ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters, is_valid_email
from ..core.interfaces import ModuleCommonParameter, ModuleName, Tag, tags_to_aws
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)

ACCEPT_INVITE_SESSION_NAME = "AcceleratorAcceptInviteAssumeRole"
FAILED_HANDSHAKE_STATES = ("CANCELED", "DECLINED", "EXPIRED")

DEFAULT_POLL_INTERVAL_SECONDS = 60
DEFAULT_MAX_POLL_ATTEMPTS = 11


@dataclass
class InviteAccountConfiguration:
    """Account to invite and the role used to accept from inside it."""

    email: str
    account_id: str
    account_access_role_name: str
    tags: Optional[List[Tag]] = None


class InviteAccountModule(ModuleBase):
    """Invites an AWS account into the organization and accepts the invitation.

    The invitation is accepted with credentials assumed into the invited
    account. If anything fails after the handshake was created, the
    handshake is cancelled before the error propagates.
    """

    module_name = ModuleName.AWS_ORGANIZATIONS
    configuration_type = InviteAccountConfiguration

    def handler(self, parameter: ModuleCommonParameter, configuration: InviteAccountConfiguration) -> str:
        defaults = get_module_default_parameters(self.module_name.value, parameter)

        if not is_valid_email(configuration.email):
            if defaults.dry_run:
                return generate_dry_run_response(
                    defaults.module_name,
                    parameter.operation,
                    f"Will experience {MODULE_EXCEPTIONS.INVALID_INPUT.value}. Reason Invalid email id "
                    f'"{configuration.email}" provided for the account to be invited.',
                )
            raise InvalidInputError(f'Invalid account email "{configuration.email}".')

        client_manager = self._client_manager(parameter, region=defaults.global_region)
        client = client_manager.get_client("organizations")

        account = get_account_details_from_organizations(client, configuration.email)

        if defaults.dry_run:
            if account:
                message = (
                    f'AWS Account with email "{configuration.email}" already part of AWS Organizations, '
                    "accelerator will skip the Account invitation process."
                )
            else:
                message = (
                    f'AWS Account with email "{configuration.email}" is not part of AWS Organizations, '
                    "accelerator will invite the account into organizations."
                )
            return generate_dry_run_response(defaults.module_name, parameter.operation, message)

        if account:
            return (
                f'AWS Account with email "{configuration.email}" already part of AWS Organizations, '
                "accelerator skipped the Account invitation process."
            )

        handshake_id = self._invite(client, configuration)
        try:
            return self._accept(client_manager, parameter, configuration, handshake_id, defaults.global_region)
        except (ModuleError, ClientError, BotoCoreError):
            self._cancel_handshake(client, handshake_id)
            raise

    @staticmethod
    def _invite(client: Any, configuration: InviteAccountConfiguration) -> str:
        logger.info(f'Inviting account with email address "{configuration.email}" to AWS Organizations.')
        try:
            response = throttling_back_off(
                client.invite_account_to_organization,
                Target={"Type": "EMAIL", "Id": configuration.email},
                Tags=tags_to_aws(configuration.tags),
            )
        except ClientError as e:
            logger.warning(
                f'There was an "{e}" error when inviting account with email address "{configuration.email}".'
            )
            raise

        handshake = response.get("Handshake")
        if not handshake:
            raise ServiceException(
                f'Account "{configuration.email}" InviteAccountToOrganization api did not return Handshake object.'
            )
        if not handshake.get("Id"):
            raise ServiceException(
                f'Account "{configuration.email}" InviteAccountToOrganization api did not return Handshake '
                "object Id property."
            )
        return handshake["Id"]

    @staticmethod
    def _cancel_handshake(client: Any, handshake_id: str) -> None:
        """Cancel an invitation; a failure here never hides the original error."""
        logger.info(f'Cancelling handshake "{handshake_id}"')
        try:
            throttling_back_off(client.cancel_handshake, HandshakeId=handshake_id)
        except (ClientError, BotoCoreError) as e:
            logger.error(f'Failed to cancel handshake "{handshake_id}": {e}')

    def _accept(
        self,
        client_manager: Any,
        parameter: ModuleCommonParameter,
        configuration: InviteAccountConfiguration,
        handshake_id: str,
        global_region: str,
    ) -> str:
        credentials = get_credentials(
            client_manager,
            configuration.account_id,
            partition=parameter.partition,
            assume_role_name=configuration.account_access_role_name,
            session_name=ACCEPT_INVITE_SESSION_NAME,
        )
        accepter_client = self._client_manager(
            parameter, region=global_region, credentials=credentials
        ).get_client("organizations")

        logger.info(f'Accepting AWS Account with email "{configuration.email}" invite to the AWS Organizations.')
        response = throttling_back_off(accepter_client.accept_handshake, HandshakeId=handshake_id)

        handshake = response.get("Handshake")
        if not handshake:
            raise ServiceException(
                f'AWS Account with email "{configuration.email}" AcceptHandshake api did not return any Handshake '
                "response, please investigate the account invitation."
            )
        if not handshake.get("Id"):
            raise ServiceException(
                f'AWS Account with email "{configuration.email}" AcceptHandshake api did not return any Id property '
                "of Handshake object, please investigate the account invitation."
            )

        if handshake.get("State") != "ACCEPTED":
            self._wait_until_accepted(accepter_client, handshake["Id"], configuration.email)

        return (
            f'Invitation to AWS Organizations for AWS Account with email "{configuration.email}" '
            "completed successfully."
        )

    def _wait_until_accepted(self, client: Any, handshake_id: str, email: str) -> None:
        poller = self._poller(
            "poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS, "max_poll_attempts", DEFAULT_MAX_POLL_ATTEMPTS
        )
        timeout_minutes = int(poller.interval_seconds * (poller.max_attempts - 1) // 60)

        poller.poll(
            lambda: self._get_handshake_state(client, handshake_id, email),
            lambda state: state == "ACCEPTED",
            ServiceException(
                f'AWS Account with email "{email}" invitation acceptance operation took more than '
                f'{timeout_minutes} minutes, operation failed, please review AWS Account with email "{email}" '
                "and complete acceptance of invitation."
            ),
            description=f'Invitation handshake "{handshake_id}" for account "{email}"',
        )

    @staticmethod
    def _get_handshake_state(client: Any, handshake_id: str, email: str) -> str:
        response = throttling_back_off(client.list_handshakes_for_account, Filter={"ActionType": "INVITE"})

        handshakes = response.get("Handshakes")
        if handshakes is None:
            raise ServiceException(
                f'AWS Account with email "{email}" ListHandshakesForAccount api did not return Handshakes object, '
                "please investigate the account invitation."
            )

        handshake = next((item for item in handshakes if item.get("Id") == handshake_id), None)
        if not handshake:
            raise ServiceException(
                f'AWS Account with email "{email}" ListHandshakesForAccount api could not find handshake '
                f'information with handshake id "{handshake_id}", please investigate the account invitation.'
            )

        state = handshake.get("State")
        if not state:
            raise ServiceException(
                f'AWS Account with email "{email}" ListHandshakesForAccount api could not find handshake status '
                f'with handshake id "{handshake_id}", please investigate the account invitation.'
            )

        if state in FAILED_HANDSHAKE_STATES:
            raise ServiceException(
                f'AWS Account with email "{email}" invitation status is "{state}", please investigate the '
                "account invitation."
            )
        return state
