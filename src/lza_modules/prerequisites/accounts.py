"""Creation of the landing zone shared accounts (log archive and audit)."""

import logging
import time
from typing import Any, Callable, Dict

from ..common.organizations import get_account_details_from_organizations
from ..core.aws_client import AWSClientManager
from ..core.exceptions import InvalidInputError, ServiceException
from ..core.functions import is_valid_email
from ..core.polling import Poller
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)


class AccountManager:
    """Creates organization accounts that do not exist yet.

    Account creation is asynchronous; the creation request is polled every
    ``interval_seconds`` for at most ``max_attempts`` checks.
    """

    def __init__(
        self,
        aws_client: AWSClientManager,
        global_region: str,
        sleep: Callable[[float], None] = time.sleep,
        interval_seconds: float = 30,
        max_attempts: int = 30,
    ) -> None:
        """Initialize Account manager.

        Args:
            aws_client: Client manager of the management account
            global_region: Region of the Organizations endpoint
            sleep: Sleep function used between status checks
            interval_seconds: Seconds between status checks
            max_attempts: Maximum number of status checks
        """
        self.aws_client = aws_client
        self.global_region = global_region
        self._poller = Poller(interval_seconds, max_attempts, sleep)

    def _get_client(self) -> Any:
        return self.aws_client.get_client("organizations", self.global_region)

    def ensure_account(self, name: str, email: str) -> str:
        """Create an account unless one with the email already exists.

        Args:
            name: Account name
            email: Account email address

        Returns:
            Account ID

        Raises:
            InvalidInputError: When the email format is invalid
            ServiceException: When creation fails or times out
        """
        if not is_valid_email(email):
            raise InvalidInputError(f"Invalid email format: {email}")

        existing = get_account_details_from_organizations(self._get_client(), email)
        if existing and existing.get("Id"):
            logger.info(f'Account "{name}" with email "{email}" already exists, skipping creation')
            return existing["Id"]

        return self.create_account(name, email)

    def create_account(self, name: str, email: str) -> str:
        """Create an account and wait until it is ready.

        Returns:
            New account ID
        """
        client = self._get_client()
        logger.info(f'Creating account "{name}" with email "{email}"')
        response = throttling_back_off(client.create_account, AccountName=name, Email=email)

        request_id = (response.get("CreateAccountStatus") or {}).get("Id")
        if not request_id:
            raise ServiceException(f'CreateAccount api did not return request id for account "{name}".')

        status = self._poller.poll(
            lambda: self._get_creation_status(client, request_id),
            lambda current: current.get("State") == "SUCCEEDED",
            ServiceException(
                f'Account "{name}" creation timed out after '
                f"{int(self._poller.interval_seconds * self._poller.max_attempts)} seconds"
            ),
            description=f'Creation of account "{name}"',
        )
        logger.info(f'Account "{name}" created with ID {status["AccountId"]}')
        return status["AccountId"]

    @staticmethod
    def _get_creation_status(client: Any, request_id: str) -> dict:
        response = throttling_back_off(client.describe_create_account_status, CreateAccountRequestId=request_id)
        status = response.get("CreateAccountStatus") or {}
        if status.get("State") == "FAILED":
            raise ServiceException(f"Account creation failed: {status.get('FailureReason', 'Unknown')}")
        return status


def create_shared_accounts(manager: AccountManager, log_archive: Any, audit: Any) -> Dict[str, str]:
    """Make sure the log archive and audit accounts exist.

    Args:
        manager: Account manager of the management account
        log_archive: Shared account settings with ``name`` and ``email``
        audit: Shared account settings with ``name`` and ``email``

    Returns:
        Account IDs keyed by ``log_archive`` and ``audit``
    """
    return {
        "log_archive": manager.ensure_account(log_archive.name, log_archive.email),
        "audit": manager.ensure_account(audit.name, audit.email),
    }
