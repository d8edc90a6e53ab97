"""Throttling-aware execution of AWS API calls.

Every AWS request issued by a module goes through ``throttling_back_off``.
Throttling and transient transport errors are retried with exponential
backoff and full jitter; any other error propagates on first occurrence.
"""

import logging
from typing import Any, Callable, TypeVar

from botocore.exceptions import (
    ClientError,
    ConnectionError as BotocoreConnectionError,
    CredentialRetrievalError,
    HTTPClientError,
)
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

STARTING_DELAY_SECONDS = 0.15
MAX_DELAY_SECONDS = 60
MAX_ATTEMPTS = 20

THROTTLING_ERROR_CODES = frozenset(
    {
        "ThrottlingException",
        "Throttling",
        "TooManyRequestsException",
        "TooManyUpdates",
        "ConcurrentModificationException",
        "PolicyTypeNotEnabledException",
        "LimitExceededException",
        "OperationNotPermittedException",
        "InternalErrorException",
        "InternalException",
        "InsufficientDeliveryPolicyException",
        "NoAvailableDeliveryChannelException",
        "ConcurrentModifications",
        "RequestLimitExceeded",
        "SlowDown",
    }
)


def is_throttling_error(error: BaseException) -> bool:
    """Check whether an error should be retried with backoff.

    Args:
        error: Exception raised by an AWS call

    Returns:
        True for throttling, rate-limit and transient transport errors
    """
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code")
        if code in THROTTLING_ERROR_CODES:
            return True
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        return status == 429
    return isinstance(
        error, (BotocoreConnectionError, HTTPClientError, CredentialRetrievalError)
    )


_THROTTLING_RETRY = Retrying(
    retry=retry_if_exception(is_throttling_error),
    wait=wait_random_exponential(
        multiplier=STARTING_DELAY_SECONDS, max=MAX_DELAY_SECONDS
    ),
    stop=stop_after_attempt(MAX_ATTEMPTS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def throttling_back_off(request: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Execute an AWS request, retrying throttling errors.

    Args:
        request: Callable performing the AWS call (usually a boto3 client method)
        *args: Positional arguments forwarded to the request
        **kwargs: Keyword arguments forwarded to the request

    Returns:
        Whatever the request returns

    Raises:
        ClientError: The last error once retries are exhausted, or any
            non-throttling error immediately
    """
    return _THROTTLING_RETRY.copy()(request, *args, **kwargs)
