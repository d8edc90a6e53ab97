"""Bounded polling for asynchronous AWS control-plane operations."""

import logging
import time
from typing import Callable, Optional, TypeVar

from .exceptions import ModuleError, ServiceException


logger = logging.getLogger(__name__)

T = TypeVar("T")


def delay(seconds: float, sleep: Callable[[float], None] = time.sleep) -> None:
    """Pause between poll attempts."""
    if seconds > 0:
        sleep(seconds)


class Poller:
    """Polls a status source until a terminal state or an attempt ceiling.

    The first fetch happens immediately; ``interval_seconds`` is slept
    between subsequent attempts. ``sleep`` is injectable so tests run the
    full attempt budget instantly.
    """

    def __init__(
        self,
        interval_seconds: float,
        max_attempts: int,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize poller.

        Args:
            interval_seconds: Seconds to wait between attempts
            max_attempts: Maximum number of fetches before giving up
            sleep: Sleep function used between attempts
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self._sleep = sleep

    def poll(
        self,
        fetch: Callable[[], T],
        is_done: Callable[[T], bool],
        timeout_error: ModuleError,
        description: Optional[str] = None,
    ) -> T:
        """Fetch until ``is_done`` holds.

        Args:
            fetch: Returns the current state; errors it raises propagate
            is_done: Predicate over the fetched state
            timeout_error: Raised when the attempt ceiling is reached
            description: Optional label for progress logging

        Returns:
            The first fetched value satisfying ``is_done``

        Raises:
            ModuleError: ``timeout_error`` once all attempts are used
        """
        for attempt in range(1, self.max_attempts + 1):
            value = fetch()
            if is_done(value):
                return value
            if attempt < self.max_attempts:
                if description:
                    logger.info(
                        f"{description} not complete (attempt {attempt}/{self.max_attempts}), "
                        f"checking again in {self.interval_seconds} seconds"
                    )
                delay(self.interval_seconds, self._sleep)
        raise timeout_error

    def retry(
        self,
        request: Callable[[], T],
        is_retryable: Callable[[Exception], bool],
        description: Optional[str] = None,
    ) -> T:
        """Call ``request`` until it succeeds.

        Args:
            request: Call to make
            is_retryable: Whether an error raised by ``request`` warrants another attempt
            description: Optional label for retry logging

        Returns:
            Whatever ``request`` returns

        Raises:
            Exception: The first non-retryable error, or the last error once all attempts are used
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return request()
            except Exception as e:
                if attempt == self.max_attempts or not is_retryable(e):
                    raise
                if description:
                    logger.warning(
                        f'{description} failed with "{e}" (attempt {attempt}/{self.max_attempts}), '
                        f"retrying in {self.interval_seconds} seconds"
                    )
                delay(self.interval_seconds, self._sleep)


def wait_until(
    predicate: Callable[[], bool],
    error_message: str,
    retry_limit: int = 5,
    interval_seconds: float = 60,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Wait for a condition to become true.

    Args:
        predicate: Condition to evaluate
        error_message: Message for the raised error
        retry_limit: Number of re-checks after the first evaluation
        interval_seconds: Seconds to wait between checks
        sleep: Sleep function used between checks

    Raises:
        ServiceException: When the condition never holds
    """
    Poller(interval_seconds, retry_limit + 1, sleep).poll(
        predicate, bool, ServiceException(error_message)
    )
