"""Exception types raised by landing zone modules.

Modules raise exactly two kinds of errors to their callers: invalid input
supplied by the caller, and AWS responses that break the documented API
contract (or reach a terminal failure state). Every other AWS error
propagates unchanged as a botocore ``ClientError``.
"""

from enum import Enum


class MODULE_EXCEPTIONS(str, Enum):
    """Error kinds surfaced by module handlers."""

    INVALID_INPUT = "INVALID_INPUT"
    SERVICE_EXCEPTION = "SERVICE_EXCEPTION"


class ModuleError(Exception):
    """Base exception for module handler failures."""

    kind = MODULE_EXCEPTIONS.SERVICE_EXCEPTION

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"{self.kind.value}: {message}")


class InvalidInputError(ModuleError):
    """Raised when configuration or a referenced resource is wrong."""

    kind = MODULE_EXCEPTIONS.INVALID_INPUT


class ServiceException(ModuleError):
    """Raised when an AWS response violates its contract or fails terminally."""

    kind = MODULE_EXCEPTIONS.SERVICE_EXCEPTION
