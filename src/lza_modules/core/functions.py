"""Helpers shared by module handlers."""

import re
from typing import Any, Callable, Dict, List, Optional

from .interfaces import ModuleCommonParameter, ModuleDefaultParameter
from .throttle import throttling_back_off


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

DRY_RUN_FAILURE_PREFIX = "Will experience"


def get_module_default_parameters(
    module_name: str, parameter: ModuleCommonParameter
) -> ModuleDefaultParameter:
    """Apply defaults to the common parameter.

    Args:
        module_name: Name of the module handling the call
        parameter: Common invocation parameters

    Returns:
        Parameter values with module name, global region and flags filled in
    """
    return ModuleDefaultParameter(
        module_name=parameter.module_name or module_name,
        global_region=parameter.global_region or parameter.region,
        use_existing_role=bool(parameter.use_existing_role),
        dry_run=bool(parameter.dry_run),
    )


def generate_dry_run_response(module_name: str, operation: str, message: str) -> str:
    """Format a dry-run advisory.

    Messages starting with "Will experience" describe an error the live run
    would raise and are reported as a failed validation.

    Args:
        module_name: Name of the module
        operation: Operation requested by the caller
        message: What the live run would do

    Returns:
        Multi-line dry-run status string
    """
    header = f"[DRY-RUN]: {module_name} {operation} (no actual changes were made)"
    if message.startswith(DRY_RUN_FAILURE_PREFIX):
        return f"{header}\nValidation: ✗ Failed\nReason: {message}"
    return f"{header}\nValidation: ✓ Successful\nStatus: {message}"


def is_valid_email(email: Optional[str]) -> bool:
    """Check an email address against the accepted format."""
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def collect_pages(
    request: Callable[..., Dict[str, Any]],
    result_key: str,
    token_name: str = "NextToken",
    **kwargs: Any,
) -> List[Any]:
    """Collect every item of a paginated AWS list call.

    Each page request goes through the throttling executor.

    Args:
        request: boto3 client method
        result_key: Response key holding the items
        token_name: Pagination token name used in both request and response
        **kwargs: Request parameters

    Returns:
        All items across pages
    """
    items: List[Any] = []
    token = None
    while True:
        params = dict(kwargs)
        if token:
            params[token_name] = token
        response = throttling_back_off(request, **params)
        items.extend(response.get(result_key, []) or [])
        token = response.get(token_name)
        if not token:
            return items
