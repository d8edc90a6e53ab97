"""Check that the account's Lambda concurrency limit is large enough."""

import logging
from dataclasses import dataclass
from typing import Any

from ..core.base import ModuleBase
from ..core.exceptions import ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleHandlerReturnType, ModuleName, ModuleStatus
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)


@dataclass
class LambdaConcurrencyConfiguration:
    required_concurrency: int

    def __post_init__(self) -> None:
        if self.required_concurrency < 0:
            raise ValueError("required_concurrency must not be negative")


def get_concurrency_limit(client: Any) -> int:
    """Get the account's concurrent executions limit.

    Raises:
        ServiceException: When GetAccountSettings returns no limit
    """
    response = throttling_back_off(client.get_account_settings)
    limit = (response.get("AccountLimit") or {}).get("ConcurrentExecutions")
    if limit is None:
        raise ServiceException("Encountered an error in getting Lambda concurrency limit.")
    return limit


class LambdaConcurrencyModule(ModuleBase):
    """Compares the Lambda concurrency limit with the required value; read-only."""

    module_name = ModuleName.AWS_LAMBDA
    configuration_type = LambdaConcurrencyConfiguration

    def handler(
        self, parameter: ModuleCommonParameter, configuration: LambdaConcurrencyConfiguration
    ) -> ModuleHandlerReturnType:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        client = self._client_manager(parameter).get_client("lambda")

        limit = get_concurrency_limit(client)
        required = configuration.required_concurrency
        logger.info(f"Lambda concurrency limit in {parameter.region} is {limit}, required {required}")

        if limit >= required:
            status = ModuleStatus.SUCCESS
            message = f"Lambda concurrency limit {limit} in region {parameter.region} meets the required {required}."
        else:
            status = ModuleStatus.FAILED
            message = (
                f"Lambda concurrency limit {limit} in region {parameter.region} is lower than the required "
                f"{required}. Request a limit increase before continuing."
            )

        if defaults.dry_run:
            message = generate_dry_run_response(defaults.module_name, parameter.operation, message)

        return ModuleHandlerReturnType(
            status=status,
            message=message,
            module_name=defaults.module_name,
            data={"limit": limit, "required": required},
        )
