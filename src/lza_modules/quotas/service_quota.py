"""Check that a Service Quotas value is large enough."""

import logging
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import ClientError

from ..core.base import ModuleBase
from ..core.exceptions import ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleHandlerReturnType, ModuleName, ModuleStatus
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)


@dataclass
class ServiceQuotaConfiguration:
    service_code: str
    quota_code: str
    required_service_quota: float


def get_service_quota_value(client: Any, service_code: str, quota_code: str) -> float:
    """Get the applied value of a quota.

    Raises:
        ServiceException: When the quota does not exist or has no value
    """
    try:
        response = throttling_back_off(client.get_service_quota, ServiceCode=service_code, QuotaCode=quota_code)
    except ClientError as e:
        if e.response["Error"]["Code"] == "NoSuchResourceException":
            raise ServiceException(f"Quota {quota_code} not found for service {service_code}.")
        raise

    value = (response.get("Quota") or {}).get("Value")
    if value is None:
        raise ServiceException(
            f"Encountered an error in getting service {service_code} limit for quota {quota_code}."
        )
    return value


class ServiceQuotaModule(ModuleBase):
    """Compares a service quota with the required value; read-only."""

    module_name = ModuleName.SERVICE_QUOTAS
    configuration_type = ServiceQuotaConfiguration

    def handler(self, parameter: ModuleCommonParameter, configuration: ServiceQuotaConfiguration) -> ModuleHandlerReturnType:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        client = self._client_manager(parameter).get_client("service-quotas")

        value = get_service_quota_value(client, configuration.service_code, configuration.quota_code)
        required = configuration.required_service_quota
        quota = f"{configuration.service_code} quota {configuration.quota_code}"
        logger.info(f"Service {quota} in {parameter.region} is {value}, required {required}")

        if value >= required:
            status = ModuleStatus.SUCCESS
            message = f"Service {quota} value {value} meets the required {required}."
        else:
            status = ModuleStatus.FAILED
            message = f"Service {quota} value {value} is lower than the required {required}."

        if defaults.dry_run:
            message = generate_dry_run_response(defaults.module_name, parameter.operation, message)

        return ModuleHandlerReturnType(
            status=status,
            message=message,
            module_name=defaults.module_name,
            data={"value": value, "required": required},
        )
