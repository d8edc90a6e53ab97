"""Base class for orchestration modules."""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from .aws_client import AWSClientManager
from .interfaces import (
    AssumeRoleCredentials,
    HandlerResult,
    ModuleCommonParameter,
    ModuleName,
)
from .polling import Poller


ClientFactory = Callable[..., AWSClientManager]


class ModuleBase(ABC):
    """Common shape of every orchestration module.

    Subclasses implement ``handler`` and nothing else public. Clients are
    built through ``client_factory`` on every call so tests can substitute
    mocks per instance, and poll loops sleep through the injected ``sleep``.
    """

    #: Name reported in dry-run output and result envelopes
    module_name: ModuleName

    #: Configuration dataclass accepted by ``handler``
    configuration_type: type

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        sleep: Callable[[float], None] = time.sleep,
        settings: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize module.

        Args:
            client_factory: Builds an ``AWSClientManager`` from ``region``,
                ``solution_id`` and ``credentials`` keyword arguments
            sleep: Sleep function used between poll attempts
            settings: Optional overrides for poll intervals and ceilings
        """
        self._client_factory = client_factory or AWSClientManager
        self._sleep = sleep
        self._settings = dict(settings or {})

    def _client_manager(
        self,
        parameter: ModuleCommonParameter,
        region: Optional[str] = None,
        credentials: Optional[AssumeRoleCredentials] = None,
    ) -> AWSClientManager:
        """Build a client manager scoped to this handler call."""
        return self._client_factory(
            region=region or parameter.region,
            solution_id=parameter.solution_id,
            credentials=credentials or parameter.credentials,
        )

    def _setting(self, name: str, default: Any) -> Any:
        return self._settings.get(name, default)

    def _poller(self, interval_name: str, interval: float, attempts_name: str, attempts: int) -> Poller:
        """Build a poller from settings with module defaults."""
        return Poller(
            interval_seconds=self._setting(interval_name, interval),
            max_attempts=self._setting(attempts_name, attempts),
            sleep=self._sleep,
        )

    @abstractmethod
    def handler(self, parameter: ModuleCommonParameter, configuration: Any) -> HandlerResult:
        """Run the module.

        Args:
            parameter: Common invocation parameters
            configuration: Module configuration dataclass

        Returns:
            Status message or result envelope
        """
