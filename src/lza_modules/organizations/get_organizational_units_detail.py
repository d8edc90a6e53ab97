"""Inventory of every organizational unit in the organization."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..common.control_tower import get_enabled_baselines, get_landing_zone_identifier
from ..common.organizations import (
    ROOT_NAME,
    get_organization_id,
    get_organization_root_id,
    get_organizational_units_for_parent,
    is_organizations_configured,
)
from ..core.base import ModuleBase
from ..core.exceptions import ServiceException
from ..core.functions import get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleHandlerReturnType, ModuleName, ModuleStatus


logger = logging.getLogger(__name__)


@dataclass
class GetOrganizationalUnitsDetailConfiguration:
    enable_control_tower: bool = False


@dataclass
class OrganizationalUnitDetail:
    """One OU of the tree with its computed level and path."""

    organization_id: str
    root_id: str
    name: str
    id: str
    arn: str
    ou_level: int
    parent_id: str
    parent_name: str
    complete_path: str
    parent_complete_path: str
    registered_with_control_tower: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organizationId": self.organization_id,
            "rootId": self.root_id,
            "name": self.name,
            "id": self.id,
            "arn": self.arn,
            "ouLevel": self.ou_level,
            "parentId": self.parent_id,
            "parentName": self.parent_name,
            "completePath": self.complete_path,
            "parentCompletePath": self.parent_complete_path,
            "registeredWithControlTower": self.registered_with_control_tower,
        }


class GetOrganizationalUnitsDetailModule(ModuleBase):
    """Walks the OU tree from the root and reports every OU.

    Read-only, so dry-run and live runs behave the same.
    """

    module_name = ModuleName.AWS_ORGANIZATIONS
    configuration_type = GetOrganizationalUnitsDetailConfiguration

    def handler(
        self, parameter: ModuleCommonParameter, configuration: GetOrganizationalUnitsDetailConfiguration
    ) -> ModuleHandlerReturnType:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        client_manager = self._client_manager(parameter)
        organizations_client = client_manager.get_client("organizations")

        if not is_organizations_configured(organizations_client):
            logger.warning("AWS Organizations not configured, unable to get organization units detail")
            return ModuleHandlerReturnType(
                status=ModuleStatus.NO_CHANGE,
                message="AWS Organizations not configured, no organizational units found.",
                module_name=defaults.module_name,
                data=[],
            )

        enabled_baselines = None
        if configuration.enable_control_tower:
            control_tower_client = client_manager.get_client("controltower")
            if get_landing_zone_identifier(control_tower_client):
                enabled_baselines = get_enabled_baselines(control_tower_client)

        details = self.get_organizational_units(organizations_client, enabled_baselines)
        return ModuleHandlerReturnType(
            status=ModuleStatus.SUCCESS,
            message=f"Found {len(details)} organizational units.",
            module_name=defaults.module_name,
            data=[detail.to_dict() for detail in details],
        )

    def get_organizational_units(
        self, client: Any, enabled_baselines: Optional[List[Dict[str, Any]]] = None
    ) -> List[OrganizationalUnitDetail]:
        """Collect every OU, parents before their children.

        Args:
            client: Organizations client
            enabled_baselines: Enabled baseline records, or None when Control
                Tower is not in use

        Returns:
            Details of every OU in depth-first order
        """
        organization_id = get_organization_id(client)
        root_id = get_organization_root_id(client)
        registered_targets = None
        if enabled_baselines is not None:
            registered_targets = {
                item["targetIdentifier"].lower() for item in enabled_baselines if item.get("targetIdentifier")
            }
        return self._walk(client, organization_id, root_id, root_id, "", 1, registered_targets)

    def _walk(
        self,
        client: Any,
        organization_id: str,
        root_id: str,
        parent_id: str,
        parent_complete_path: str,
        level: int,
        registered_targets: Optional[set],
    ) -> List[OrganizationalUnitDetail]:
        details = []
        for ou in get_organizational_units_for_parent(client, parent_id):
            if not ou.get("Name") or not ou.get("Id") or not ou.get("Arn"):
                raise ServiceException(
                    "ListOrganizationalUnitsForParent did not return valid ou details, ou name, id or arn is "
                    f"missing for parent OU {parent_id}"
                )

            complete_path = f"{parent_complete_path}/{ou['Name']}" if parent_complete_path else ou["Name"]
            details.append(
                OrganizationalUnitDetail(
                    organization_id=organization_id,
                    root_id=root_id,
                    name=ou["Name"],
                    id=ou["Id"],
                    arn=ou["Arn"],
                    ou_level=level,
                    parent_id=parent_id,
                    parent_name=parent_complete_path.split("/")[-1] if parent_complete_path else ROOT_NAME,
                    complete_path=complete_path,
                    parent_complete_path=parent_complete_path,
                    registered_with_control_tower=bool(registered_targets)
                    and ou["Arn"].lower() in registered_targets,
                )
            )
            details.extend(
                self._walk(client, organization_id, root_id, ou["Id"], complete_path, level + 1, registered_targets)
            )
        return details
