"""Creation of AWS Organizations organizational units."""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from ..common.organizations import ROOT_NAME, get_organizational_units_for_parent, get_parent_ou_id
from ..core.base import ModuleBase
from ..core.exceptions import MODULE_EXCEPTIONS, InvalidInputError, ServiceException
from ..core.functions import generate_dry_run_response, get_module_default_parameters
from ..core.interfaces import ModuleCommonParameter, ModuleName, Tag, tags_to_aws
from ..core.throttle import throttling_back_off


logger = logging.getLogger(__name__)


@dataclass
class CreateOrganizationalUnitConfiguration:
    """OU to create.

    ``name`` may be a path such as ``Parent/Child``; the last segment is the
    new OU name and the rest is the parent path.
    """

    name: str
    tags: Optional[List[Tag]] = None

    def __post_init__(self) -> None:
        if not self.name.strip("/"):
            raise ValueError("name must not be empty")


def split_ou_path(ou_path: str) -> Tuple[str, str]:
    """Split an OU path into ``(parent_path, ou_name)``; top-level OUs have parent ``Root``."""
    trimmed = ou_path.strip("/")
    if "/" not in trimmed:
        return ROOT_NAME, trimmed
    parent_path, ou_name = trimmed.rsplit("/", 1)
    return parent_path, ou_name


class CreateOrganizationalUnitModule(ModuleBase):
    """Creates an organizational unit under its parent when it does not exist."""

    module_name = ModuleName.AWS_ORGANIZATIONS
    configuration_type = CreateOrganizationalUnitConfiguration

    def handler(
        self, parameter: ModuleCommonParameter, configuration: CreateOrganizationalUnitConfiguration
    ) -> str:
        defaults = get_module_default_parameters(self.module_name.value, parameter)
        parent_name, ou_name = split_ou_path(configuration.name)

        client = self._client_manager(parameter, region=defaults.global_region).get_client("organizations")

        parent_id = get_parent_ou_id(client, parent_name)
        ou_exists = parent_id is not None and self._ou_exists(client, ou_name, parent_id)

        if defaults.dry_run:
            if not parent_id:
                message = (
                    f"Will experience {MODULE_EXCEPTIONS.INVALID_INPUT.value}. Reason parent ou "
                    f'"{parent_name}" of new ou "{ou_name}" not found in AWS Organizations.'
                )
            elif ou_exists:
                message = (
                    f'AWS Organizations organizational unit (OU) "{ou_name}" for parent "{parent_name}" exists, '
                    "accelerator will skip the OU creation process."
                )
            else:
                message = (
                    f'AWS Organizations organizational unit (OU) "{ou_name}" for parent "{parent_name}" does not '
                    "exists, accelerator will create the new OU."
                )
            return generate_dry_run_response(defaults.module_name, parameter.operation, message)

        if not parent_id:
            raise InvalidInputError(f'Parent OU "{parent_name}" of new ou {ou_name} not found.')

        if ou_exists:
            return (
                f'AWS Organizations organizational unit "{ou_name}" for parent "{parent_name}" exist, '
                "ou creation operation skipped."
            )

        logger.info(f'Creating Organizational unit {ou_name} for parent "{parent_name}".')
        response = throttling_back_off(
            client.create_organizational_unit,
            ParentId=parent_id,
            Name=ou_name,
            Tags=tags_to_aws(configuration.tags),
        )

        organizational_unit = response.get("OrganizationalUnit") or {}
        if not organizational_unit.get("Id"):
            raise ServiceException(
                f'Organization unit "{ou_name}" create organization unit api did not return OrganizationalUnit object.'
            )

        return (
            f'AWS Organizations organizational unit "{ou_name}" created successfully. '
            f'New OU id is "{organizational_unit["Id"]}".'
        )

    @staticmethod
    def _ou_exists(client: Any, ou_name: str, parent_id: str) -> bool:
        return any(ou.get("Name") == ou_name for ou in get_organizational_units_for_parent(client, parent_id))
