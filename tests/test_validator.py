"""Unit tests for configuration validation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from lza_modules.core.interfaces import Tag
from lza_modules.core.validator import ValidationStatus, camel_case, validate_configuration
from lza_modules.organizations.move_accounts_batch import MoveAccountsBatchConfiguration


class Action(str, Enum):
    CREATE = "create"
    DELETE = "delete"


@dataclass
class Nested:
    enable_identity_center_access: bool


@dataclass
class SampleConfiguration:
    ou_path: str
    action: Action
    retention_days: int
    required_value: float
    nested: Nested
    regions: List[str] = field(default_factory=list)
    tags: Optional[List[Tag]] = None

    def __post_init__(self):
        if self.retention_days < 1:
            raise ValueError("retentionDays must be positive")


def valid_data(**overrides):
    data = {
        "ouPath": "Security/Audit",
        "action": "create",
        "retentionDays": 365,
        "requiredValue": 3,
        "nested": {"enableIdentityCenterAccess": True},
    }
    data.update(overrides)
    return data


class TestValidateConfiguration:
    """Test cases for validate_configuration."""

    def test_camel_case(self):
        assert camel_case("ou_path") == "ouPath"
        assert camel_case("name") == "name"

    def test_valid_configuration(self):
        result = validate_configuration(SampleConfiguration, valid_data(tags=[{"Key": "Env", "Value": "prod"}]))

        assert result.passed
        assert result.status is ValidationStatus.PASSED
        configuration = result.configuration
        assert configuration.ou_path == "Security/Audit"
        assert configuration.action is Action.CREATE
        assert configuration.required_value == 3.0
        assert isinstance(configuration.required_value, float)
        assert configuration.nested.enable_identity_center_access is True
        assert configuration.regions == []
        assert configuration.tags == [Tag("Env", "prod")]

    def test_snake_case_keys(self):
        data = valid_data()
        data["ou_path"] = data.pop("ouPath")

        assert validate_configuration(SampleConfiguration, data).configuration.ou_path == "Security/Audit"

    def test_reports_every_error(self):
        data = valid_data(action="rename", retentionDays="forever", unknown=True)
        del data["ouPath"]

        result = validate_configuration(SampleConfiguration, data)

        assert not result.passed
        assert result.configuration is None
        assert "configuration.ouPath is required" in result.errors
        assert "configuration.action must be one of create, delete" in result.errors
        assert "configuration.retentionDays must be an integer" in result.errors
        assert "configuration.unknown is not a recognized field" in result.errors
        assert result.message.startswith("Invalid SampleConfiguration: ")

    def test_nested_errors(self):
        result = validate_configuration(SampleConfiguration, valid_data(nested={"enableIdentityCenterAccess": "yes"}))

        assert result.errors == ["configuration.nested.enableIdentityCenterAccess must be a boolean"]

    def test_boolean_is_not_a_number(self):
        result = validate_configuration(SampleConfiguration, valid_data(requiredValue=True))

        assert result.errors == ["configuration.requiredValue must be a number"]

    def test_post_init_error(self):
        result = validate_configuration(SampleConfiguration, valid_data(retentionDays=0))

        assert not result.passed
        assert "retentionDays must be positive" in result.message

    def test_not_an_object(self):
        result = validate_configuration(SampleConfiguration, ["a"])

        assert result.errors == ["configuration must be an object"]

    def test_list_items_checked(self):
        result = validate_configuration(SampleConfiguration, valid_data(regions=["us-east-1", 5]))

        assert result.errors == ["configuration.regions[1] must be a string"]

    def test_list_of_module_configurations(self):
        result = validate_configuration(
            MoveAccountsBatchConfiguration,
            {
                "accounts": [
                    {"email": "a@example.com", "destinationOu": "Security"},
                    {"email": "b@example.com"},
                ],
                "maxConcurrentExecution": 2,
            },
        )

        assert result.errors == ["configuration.accounts[1].destinationOu is required"]

        result = validate_configuration(
            MoveAccountsBatchConfiguration,
            {"accounts": [{"email": "a@example.com", "destinationOu": "Security"}], "maxConcurrentExecution": 2},
        )

        assert result.passed
        assert result.configuration.accounts[0].destination_ou == "Security"
        assert result.configuration.max_concurrent_execution == 2
