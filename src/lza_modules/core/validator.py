"""Structural validation of module configuration.

Each module declares a configuration dataclass. ``validate_configuration``
turns the raw dictionary supplied by the caller into that dataclass, or
reports every structural problem at once, so the module only ever sees a
well-formed configuration.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union, get_args, get_origin, get_type_hints


class ValidationStatus(Enum):
    """Validation result status."""

    PASSED = "PASSED"
    FAILED = "FAILED"


@dataclass
class ValidationResult:
    """Result of validating one module configuration."""

    validator_name: str
    status: ValidationStatus
    message: str
    configuration: Any = None
    errors: Optional[List[str]] = None

    @property
    def passed(self) -> bool:
        return self.status is ValidationStatus.PASSED


class _InvalidShape(Exception):
    pass


def camel_case(name: str) -> str:
    """Convert a snake_case field name to the camelCase configuration key."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def validate_configuration(configuration_type: type, data: Any) -> ValidationResult:
    """Validate raw configuration against a module's configuration dataclass.

    Keys are accepted in camelCase (``ouArn``) or snake_case (``ou_arn``).

    Args:
        configuration_type: Configuration dataclass of the module
        data: Raw configuration dictionary

    Returns:
        ValidationResult holding the built configuration when it passed
    """
    name = configuration_type.__name__
    errors: List[str] = []
    configuration = _build(configuration_type, data, "configuration", errors)

    if errors:
        return ValidationResult(
            validator_name=name,
            status=ValidationStatus.FAILED,
            message=f"Invalid {name}: " + "; ".join(errors),
            errors=errors,
        )

    return ValidationResult(
        validator_name=name,
        status=ValidationStatus.PASSED,
        message=f"{name} is valid",
        configuration=configuration,
    )


def _build(configuration_type: type, data: Any, path: str, errors: List[str]) -> Any:
    if not isinstance(data, dict):
        errors.append(f"{path} must be an object")
        return None

    hints = get_type_hints(configuration_type)
    fields = {field.name: field for field in dataclasses.fields(configuration_type)}
    known_keys = set()
    values: Dict[str, Any] = {}

    for field_name, field in fields.items():
        key = camel_case(field_name)
        # AWS-shaped keys such as Tags' "Key"/"Value" are accepted too
        candidates = (key, field_name, key[:1].upper() + key[1:])
        known_keys.update(candidates)
        present = [candidate for candidate in candidates if candidate in data]
        if present:
            raw = data[present[0]]
        else:
            if field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING:
                errors.append(f"{path}.{key} is required")
            continue
        try:
            values[field_name] = _convert(raw, hints[field_name], f"{path}.{key}", errors)
        except _InvalidShape as e:
            errors.append(str(e))

    for key in data:
        if key not in known_keys:
            errors.append(f"{path}.{key} is not a recognized field")

    if errors:
        return None
    try:
        return configuration_type(**values)
    except (TypeError, ValueError) as e:
        errors.append(f"{path}: {e}")
        return None


def _convert(value: Any, type_hint: Any, path: str, errors: List[str]) -> Any:
    origin = get_origin(type_hint)

    if type_hint is Any:
        return value

    if origin is Union:
        options = [arg for arg in get_args(type_hint) if arg is not type(None)]
        if value is None:
            if len(options) < len(get_args(type_hint)):
                return None
            raise _InvalidShape(f"{path} must not be null")
        return _convert(value, options[0], path, errors)

    if origin in (list, List):
        if not isinstance(value, list):
            raise _InvalidShape(f"{path} must be a list")
        (item_type,) = get_args(type_hint) or (Any,)
        return [_convert(item, item_type, f"{path}[{index}]", errors) for index, item in enumerate(value)]

    if origin in (dict, Dict) or type_hint is dict:
        if not isinstance(value, dict):
            raise _InvalidShape(f"{path} must be an object")
        return value

    if dataclasses.is_dataclass(type_hint):
        return _build(type_hint, value, path, errors)

    if isinstance(type_hint, type) and issubclass(type_hint, Enum):
        try:
            return type_hint(value)
        except ValueError:
            allowed = ", ".join(str(member.value) for member in type_hint)
            raise _InvalidShape(f"{path} must be one of {allowed}")

    if type_hint is bool:
        if not isinstance(value, bool):
            raise _InvalidShape(f"{path} must be a boolean")
        return value

    if type_hint is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _InvalidShape(f"{path} must be an integer")
        return value

    if type_hint is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _InvalidShape(f"{path} must be a number")
        return float(value)

    if type_hint is str:
        if not isinstance(value, str):
            raise _InvalidShape(f"{path} must be a string")
        return value

    return value
