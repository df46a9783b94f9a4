"""Per-field validation rules for setting descriptors.

Validation is pure and field-local: one descriptor in, at most one error out.
Whole-schema validation is a fold over the settings. Rules are checked in
precedence order and the first match wins:

    1. required field with an empty value
    2. numeric bounds (number, time.seconds)
    3. dotted-quad syntax (io.ip)
"""

from __future__ import annotations

import enum
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from .models import Schema, SettingDescriptor, SettingValueType

IP_PATTERN = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$", re.ASCII)


class ErrorKind(str, enum.Enum):
    """Recoverable, field-local validation failures."""

    MISSING_REQUIRED_FIELD = "missing_required_field"
    BELOW_MINIMUM = "below_minimum"
    ABOVE_MAXIMUM = "above_maximum"
    INVALID_IP_FORMAT = "invalid_ip_format"


class FieldError(BaseModel):
    """A validation error attached to one setting."""

    model_config = ConfigDict(frozen=True)

    field: str
    kind: ErrorKind
    message: str


def is_empty(vtype: SettingValueType, value: Any) -> bool:
    """True only for real absence: None, an empty string or an empty list.

    ``False`` and ``0`` are values, not absence.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def validate_setting(descriptor: SettingDescriptor) -> Optional[FieldError]:
    """Validate a single setting.

    Args:
        descriptor: The setting to check.

    Returns:
        FieldError or None if the value is valid.
    """
    name, vtype, value = descriptor.name, descriptor.vtype, descriptor.value

    if descriptor.required and is_empty(vtype, value):
        return FieldError(
            field=name,
            kind=ErrorKind.MISSING_REQUIRED_FIELD,
            message="This field is required",
        )

    if vtype.is_numeric and value is not None:
        if descriptor.min is not None and value < descriptor.min:
            return FieldError(
                field=name,
                kind=ErrorKind.BELOW_MINIMUM,
                message=f"Minimum value is {descriptor.min}",
            )
        if descriptor.max is not None and value > descriptor.max:
            return FieldError(
                field=name,
                kind=ErrorKind.ABOVE_MAXIMUM,
                message=f"Maximum value is {descriptor.max}",
            )

    # Syntax only: "999.1.1.1" passes.
    if vtype == SettingValueType.IO_IP and not is_empty(vtype, value):
        if not IP_PATTERN.fullmatch(value):
            return FieldError(
                field=name,
                kind=ErrorKind.INVALID_IP_FORMAT,
                message="Invalid IP address format",
            )

    return None


def validate_schema(schema: Schema) -> dict[str, FieldError]:
    """Validate every setting in schema order.

    Returns:
        dict: Mapping of setting name to its error; empty when all are valid.
    """
    errors: dict[str, FieldError] = {}
    for descriptor in schema.settings:
        error = validate_setting(descriptor)
        if error is not None:
            errors[descriptor.name] = error
    return errors
