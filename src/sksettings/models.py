"""SKSettings data models — the settings schema as Pydantic models.

A schema has two collections:
  - Settings: typed, validated fields an operator edits (brightness, IPs, modes)
  - Constants: opaque named strings, edited but never validated

Every model here is frozen. The working copy of a schema changes by swapping
in new descriptors, so an earlier snapshot can never be touched by an edit.
"""

from __future__ import annotations

import enum
import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SettingValueType(str, enum.Enum):
    """Declared value type of a setting (the ``vtype``)."""

    NUMBER = "number"
    TIME_SECONDS = "time.seconds"
    STRING = "string"
    BOOLEAN = "boolean"
    ENUM = "enum"
    LIST = "list"
    IO_IP = "io.ip"

    @property
    def is_numeric(self) -> bool:
        """Numeric types carry min/max bounds."""
        return self in (SettingValueType.NUMBER, SettingValueType.TIME_SECONDS)


Number = Union[int, float]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SettingDescriptor(BaseModel):
    """One configurable field of a skill.

    The runtime shape of ``value`` always matches ``vtype``; that is checked
    here, at the load boundary, and again whenever a value is replaced
    through :meth:`with_value`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(description="Unique setting identifier")
    vtype: SettingValueType = Field(description="Declared value type")
    value: Any = Field(default=None, description="Current value, shaped by vtype")
    min: Optional[Number] = Field(default=None, description="Lower bound (numeric vtypes)")
    max: Optional[Number] = Field(default=None, description="Upper bound (numeric vtypes)")
    enum_values: Optional[tuple[str, ...]] = Field(
        default=None, alias="enum_", description="Allowed values (vtype=enum)"
    )
    required: Optional[bool] = Field(default=None, description="Empty values are invalid")
    ui_hint: Optional[str] = Field(
        default=None, alias="ui", description="Presentation hint (slider, toggle, password, ...)"
    )
    advanced: Optional[bool] = Field(default=None, description="Hidden unless advanced view is on")
    group: Optional[str] = Field(default=None, description="Group label (None means 'General')")
    description: Optional[str] = Field(default=None, description="Help text")

    @model_validator(mode="before")
    @classmethod
    def flatten_wire_form(cls, data: Any) -> Any:
        """Accept ``{"name": ..., "setting": {...}}`` as well as the flat form.

        List values become tuples so the descriptor stays immutable.
        """
        if isinstance(data, dict):
            if isinstance(data.get("setting"), dict):
                data = {"name": data.get("name"), **data["setting"]}
            value = data.get("value")
            if isinstance(value, list):
                data = {**data, "value": tuple(value)}
        return data

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Names are mapping keys, so they cannot be blank."""
        if not v or not v.strip():
            raise ValueError("Setting name must not be empty")
        return v

    @model_validator(mode="after")
    def check_value_shape(self) -> "SettingDescriptor":
        """Enforce that the value's runtime shape matches the vtype."""
        vtype, value = self.vtype, self.value

        if vtype == SettingValueType.ENUM and not self.enum_values:
            raise ValueError(f"Setting '{self.name}': vtype 'enum' requires enum_ values")

        if value is None:
            return self

        if vtype.is_numeric:
            ok = _is_number(value)
        elif vtype == SettingValueType.BOOLEAN:
            ok = isinstance(value, bool)
        elif vtype == SettingValueType.LIST:
            ok = isinstance(value, tuple) and all(isinstance(i, str) for i in value)
        else:
            ok = isinstance(value, str)

        if not ok:
            raise ValueError(
                f"Setting '{self.name}': value {value!r} does not match vtype '{vtype.value}'"
            )

        if vtype == SettingValueType.ENUM and value not in self.enum_values:
            raise ValueError(
                f"Setting '{self.name}': '{value}' is not one of {list(self.enum_values)}"
            )
        return self

    @classmethod
    def from_wire(cls, item: dict[str, Any]) -> "SettingDescriptor":
        """Build a descriptor from a ``{"name", "setting"}`` wire entry."""
        return cls.model_validate(item)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the nested wire form, every key present."""
        return {
            "name": self.name,
            "setting": self.model_dump(mode="json", by_alias=True, exclude={"name"}),
        }

    def with_value(self, value: Any) -> "SettingDescriptor":
        """Return a copy holding ``value``, re-checked against the vtype.

        Raises:
            ValueError: If the value's shape does not match the vtype.
        """
        data = self.model_dump(by_alias=True)
        data["value"] = value
        return type(self).model_validate(data)


class ConstantDescriptor(BaseModel):
    """A named opaque constant. No type, no validation, no grouping."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str = ""

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Constant name must not be empty")
        return v

    @field_validator("value", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        """Constant files may hold YAML scalars; keep them as text."""
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, (list, dict)):
            return json.dumps(v)
        return v


class SkillInfo(BaseModel):
    """Read-only skill metadata shown alongside the settings."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""
    description: str = ""
    author: str = ""
    version: str = ""
    entry: str = Field(default="", description="Entry point script (e.g. main.avi)")
    capabilities: tuple[str, ...] = ()
    permissions: tuple[str, ...] = ()
    disabled: bool = False


class Schema(BaseModel):
    """The full editable schema: settings, constants and skill metadata."""

    model_config = ConfigDict(frozen=True)

    skill: Optional[SkillInfo] = None
    settings: tuple[SettingDescriptor, ...] = ()
    constants: tuple[ConstantDescriptor, ...] = ()

    @field_validator("settings")
    @classmethod
    def unique_setting_names(
        cls, v: tuple[SettingDescriptor, ...]
    ) -> tuple[SettingDescriptor, ...]:
        _reject_duplicates("setting", [s.name for s in v])
        return v

    @field_validator("constants")
    @classmethod
    def unique_constant_names(
        cls, v: tuple[ConstantDescriptor, ...]
    ) -> tuple[ConstantDescriptor, ...]:
        _reject_duplicates("constant", [c.name for c in v])
        return v

    @property
    def setting_names(self) -> list[str]:
        return [s.name for s in self.settings]

    @property
    def constant_names(self) -> list[str]:
        return [c.name for c in self.constants]

    @property
    def has_advanced(self) -> bool:
        """Whether any setting is hidden behind the advanced view."""
        return any(s.advanced for s in self.settings)

    def setting_values(self) -> dict[str, Any]:
        """Ordered mapping of setting name to value."""
        return {s.name: s.value for s in self.settings}

    def constant_values(self) -> dict[str, str]:
        """Ordered mapping of constant name to value."""
        return {c.name: c.value for c in self.constants}

    def replace_setting(self, descriptor: SettingDescriptor) -> "Schema":
        """Return a schema with the same-named setting swapped for ``descriptor``."""
        settings = tuple(
            descriptor if s.name == descriptor.name else s for s in self.settings
        )
        return self.model_copy(update={"settings": settings})

    def replace_constant(self, constant: ConstantDescriptor) -> "Schema":
        """Return a schema with the same-named constant swapped for ``constant``."""
        constants = tuple(
            constant if c.name == constant.name else c for c in self.constants
        )
        return self.model_copy(update={"constants": constants})

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Schema":
        """Build a schema from the wire mapping.

        Raises:
            ValueError: If the payload is not a mapping or fails validation.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Schema payload must be a JSON object, got {type(data).__name__}")
        return cls.model_validate(
            {
                "skill": data.get("skill"),
                "settings": data.get("settings") or [],
                "constants": data.get("constants") or [],
            }
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the wire mapping (``skill`` only when present)."""
        data: dict[str, Any] = {}
        if self.skill is not None:
            data["skill"] = self.skill.model_dump(mode="json")
        data["settings"] = [s.to_wire() for s in self.settings]
        data["constants"] = [c.model_dump(mode="json") for c in self.constants]
        return data


def _reject_duplicates(kind: str, names: list[str]) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ValueError(f"Duplicate {kind} name: '{name}'")
        seen.add(name)


def parse_schema_json(text: str) -> Schema:
    """Parse the wire JSON into a Schema.

    Args:
        text: JSON document ``{skill?, settings, constants}``.

    Returns:
        Schema: The parsed schema.

    Raises:
        ValueError: If the JSON is malformed or fails validation.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid schema JSON: {exc}") from exc
    return Schema.from_wire(raw)


def generate_schema_json(schema: Schema, indent: Optional[int] = 2) -> str:
    """Serialize a Schema back to the wire JSON.

    Args:
        schema: The schema to serialize.
        indent: JSON indentation (None for compact output).

    Returns:
        str: JSON string representation.
    """
    return json.dumps(schema.to_wire(), indent=indent)
