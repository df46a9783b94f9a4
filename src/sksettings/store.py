"""SKSettings store — working copy and baseline of a settings schema.

    load(schema)  -> working = baseline = schema
    set_*         -> working replaced, baseline untouched
    commit()      -> baseline = working   (after a successful save)
    revert()      -> working = baseline   (cancel)

Schemas are frozen models, so both swaps are plain reference assignments
and the baseline can never observe an edit.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .errors import UnknownFieldError
from .models import ConstantDescriptor, Schema, SettingDescriptor
from .validator import FieldError, validate_setting

logger = logging.getLogger("sksettings.store")


class SchemaStore:
    """Holds the live schema being edited and its last committed snapshot."""

    def __init__(self) -> None:
        self._working: Optional[Schema] = None
        self._baseline: Optional[Schema] = None
        self._errors: dict[str, FieldError] = {}

    @property
    def loaded(self) -> bool:
        return self._working is not None

    @property
    def working(self) -> Schema:
        """The schema as currently edited."""
        if self._working is None:
            raise RuntimeError("No schema loaded")
        return self._working

    @property
    def baseline(self) -> Schema:
        """The last loaded or committed schema."""
        if self._baseline is None:
            raise RuntimeError("No schema loaded")
        return self._baseline

    @property
    def errors(self) -> dict[str, FieldError]:
        """Current validation errors by setting name (absent means valid)."""
        return dict(self._errors)

    def load(self, schema: Schema) -> None:
        """Install a schema as both working copy and baseline.

        Args:
            schema: The freshly loaded schema.
        """
        self._working = schema
        self._baseline = schema
        self._errors = {}
        logger.info(
            "Loaded schema: %d settings, %d constants",
            len(schema.settings),
            len(schema.constants),
        )

    def get_setting(self, name: str) -> SettingDescriptor:
        """Look up a setting in the working copy.

        Raises:
            UnknownFieldError: If no setting has this name.
        """
        for descriptor in self.working.settings:
            if descriptor.name == name:
                return descriptor
        raise UnknownFieldError("setting", name)

    def get_constant(self, name: str) -> ConstantDescriptor:
        """Look up a constant in the working copy.

        Raises:
            UnknownFieldError: If no constant has this name.
        """
        for constant in self.working.constants:
            if constant.name == name:
                return constant
        raise UnknownFieldError("constant", name)

    def has_setting(self, name: str) -> bool:
        return name in self.working.setting_names

    def has_constant(self, name: str) -> bool:
        return name in self.working.constant_names

    def list_settings(self) -> list[tuple[str, Any]]:
        """(name, value) pairs for every setting, in schema order."""
        return list(self.working.setting_values().items())

    def list_constants(self) -> list[tuple[str, str]]:
        """(name, value) pairs for every constant, in schema order."""
        return list(self.working.constant_values().items())

    def set_setting_value(self, name: str, value: Any) -> Optional[FieldError]:
        """Replace a setting's value in the working copy and re-validate it.

        Args:
            name: Setting name.
            value: New value, shaped for the setting's vtype.

        Returns:
            FieldError or None: The field's validation result after the edit.

        Raises:
            UnknownFieldError: If no setting has this name.
            ValueError: If the value does not match the vtype (nothing changes).
        """
        updated = self.get_setting(name).with_value(value)
        self._working = self.working.replace_setting(updated)

        error = validate_setting(updated)
        if error is None:
            self._errors.pop(name, None)
        else:
            self._errors[name] = error
        logger.debug("Set %s = %r (%s)", name, value, error.kind.value if error else "ok")
        return error

    def set_constant_value(self, name: str, value: str) -> None:
        """Replace a constant's value in the working copy. Never validated.

        Raises:
            UnknownFieldError: If no constant has this name.
        """
        current = self.get_constant(name)
        self._working = self.working.replace_constant(
            ConstantDescriptor(name=current.name, value=value)
        )
        logger.debug("Set constant %s", name)

    def has_unsaved_changes(self) -> bool:
        """Whether setting or constant values differ from the baseline.

        Skill metadata is read-only and never compared.
        """
        working, baseline = self.working, self.baseline
        if working is baseline:
            return False
        return (
            working.setting_values() != baseline.setting_values()
            or working.constant_values() != baseline.constant_values()
        )

    def changed_fields(self) -> list[str]:
        """Names of settings, then constants, whose value differs from the baseline."""
        base_settings = self.baseline.setting_values()
        base_constants = self.baseline.constant_values()
        changed = [
            name
            for name, value in self.working.setting_values().items()
            if base_settings.get(name) != value
        ]
        changed.extend(
            name
            for name, value in self.working.constant_values().items()
            if base_constants.get(name) != value
        )
        return changed

    def replace_errors(self, errors: dict[str, FieldError]) -> None:
        """Publish a full error mapping (e.g. from whole-schema validation)."""
        self._errors = dict(errors)

    def commit(self) -> None:
        """Promote the working copy to be the new baseline."""
        self._baseline = self.working
        logger.info("Committed schema")

    def revert(self) -> None:
        """Drop all edits: the working copy becomes the baseline again."""
        self._working = self.baseline
        self._errors = {}
        logger.info("Reverted schema to baseline")
