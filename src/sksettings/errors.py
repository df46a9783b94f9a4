"""Exceptions raised by the settings engine and its session.

Field validation problems are not exceptions: they are reported as
:class:`sksettings.validator.FieldError` values and only block a save.
"""

from __future__ import annotations


class UnknownFieldError(KeyError):
    """A setting or constant name that is not in the schema.

    Referencing a missing field is a programming error, not an operator one.
    """

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"Unknown {kind}: '{name}'")
        self.kind = kind
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class LoadFailedError(RuntimeError):
    """The load collaborator failed; the session cannot start."""


class SaveFailedError(RuntimeError):
    """The save collaborator failed; local edits are kept."""


class SaveInProgressError(RuntimeError):
    """A save is already outstanding for this session."""
