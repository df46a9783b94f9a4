"""SKSettings session — one operator's edit session over a settings schema.

State machine:

    clean  --edit-->        dirty   (or stays clean if the value is unchanged)
    dirty  --edit back-->   clean
    dirty  --cancel-->      clean   (working copy reverted)
    dirty  --save-->        saving  (only when every setting validates)
    saving --ok-->          clean   (working copy becomes the baseline)
    saving --failure-->     dirty   (edits kept, save_failed emitted once)

The session owns its view state too (collapsed groups, advanced toggle);
nothing here is process-wide.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from .errors import LoadFailedError, SaveFailedError, SaveInProgressError
from .groups import SettingGroup, compute_groups
from .models import Schema
from .store import SchemaStore
from .validator import FieldError, validate_schema

logger = logging.getLogger("sksettings.session")

SchemaLoader = Callable[[], Awaitable[Schema]]
SchemaSaver = Callable[[Schema], Awaitable[Any]]
Listener = Callable[["SessionEvent", Any], None]


class SessionState(str, enum.Enum):
    """Where the session is in its edit/save cycle."""

    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"


class SaveStatus(str, enum.Enum):
    """Outcome of a save request."""

    SAVED = "saved"
    INVALID = "invalid"
    FAILED = "failed"
    UNCHANGED = "unchanged"


class SessionEvent(str, enum.Enum):
    """Notifications delivered to session listeners."""

    LOADED = "loaded"
    CHANGED = "changed"
    ERRORS = "errors"
    SAVED = "saved"
    SAVE_FAILED = "save_failed"
    REVERTED = "reverted"


class SaveResult(BaseModel):
    """What happened when the session tried to save."""

    status: SaveStatus
    errors: dict[str, FieldError] = Field(default_factory=dict)
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (SaveStatus.SAVED, SaveStatus.UNCHANGED)


class ChangeSession:
    """Coordinates editing, validation, save and cancel for one schema.

    Args:
        loader: Async callable returning the schema to edit.
        saver: Async callable persisting a schema; raises on failure.
    """

    def __init__(self, loader: SchemaLoader, saver: SchemaSaver) -> None:
        self._loader = loader
        self._saver = saver
        self._store = SchemaStore()
        self._started = False
        self._saving = False
        self._dirty = False
        self._show_advanced = False
        self._collapsed: set[str] = set()
        self._listeners: list[Listener] = []

    # ── lifecycle ─────────────────────────────────────────────────────

    async def start(self) -> Schema:
        """Load the schema. Issued once per session.

        Returns:
            Schema: The loaded schema.

        Raises:
            LoadFailedError: If the loader fails for any reason.
            RuntimeError: If the session was already started.
        """
        if self._started:
            raise RuntimeError("Session already started")
        self._started = True

        try:
            schema = await self._loader()
        except Exception as exc:
            logger.error("Loading schema failed: %s", exc)
            raise LoadFailedError(f"Failed to load schema: {exc}") from exc

        self._store.load(schema)
        self._dirty = False
        self._emit(SessionEvent.LOADED, schema)
        return schema

    # ── read access ───────────────────────────────────────────────────

    @property
    def store(self) -> SchemaStore:
        return self._store

    @property
    def schema(self) -> Schema:
        """The working copy."""
        return self._store.working

    @property
    def baseline(self) -> Schema:
        return self._store.baseline

    @property
    def state(self) -> SessionState:
        if self._saving:
            return SessionState.SAVING
        return SessionState.DIRTY if self._dirty else SessionState.CLEAN

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def errors(self) -> dict[str, FieldError]:
        return self._store.errors

    # ── editing ───────────────────────────────────────────────────────

    def edit_setting(self, name: str, value: Any) -> Optional[FieldError]:
        """Change one setting in the working copy.

        Returns:
            FieldError or None: The field's validation result.

        Raises:
            SaveInProgressError: While a save is outstanding.
            UnknownFieldError: If the setting does not exist.
            ValueError: If the value does not match the setting's vtype.
        """
        self._guard_not_saving("edit")
        error = self._store.set_setting_value(name, value)
        self._refresh_dirty()
        self._emit(SessionEvent.CHANGED, name)
        return error

    def edit_constant(self, name: str, value: str) -> None:
        """Change one constant in the working copy.

        Raises:
            SaveInProgressError: While a save is outstanding.
            UnknownFieldError: If the constant does not exist.
        """
        self._guard_not_saving("edit")
        self._store.set_constant_value(name, value)
        self._refresh_dirty()
        self._emit(SessionEvent.CHANGED, name)

    def cancel(self) -> None:
        """Discard every edit and clear all errors."""
        self._guard_not_saving("cancel")
        self._store.revert()
        self._dirty = False
        self._emit(SessionEvent.REVERTED, None)

    async def save(self) -> SaveResult:
        """Validate the whole working copy and persist it.

        Returns:
            SaveResult: ``saved``, ``unchanged``, ``invalid`` (errors
            published, saver not called) or ``failed`` (edits kept).

        Raises:
            SaveInProgressError: If a save is already outstanding.
        """
        if self._saving:
            raise SaveInProgressError("A save is already in progress")

        if not self._dirty:
            return SaveResult(status=SaveStatus.UNCHANGED)

        errors = validate_schema(self._store.working)
        if errors:
            self._store.replace_errors(errors)
            logger.warning("Save rejected: %d invalid field(s): %s", len(errors), ", ".join(errors))
            self._emit(SessionEvent.ERRORS, dict(errors))
            return SaveResult(status=SaveStatus.INVALID, errors=errors)

        self._saving = True
        snapshot = self._store.working
        try:
            await self._saver(snapshot)
        except (OSError, SaveFailedError) as exc:
            logger.warning("Save failed: %s", exc)
            self._emit(SessionEvent.SAVE_FAILED, str(exc))
            return SaveResult(status=SaveStatus.FAILED, detail=str(exc))
        finally:
            self._saving = False

        self._store.commit()
        self._store.replace_errors({})
        self._refresh_dirty()
        logger.info("Saved schema (%d settings)", len(snapshot.settings))
        self._emit(SessionEvent.SAVED, snapshot)
        return SaveResult(status=SaveStatus.SAVED)

    # ── view state ────────────────────────────────────────────────────

    @property
    def show_advanced(self) -> bool:
        return self._show_advanced

    def set_show_advanced(self, flag: bool) -> None:
        self._show_advanced = bool(flag)

    def toggle_advanced(self) -> bool:
        """Flip advanced visibility and return the new value."""
        self._show_advanced = not self._show_advanced
        return self._show_advanced

    @property
    def collapsed_groups(self) -> frozenset[str]:
        return frozenset(self._collapsed)

    def is_collapsed(self, label: str) -> bool:
        return label in self._collapsed

    def toggle_group(self, label: str) -> bool:
        """Collapse or expand a group; returns True if now collapsed."""
        if label in self._collapsed:
            self._collapsed.discard(label)
            return False
        self._collapsed.add(label)
        return True

    def groups(self) -> dict[str, SettingGroup]:
        """The working copy's settings grouped for display."""
        return compute_groups(self._store.working.settings, self._show_advanced, self._collapsed)

    # ── listeners ─────────────────────────────────────────────────────

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register ``callback(event, payload)``; returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: SessionEvent, payload: Any) -> None:
        for callback in list(self._listeners):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Session listener failed on '%s'", event.value)

    def _refresh_dirty(self) -> None:
        self._dirty = self._store.has_unsaved_changes()

    def _guard_not_saving(self, action: str) -> None:
        if self._saving:
            raise SaveInProgressError(f"Cannot {action} while a save is in progress")
