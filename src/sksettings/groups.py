"""Grouping and visibility of settings for display.

Settings are grouped by their ``group`` label ("General" when unset). Labels
keep first-seen order and members keep schema order. Advanced settings drop
out entirely unless the advanced view is on; collapsing a group only hides
its members from a view, the group keeps them.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from pydantic import BaseModel, Field

from .models import SettingDescriptor

DEFAULT_GROUP = "General"


class GroupEntry(BaseModel):
    """A setting together with its position in the schema."""

    index: int = Field(description="Original position in the schema's settings")
    setting: SettingDescriptor


class SettingGroup(BaseModel):
    """One labelled group of settings."""

    label: str
    collapsed: bool = False
    entries: list[GroupEntry] = Field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [e.setting.name for e in self.entries]

    @property
    def visible_entries(self) -> list[GroupEntry]:
        """Entries a view should draw: none while the group is collapsed."""
        return [] if self.collapsed else list(self.entries)


def group_of(setting: SettingDescriptor) -> str:
    """The group label a setting belongs to."""
    return setting.group or DEFAULT_GROUP


def compute_groups(
    settings: Sequence[SettingDescriptor],
    show_advanced: bool,
    collapsed: Iterable[str] = (),
) -> dict[str, SettingGroup]:
    """Group settings by label for display.

    Args:
        settings: Settings in schema order.
        show_advanced: Include settings flagged ``advanced``.
        collapsed: Labels of groups the view has collapsed.

    Returns:
        dict: Ordered mapping of group label to SettingGroup.
    """
    collapsed_labels = set(collapsed)
    groups: dict[str, SettingGroup] = {}

    for index, setting in enumerate(settings):
        if setting.advanced and not show_advanced:
            continue
        label = group_of(setting)
        group = groups.get(label)
        if group is None:
            group = SettingGroup(label=label, collapsed=label in collapsed_labels)
            groups[label] = group
        group.entries.append(GroupEntry(index=index, setting=setting))

    return groups
