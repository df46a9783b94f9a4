"""Tests for grouping and advanced visibility."""

from sksettings.groups import DEFAULT_GROUP, compute_groups, group_of
from sksettings.models import Schema, SettingDescriptor


class TestComputeGroups:
    def test_sample_default_view(self, sample_schema: Schema):
        """Advanced settings are hidden; hallway settings get their own group."""
        groups = compute_groups(sample_schema.settings, show_advanced=False)

        assert list(groups) == ["General", "Hallway Settings"]
        assert groups["General"].names == [
            "welcome_brightness",
            "linked_devices",
            "poll_interval",
            "device_ip",
            "mode",
            "welcome_message",
            "enable_logging",
        ]
        assert groups["Hallway Settings"].names == ["light_id", "motion_timeout"]
        all_names = [n for g in groups.values() for n in g.names]
        assert "api_token" not in all_names

    def test_advanced_reappears_in_its_group(self, sample_schema: Schema):
        groups = compute_groups(sample_schema.settings, show_advanced=True)
        assert groups["General"].names[2] == "api_token"

    def test_entries_keep_schema_index(self, sample_schema: Schema):
        groups = compute_groups(sample_schema.settings, show_advanced=False)
        hallway = groups["Hallway Settings"].entries
        assert [e.index for e in hallway] == [6, 7]
        assert groups["General"].entries[2].index == 3

    def test_labels_in_first_seen_order(self):
        settings = [
            SettingDescriptor(name="a", vtype="string", value="", group="Zeta"),
            SettingDescriptor(name="b", vtype="string", value=""),
            SettingDescriptor(name="c", vtype="string", value="", group="Zeta"),
        ]
        groups = compute_groups(settings, show_advanced=False)
        assert list(groups) == ["Zeta", DEFAULT_GROUP]
        assert groups["Zeta"].names == ["a", "c"]

    def test_group_with_only_advanced_members_is_omitted(self):
        settings = [
            SettingDescriptor(name="a", vtype="string", value="", group="Debug", advanced=True),
            SettingDescriptor(name="b", vtype="string", value=""),
        ]
        assert list(compute_groups(settings, show_advanced=False)) == [DEFAULT_GROUP]
        assert list(compute_groups(settings, show_advanced=True)) == ["Debug", DEFAULT_GROUP]

    def test_collapsed_group_keeps_members(self, sample_schema: Schema):
        groups = compute_groups(sample_schema.settings, False, collapsed={"Hallway Settings"})
        hallway = groups["Hallway Settings"]
        assert hallway.collapsed is True
        assert hallway.names == ["light_id", "motion_timeout"]
        assert hallway.visible_entries == []
        assert groups["General"].collapsed is False
        assert len(groups["General"].visible_entries) == 7

    def test_empty_settings(self):
        assert compute_groups([], show_advanced=True) == {}


class TestGroupOf:
    def test_missing_or_blank_group_is_general(self):
        assert group_of(SettingDescriptor(name="a", vtype="string", value="")) == "General"
        assert group_of(SettingDescriptor(name="a", vtype="string", value="", group="")) == "General"
        assert group_of(SettingDescriptor(name="a", vtype="string", value="", group="Audio")) == "Audio"
