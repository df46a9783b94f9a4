"""Tests for SKSettings models — descriptors, schema and the wire format."""

import json

import pytest

from sksettings.models import (
    ConstantDescriptor,
    Schema,
    SettingDescriptor,
    SettingValueType,
    generate_schema_json,
    parse_schema_json,
)


class TestSettingDescriptor:
    """Test descriptor creation and the load-boundary shape check."""

    def test_minimal_descriptor(self):
        """A name, a vtype and a value are enough."""
        d = SettingDescriptor(name="volume", vtype="number", value=3)
        assert d.vtype == SettingValueType.NUMBER
        assert d.required is None
        assert d.group is None

    def test_wire_form_is_flattened(self):
        """The nested {name, setting} wire entry parses to a flat descriptor."""
        d = SettingDescriptor.from_wire({
            "name": "mode",
            "setting": {"vtype": "enum", "value": "eco", "enum_": ["eco", "turbo"], "ui": "dropdown"},
        })
        assert d.name == "mode"
        assert d.enum_values == ("eco", "turbo")
        assert d.ui_hint == "dropdown"

    def test_list_value_is_frozen_to_tuple(self):
        """List values are stored immutably."""
        d = SettingDescriptor(name="devices", vtype="list", value=["a", "b"])
        assert d.value == ("a", "b")

    def test_unknown_vtype_rejected(self):
        with pytest.raises(ValueError):
            SettingDescriptor(name="x", vtype="io.usb", value="1")

    @pytest.mark.parametrize(
        "vtype, value",
        [
            ("number", "80"),
            ("number", True),
            ("time.seconds", "30s"),
            ("boolean", 1),
            ("string", 5),
            ("io.ip", 192),
            ("list", "a,b"),
            ("list", [1, 2]),
        ],
    )
    def test_shape_mismatch_rejected(self, vtype, value):
        """A value whose shape doesn't match the vtype fails at load."""
        with pytest.raises(ValueError, match="does not match vtype"):
            SettingDescriptor(name="x", vtype=vtype, value=value)

    def test_enum_requires_values(self):
        with pytest.raises(ValueError, match="requires enum_"):
            SettingDescriptor(name="mode", vtype="enum", value="eco")

    def test_enum_value_must_be_allowed(self):
        with pytest.raises(ValueError, match="not one of"):
            SettingDescriptor(name="mode", vtype="enum", value="warp", enum_=["eco"])

    def test_none_value_accepted_for_any_vtype(self):
        d = SettingDescriptor(name="ip", vtype="io.ip", value=None)
        assert d.value is None

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="must not be empty"):
            SettingDescriptor(name="  ", vtype="string", value="x")

    def test_descriptor_is_frozen(self):
        d = SettingDescriptor(name="volume", vtype="number", value=3)
        with pytest.raises(ValueError):
            d.value = 4

    def test_with_value_returns_new_descriptor(self):
        """with_value leaves the original untouched and keeps every other field."""
        d = SettingDescriptor(name="volume", vtype="number", value=3, min=0, max=10, ui="slider")
        updated = d.with_value(7)
        assert d.value == 3
        assert updated.value == 7
        assert updated.min == 0 and updated.max == 10
        assert updated.ui_hint == "slider"

    def test_with_value_rechecks_shape(self):
        d = SettingDescriptor(name="volume", vtype="number", value=3)
        with pytest.raises(ValueError):
            d.with_value("loud")

    def test_to_wire_keeps_every_key(self):
        d = SettingDescriptor(name="devices", vtype="list", value=["a"])
        wire = d.to_wire()
        assert wire["name"] == "devices"
        assert wire["setting"]["value"] == ["a"]
        assert wire["setting"]["vtype"] == "list"
        assert "enum_" in wire["setting"] and wire["setting"]["enum_"] is None
        assert "ui" in wire["setting"]


class TestConstantDescriptor:
    def test_scalars_become_strings(self):
        assert ConstantDescriptor(name="PORT", value=8080).value == "8080"
        assert ConstantDescriptor(name="DEBUG", value=True).value == "true"
        assert ConstantDescriptor(name="EMPTY", value=None).value == ""


class TestSchema:
    """Test schema aggregation and helpers."""

    def test_sample_parses(self, sample_schema: Schema):
        assert len(sample_schema.settings) == 10
        assert len(sample_schema.constants) == 3
        assert sample_schema.skill is not None
        assert sample_schema.skill.capabilities == ("intent:light.turn_on", "intent:light.turn_off")

    def test_duplicate_setting_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate setting"):
            Schema(settings=(
                SettingDescriptor(name="a", vtype="string", value="x"),
                SettingDescriptor(name="a", vtype="string", value="y"),
            ))

    def test_duplicate_constant_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate constant"):
            Schema(constants=(
                ConstantDescriptor(name="K", value="1"),
                ConstantDescriptor(name="K", value="2"),
            ))

    def test_has_advanced(self, sample_schema: Schema):
        assert sample_schema.has_advanced is True
        assert Schema().has_advanced is False

    def test_replace_setting_keeps_order(self, sample_schema: Schema):
        d = sample_schema.settings[0].with_value(10)
        updated = sample_schema.replace_setting(d)
        assert updated.setting_names == sample_schema.setting_names
        assert updated.settings[0].value == 10
        assert sample_schema.settings[0].value == 80

    def test_replace_constant_keeps_order(self, sample_schema: Schema):
        updated = sample_schema.replace_constant(ConstantDescriptor(name="API_TOKEN", value="new"))
        assert updated.constant_names == ["HUE_BRIDGE_IP", "API_TOKEN", "ENCRYPTION_KEY"]
        assert updated.constant_values()["API_TOKEN"] == "new"
        assert sample_schema.constant_values()["API_TOKEN"] == "sk-0ae39..."

    def test_from_wire_rejects_non_mapping(self):
        with pytest.raises(ValueError, match="JSON object"):
            Schema.from_wire([])

    def test_skill_is_optional(self, sample_wire: dict):
        del sample_wire["skill"]
        schema = Schema.from_wire(sample_wire)
        assert schema.skill is None
        assert "skill" not in schema.to_wire()


class TestSchemaJson:
    def test_roundtrip(self, sample_wire: dict):
        """The wire JSON survives a parse -> generate roundtrip unchanged."""
        schema = parse_schema_json(json.dumps(sample_wire))
        restored = json.loads(generate_schema_json(schema))
        assert restored["settings"] == sample_wire["settings"]
        assert restored["constants"] == sample_wire["constants"]
        assert restored["skill"]["id"] == "light_control"

    def test_invalid_json(self):
        with pytest.raises(ValueError, match="Invalid schema JSON"):
            parse_schema_json("{not json")
