"""Shared fixtures: the light-control sample schema in its wire form."""

from __future__ import annotations

import pytest

from sksettings.models import Schema


def _setting(name: str, vtype: str, value, **extra) -> dict:
    body = {
        "min": None,
        "max": None,
        "description": extra.pop("description", ""),
        "value": value,
        "required": None,
        "ui": None,
        "enum_": None,
        "advanced": None,
        "group": None,
        "vtype": vtype,
    }
    body.update(extra)
    return {"name": name, "setting": body}


def make_sample_wire() -> dict:
    return {
        "skill": {
            "id": "light_control",
            "name": "Light Control",
            "description": "A skill to control the lights",
            "entry": "main.avi",
            "capabilities": ["intent:light.turn_on", "intent:light.turn_off"],
            "permissions": ["speak", "display"],
            "author": "Avi Labs",
            "version": "1.0.0",
        },
        "settings": [
            _setting("welcome_brightness", "number", 80, min=0, max=100,
                     description="Brightness level for the welcome light"),
            _setting("linked_devices", "list", ["light-bedroom", "speaker-bedroom"],
                     description="Devices to activate together"),
            _setting("api_token", "string", "", advanced=True, ui="password",
                     description="Private API token for debug operations"),
            _setting("poll_interval", "time.seconds", 30, min=5, max=300, ui="slider",
                     description="Polling frequency to check if the device is online"),
            _setting("device_ip", "io.ip", "192.168.1.123", required=True, ui="text",
                     description="IP address of the smart plug"),
            _setting("mode", "enum", "eco", ui="dropdown", enum_=["eco", "normal", "turbo"],
                     description="Select device mode"),
            _setting("light_id", "string", "light-hallway-1", group="Hallway Settings",
                     description="ID of the hallway light"),
            _setting("motion_timeout", "time.seconds", 120, group="Hallway Settings",
                     description="Seconds before auto-off"),
            _setting("welcome_message", "string", "Welcome home!", ui="text",
                     description="Message to play when the user arrives"),
            _setting("enable_logging", "boolean", True, ui="toggle",
                     description="Enable verbose logging"),
        ],
        "constants": [
            {"name": "HUE_BRIDGE_IP", "value": "192.168.1.42"},
            {"name": "API_TOKEN", "value": "sk-0ae39..."},
            {"name": "ENCRYPTION_KEY", "value": "kdfj39f..."},
        ],
    }


@pytest.fixture
def sample_wire() -> dict:
    """A fresh copy of the sample payload."""
    return make_sample_wire()


@pytest.fixture
def sample_schema(sample_wire) -> Schema:
    """The sample payload parsed into a Schema."""
    return Schema.from_wire(sample_wire)
