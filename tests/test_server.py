"""Tests for the MCP settings server.

Covers:
- tool definitions
- status / schema / groups payloads
- set, save and cancel routed through the session
- errors returned as JSON payloads instead of raised
"""

from __future__ import annotations

import asyncio
import json

import pytest

from sksettings.models import Schema
from sksettings.server import SettingsServer
from sksettings.session import ChangeSession


@pytest.fixture
def saved() -> list:
    return []


@pytest.fixture
def server(sample_schema: Schema, saved: list) -> SettingsServer:
    async def loader() -> Schema:
        return sample_schema

    async def saver(schema: Schema) -> None:
        saved.append(schema)

    session = ChangeSession(loader, saver)
    asyncio.run(session.start())
    return SettingsServer(session)


def _call(server: SettingsServer, name: str, arguments: dict | None = None):
    result = asyncio.run(server._handle_tool_call(name, arguments or {}))
    assert len(result) == 1
    return json.loads(result[0].text)


class TestToolDefinitions:
    def test_all_tools_listed(self):
        names = [t.name for t in SettingsServer.tool_definitions()]
        assert names == [
            "sksettings.status",
            "sksettings.schema",
            "sksettings.groups",
            "sksettings.set",
            "sksettings.set_constant",
            "sksettings.save",
            "sksettings.cancel",
        ]


class TestReadTools:
    def test_status_clean(self, server):
        data = _call(server, "sksettings.status")
        assert data["state"] == "clean"
        assert data["changed"] == []
        assert data["errors"] == {}

    def test_schema_is_wire_json(self, server, sample_wire):
        data = _call(server, "sksettings.schema")
        assert data["settings"] == sample_wire["settings"]

    def test_groups(self, server):
        data = _call(server, "sksettings.groups")
        assert [g["label"] for g in data] == ["General", "Hallway Settings"]
        assert "api_token" not in [s["name"] for s in data[0]["settings"]]

        data = _call(server, "sksettings.groups", {"advanced": True})
        assert "api_token" in [s["name"] for s in data[0]["settings"]]


class TestEditTools:
    def test_set_and_save(self, server, saved):
        data = _call(server, "sksettings.set", {"name": "linked_devices", "value": ["lamp"]})
        assert data == {"name": "linked_devices", "error": None, "dirty": True}

        data = _call(server, "sksettings.save")
        assert data["status"] == "saved"
        assert saved[0].setting_values()["linked_devices"] == ("lamp",)

    def test_set_reports_field_error(self, server):
        data = _call(server, "sksettings.set", {"name": "welcome_brightness", "value": 150})
        assert data["error"] == "Maximum value is 100"

        data = _call(server, "sksettings.save")
        assert data["status"] == "invalid"
        assert data["errors"] == {"welcome_brightness": "Maximum value is 100"}

    def test_cancel(self, server):
        _call(server, "sksettings.set_constant", {"name": "API_TOKEN", "value": "x"})
        data = _call(server, "sksettings.cancel")
        assert data["state"] == "clean"
        assert server.session.schema.constant_values()["API_TOKEN"] == "sk-0ae39..."

    def test_unknown_field(self, server):
        data = _call(server, "sksettings.set", {"name": "nope", "value": 1})
        assert "Unknown setting" in data["error"]

    def test_wrong_shape(self, server):
        data = _call(server, "sksettings.set", {"name": "enable_logging", "value": "yes"})
        assert data["error"].startswith("Invalid value")

    def test_missing_argument(self, server):
        data = _call(server, "sksettings.set", {"value": 1})
        assert "Missing argument" in data["error"]

    def test_unknown_tool(self, server):
        data = _call(server, "sksettings.nope")
        assert data["error"] == "Unknown tool: sksettings.nope"
