"""SKSettings MCP server — one edit session exposed as MCP tools.

An agent edits a skill's settings through the same session an operator
would use: values are validated per field, nothing is persisted until
``sksettings.save`` succeeds, and ``sksettings.cancel`` drops every edit.

Tools:
    sksettings.status        state, changed fields, errors
    sksettings.schema        the working copy (wire JSON)
    sksettings.groups        settings grouped for display
    sksettings.set           change a setting
    sksettings.set_constant  change a constant
    sksettings.save          validate and persist
    sksettings.cancel        revert to the last saved values
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .errors import SaveInProgressError, UnknownFieldError
from .files import SkillConfigFiles
from .session import ChangeSession

logger = logging.getLogger("sksettings.server")

_NAME_ARG = {"type": "string", "description": "Setting or constant name"}


def _text(data: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2, default=str))]


class SettingsServer:
    """Serves a ChangeSession over the MCP protocol.

    Args:
        session: The edit session (started lazily by :meth:`serve`).
        name: MCP server name.
    """

    def __init__(self, session: ChangeSession, name: str = "sksettings") -> None:
        self.session = session
        self._mcp_server = Server(name)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Register MCP protocol handlers."""

        @self._mcp_server.list_tools()
        async def list_tools() -> list[Tool]:
            return self.tool_definitions()

        @self._mcp_server.call_tool()
        async def call_tool(name: str, arguments: dict) -> list[TextContent]:
            return await self._handle_tool_call(name, arguments or {})

    @staticmethod
    def tool_definitions() -> list[Tool]:
        """The MCP tools this server offers."""
        empty = {"type": "object", "properties": {}, "required": []}
        return [
            Tool(
                name="sksettings.status",
                description="Session state, changed fields and validation errors",
                inputSchema=empty,
            ),
            Tool(
                name="sksettings.schema",
                description="The settings and constants as currently edited",
                inputSchema=empty,
            ),
            Tool(
                name="sksettings.groups",
                description="Settings grouped for display",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "advanced": {
                            "type": "boolean",
                            "description": "Include advanced settings",
                        },
                    },
                    "required": [],
                },
            ),
            Tool(
                name="sksettings.set",
                description="Change a setting's value (validated, not yet saved)",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": _NAME_ARG,
                        "value": {"description": "New value, typed for the setting"},
                    },
                    "required": ["name", "value"],
                },
            ),
            Tool(
                name="sksettings.set_constant",
                description="Change a constant's value (not yet saved)",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": _NAME_ARG,
                        "value": {"type": "string", "description": "New value"},
                    },
                    "required": ["name", "value"],
                },
            ),
            Tool(
                name="sksettings.save",
                description="Validate every setting and persist the edits",
                inputSchema=empty,
            ),
            Tool(
                name="sksettings.cancel",
                description="Discard all unsaved edits",
                inputSchema=empty,
            ),
        ]

    async def _handle_tool_call(self, name: str, arguments: dict) -> list[TextContent]:
        """Route a tool call to the session.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            list[TextContent]: MCP response.
        """
        try:
            if name == "sksettings.status":
                return _text(self._status())

            if name == "sksettings.schema":
                return _text(self.session.schema.to_wire())

            if name == "sksettings.groups":
                if "advanced" in arguments:
                    self.session.set_show_advanced(bool(arguments["advanced"]))
                return _text(self._groups())

            if name == "sksettings.set":
                error = self.session.edit_setting(arguments["name"], arguments.get("value"))
                return _text({
                    "name": arguments["name"],
                    "error": error.message if error else None,
                    "dirty": self.session.is_dirty,
                })

            if name == "sksettings.set_constant":
                self.session.edit_constant(arguments["name"], arguments.get("value", ""))
                return _text({"name": arguments["name"], "dirty": self.session.is_dirty})

            if name == "sksettings.save":
                result = await self.session.save()
                return _text({
                    "status": result.status.value,
                    "errors": {k: e.message for k, e in result.errors.items()},
                    "detail": result.detail,
                })

            if name == "sksettings.cancel":
                self.session.cancel()
                return _text(self._status())

        except (UnknownFieldError, SaveInProgressError) as exc:
            return _text({"error": str(exc)})
        except KeyError as exc:
            return _text({"error": f"Missing argument: {exc}"})
        except ValueError as exc:
            return _text({"error": f"Invalid value: {exc}"})

        return _text({"error": f"Unknown tool: {name}"})

    def _status(self) -> dict[str, Any]:
        session = self.session
        return {
            "state": session.state.value,
            "dirty": session.is_dirty,
            "changed": session.store.changed_fields(),
            "errors": {k: e.message for k, e in session.errors.items()},
            "show_advanced": session.show_advanced,
        }

    def _groups(self) -> list[dict[str, Any]]:
        return [
            {
                "label": label,
                "collapsed": group.collapsed,
                "settings": [
                    {"name": e.setting.name, "index": e.index, "value": e.setting.value}
                    for e in group.entries
                ],
            }
            for label, group in self.session.groups().items()
        ]

    async def serve(self) -> None:
        """Start the session if needed, then serve on stdio."""
        if not self.session.store.loaded:
            await self.session.start()
        async with stdio_server() as (read_stream, write_stream):
            await self._mcp_server.run(
                read_stream,
                write_stream,
                self._mcp_server.create_initialization_options(),
            )


def main(skill_dir: str) -> None:
    """Entry point: serve a skill directory's settings over MCP.

    Args:
        skill_dir: Path to the skill directory.
    """
    import asyncio

    logging.basicConfig(level=logging.WARNING, format="%(name)s: %(message)s")
    files = SkillConfigFiles(Path(skill_dir))
    server = SettingsServer(ChangeSession(files.load_schema, files.save_schema))
    logger.warning("SKSettings MCP server starting for %s", skill_dir)
    asyncio.run(server.serve())
