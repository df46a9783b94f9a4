"""SKSettings CLI — view and edit a skill's settings from the terminal.

Commands:
    show        Show settings by group (and constants)
    info        Show the skill metadata card
    validate    Validate every setting
    set         Change one setting or constant and save
    diff        Preview which fields a set of edits would change
    serve       Expose an edit session as an MCP server on stdio

Every command reads from a skill directory (--dir) or a settings API
(--skill, with --url/--token or SKSETTINGS_URL/SKSETTINGS_TOKEN).
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .errors import LoadFailedError, UnknownFieldError
from .files import SkillConfigFiles
from .models import SettingDescriptor, SettingValueType
from .remote import RemoteSettings
from .session import ChangeSession, SaveStatus
from .validator import validate_schema

console = Console()
err_console = Console(stderr=True)


# ── widget dispatch ───────────────────────────────────────────────────

_WIDGET_RULES: list[tuple[Callable[[SettingDescriptor], bool], str]] = [
    (lambda d: d.vtype.is_numeric and d.ui_hint == "slider", "slider"),
    (lambda d: d.vtype == SettingValueType.BOOLEAN, "toggle"),
    (lambda d: d.vtype == SettingValueType.ENUM and bool(d.enum_values), "dropdown"),
    (lambda d: d.vtype == SettingValueType.LIST, "tags"),
    (lambda d: d.ui_hint == "password", "password"),
    (lambda d: d.vtype.is_numeric, "number"),
]


def widget_for(descriptor: SettingDescriptor) -> str:
    """Pick the input widget for a setting (first matching rule wins)."""
    for matches, widget in _WIDGET_RULES:
        if matches(descriptor):
            return widget
    return "text"


def render_value(descriptor: SettingDescriptor) -> str:
    """Format a setting's value the way its widget would show it."""
    value = descriptor.value
    widget = widget_for(descriptor)
    if widget == "password":
        return "********" if value else "[dim](empty)[/dim]"
    if value is None:
        return "[dim]-[/dim]"
    if widget == "toggle":
        return "[green]on[/green]" if value else "[dim]off[/dim]"
    if widget == "tags":
        return escape(", ".join(value)) if value else "[dim](none)[/dim]"
    if widget == "slider":
        return f"{value} [dim]({descriptor.min}..{descriptor.max})[/dim]"
    if widget == "dropdown":
        return f"{escape(str(value))} [dim]of {escape('|'.join(descriptor.enum_values))}[/dim]"
    return escape(str(value))


_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def parse_value(descriptor: SettingDescriptor, raw: str) -> Any:
    """Convert a command-line string to a value shaped for the setting.

    Raises:
        ValueError: If the string cannot be read as the setting's vtype.
    """
    vtype = descriptor.vtype
    if vtype.is_numeric:
        try:
            return int(raw)
        except ValueError:
            try:
                return float(raw)
            except ValueError:
                raise ValueError(f"'{raw}' is not a number") from None
    if vtype == SettingValueType.BOOLEAN:
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"'{raw}' is not a boolean (use true/false)")
    if vtype == SettingValueType.LIST:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


# ── session plumbing ──────────────────────────────────────────────────


_SOURCE_OPTIONS = [
    click.option("--dir", "directory", type=click.Path(file_okay=False), default=None,
                 help="Skill directory (manifest.yaml + config/)."),
    click.option("--skill", "skill_id", default=None, help="Skill id on the settings API."),
    click.option("--url", envvar="SKSETTINGS_URL", default=None, help="Settings API base URL."),
    click.option("--token", envvar="SKSETTINGS_TOKEN", default=None, help="Bearer token."),
]


def source_options(func: Callable) -> Callable:
    """Add the --dir / --skill / --url / --token options to a command."""
    for option in reversed(_SOURCE_OPTIONS):
        func = option(func)
    return func


def build_session(
    directory: Optional[str],
    skill_id: Optional[str],
    url: Optional[str],
    token: Optional[str],
) -> ChangeSession:
    """Create an unstarted session for the chosen source."""
    if directory:
        files = SkillConfigFiles(Path(directory))
        return ChangeSession(files.load_schema, files.save_schema)
    if skill_id:
        remote = RemoteSettings(skill_id, base_url=url, token=token)
        return ChangeSession(remote.load_schema, remote.save_schema)
    raise click.UsageError("Specify a source: --dir PATH or --skill ID")


def _start(session: ChangeSession) -> None:
    try:
        asyncio.run(session.start())
    except LoadFailedError as exc:
        console.print(f"[red]Load failed:[/red] {escape(str(exc))}")
        sys.exit(1)


def _apply_edit(session: ChangeSession, name: str, raw: str, constant: bool) -> None:
    """Apply one raw edit; exits 1 on an unknown field or unreadable value."""
    try:
        if constant:
            session.edit_constant(name, raw)
            return
        descriptor = session.store.get_setting(name)
        error = session.edit_setting(name, parse_value(descriptor, raw))
    except UnknownFieldError as exc:
        console.print(f"[red]Unknown field:[/red] {escape(str(exc))}")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Invalid value for {escape(name)}:[/red] {escape(str(exc))}")
        sys.exit(1)
    if error is not None:
        console.print(f"[red]{escape(name)}:[/red] {escape(error.message)}")
        sys.exit(1)


# ── commands ──────────────────────────────────────────────────────────


@click.group()
@click.version_option(__version__, prog_name="sksettings")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging.")
def main(verbose: bool) -> None:
    """SKSettings — schema-driven settings for sovereign agent skills.

    View, validate and edit a skill's typed settings and constants,
    from a skill directory or a remote settings API.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


@main.command()
@source_options
@click.option("--advanced", is_flag=True, help="Include advanced settings.")
@click.option("--constants", "with_constants", is_flag=True, help="Also list constants.")
@click.option("--collapse", multiple=True, help="Collapse a group (repeatable).")
def show(directory, skill_id, url, token, advanced: bool, with_constants: bool,
         collapse: tuple[str, ...]) -> None:
    """Show settings grouped for display."""
    session = build_session(directory, skill_id, url, token)
    _start(session)
    session.set_show_advanced(advanced)
    for label in collapse:
        session.toggle_group(label)

    groups = session.groups()
    if not groups:
        console.print("[dim]No settings.[/dim]")

    for label, group in groups.items():
        if group.collapsed:
            console.print(f"[bold]> {escape(label)}[/bold] [dim]({len(group.entries)} hidden)[/dim]")
            continue

        table = Table(title=label)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Value")
        table.add_column("Type", style="green")
        table.add_column("Flags", style="yellow")
        table.add_column("Description")

        for entry in group.visible_entries:
            d = entry.setting
            flags = []
            if d.required:
                flags.append("required")
            if d.advanced:
                flags.append("advanced")
            table.add_row(
                d.name,
                render_value(d),
                d.vtype.value,
                ", ".join(flags) or "-",
                escape(d.description or ""),
            )
        console.print(table)

    if session.schema.has_advanced and not advanced:
        console.print("[dim]Advanced settings hidden (use --advanced).[/dim]")

    if with_constants:
        constants = session.store.list_constants()
        if not constants:
            console.print("[dim]No constants.[/dim]")
            return
        table = Table(title="Constants")
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Value")
        for name, value in constants:
            table.add_row(name, escape(value))
        console.print(table)


@main.command()
@source_options
def info(directory, skill_id, url, token) -> None:
    """Show the skill metadata card."""
    session = build_session(directory, skill_id, url, token)
    _start(session)

    skill = session.schema.skill
    if skill is None:
        console.print("[dim]No skill metadata.[/dim]")
        return

    console.print(f"\n[cyan bold]{escape(skill.name or skill.id)}[/cyan bold] v{skill.version}")
    console.print(f"  {escape(skill.description)}")
    console.print(f"  Author: {escape(skill.author)}")
    console.print(f"  Entry:  {escape(skill.entry)}")
    if skill.capabilities:
        console.print(f"  Capabilities: {escape(', '.join(skill.capabilities))}")
    if skill.permissions:
        console.print(f"  Permissions:  {escape(', '.join(skill.permissions))}")
    status = "[dim]disabled[/dim]" if skill.disabled else "[green]enabled[/green]"
    console.print(f"  Status: {status}")


@main.command()
@source_options
def validate(directory, skill_id, url, token) -> None:
    """Validate every setting; exits 1 if any is invalid."""
    session = build_session(directory, skill_id, url, token)
    _start(session)

    errors = validate_schema(session.schema)
    if not errors:
        console.print(f"[green]All {len(session.schema.settings)} settings valid.[/green]")
        return

    table = Table(title="Invalid Settings")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Error", style="red")
    table.add_column("Kind")
    for name, error in errors.items():
        table.add_row(name, escape(error.message), error.kind.value)
    console.print(table)
    sys.exit(1)


@main.command("set")
@source_options
@click.argument("name")
@click.argument("value")
@click.option("--constant", is_flag=True, help="NAME is a constant, not a setting.")
def set_value(directory, skill_id, url, token, name: str, value: str, constant: bool) -> None:
    """Change NAME to VALUE and save.

    Lists are comma-separated; booleans accept true/false, yes/no, on/off.
    """
    session = build_session(directory, skill_id, url, token)
    _start(session)
    _apply_edit(session, name, value, constant)

    result = asyncio.run(session.save())
    if result.status == SaveStatus.UNCHANGED:
        console.print(f"[dim]No change:[/dim] {escape(name)} already has that value")
    elif result.status == SaveStatus.SAVED:
        console.print(f"[green]Saved:[/green] {escape(name)} = {escape(value)}")
    elif result.status == SaveStatus.INVALID:
        for field, error in result.errors.items():
            console.print(f"[red]{escape(field)}:[/red] {escape(error.message)}")
        sys.exit(1)
    else:
        console.print(f"[red]Save failed:[/red] {escape(result.detail)}")
        sys.exit(1)


@main.command()
@source_options
@click.argument("edits", nargs=-1, required=True)
def diff(directory, skill_id, url, token, edits: tuple[str, ...]) -> None:
    """Preview edits given as NAME=VALUE without saving.

    Names that are not settings are treated as constants.
    """
    session = build_session(directory, skill_id, url, token)
    _start(session)

    for edit in edits:
        if "=" not in edit:
            raise click.BadParameter(f"Expected NAME=VALUE, got '{edit}'", param_hint="EDITS")
        name, raw = edit.split("=", 1)
        constant = not session.store.has_setting(name) and session.store.has_constant(name)
        _apply_edit(session, name, raw, constant)

    changed = session.store.changed_fields()
    if not changed:
        console.print("[dim]No changes.[/dim]")
        return
    for name in changed:
        console.print(f"  [yellow]~[/yellow] {escape(name)}")


@main.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
def serve(directory: str) -> None:
    """Serve an edit session for a skill directory over MCP on stdio."""
    from .server import SettingsServer

    files = SkillConfigFiles(Path(directory))
    session = ChangeSession(files.load_schema, files.save_schema)
    # stdout carries the MCP protocol
    err_console.print(f"[green]SKSettings MCP server:[/green] {directory}")
    err_console.print("[dim]Serving on stdio (MCP protocol)...[/dim]")
    try:
        asyncio.run(SettingsServer(session).serve())
    except LoadFailedError as exc:
        err_console.print(f"[red]Load failed:[/red] {escape(str(exc))}")
        sys.exit(1)


if __name__ == "__main__":
    main()
