"""SKSettings Files — load and save settings from a skill directory.

Skill directory layout:
    my-skill/
        manifest.yaml           # id, name, author, version, entry, capabilities, ...
        config/
            settings.config     # settings: {name: {vtype, value, min, max, ...}}
            const.config        # constants: {NAME: value}

Only the two config files are ever written; the manifest is read-only.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from .models import ConstantDescriptor, Schema, SettingDescriptor, SkillInfo

logger = logging.getLogger("sksettings.files")

MANIFEST_FILE = "manifest.yaml"
SETTINGS_FILE = "config/settings.config"
CONSTANTS_FILE = "config/const.config"


def _read_mapping(path: Path) -> Optional[dict[str, Any]]:
    """Read a YAML mapping; None if the file does not exist.

    Raises:
        ValueError: If the file is not a YAML mapping.
    """
    if not path.exists():
        return None

    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path.name} must be a YAML mapping, got {type(raw).__name__}")
    return raw


def _section(raw: Optional[dict[str, Any]], key: str, path: Path) -> dict[str, Any]:
    if not raw:
        return {}
    section = raw.get(key) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{key}' in {path.name} must be a mapping")
    return section


def parse_manifest_yaml(path: Path) -> Optional[SkillInfo]:
    """Parse manifest.yaml into SkillInfo (None when absent)."""
    raw = _read_mapping(path)
    if raw is None:
        return None
    return SkillInfo.model_validate(raw)


def parse_settings_config(path: Path) -> list[SettingDescriptor]:
    """Parse settings.config into descriptors, keeping file order.

    Raises:
        ValueError: If a setting entry is malformed.
    """
    section = _section(_read_mapping(path), "settings", path)
    settings: list[SettingDescriptor] = []
    for name, body in section.items():
        if not isinstance(body, dict):
            raise ValueError(f"Setting '{name}' in {path.name} must be a mapping")
        settings.append(SettingDescriptor.model_validate({"name": str(name), **body}))
    return settings


def parse_constants_config(path: Path) -> list[ConstantDescriptor]:
    """Parse const.config into constants, keeping file order."""
    section = _section(_read_mapping(path), "constants", path)
    return [ConstantDescriptor(name=str(name), value=value) for name, value in section.items()]


def generate_settings_config(schema: Schema) -> str:
    """Serialize a schema's settings to settings.config YAML."""
    settings = {
        s.name: s.model_dump(mode="json", by_alias=True, exclude={"name"}, exclude_none=True)
        for s in schema.settings
    }
    return yaml.dump({"settings": settings}, default_flow_style=False, sort_keys=False)


def generate_constants_config(schema: Schema) -> str:
    """Serialize a schema's constants to const.config YAML."""
    constants = {c.name: c.value for c in schema.constants}
    return yaml.dump({"constants": constants}, default_flow_style=False, sort_keys=False)


class SkillConfigFiles:
    """Load/save collaborator backed by a skill directory.

    Args:
        skill_dir: Path to the skill directory.
    """

    def __init__(self, skill_dir: Path) -> None:
        self.skill_dir = Path(skill_dir).expanduser()

    @property
    def manifest_path(self) -> Path:
        return self.skill_dir / MANIFEST_FILE

    @property
    def settings_path(self) -> Path:
        return self.skill_dir / SETTINGS_FILE

    @property
    def constants_path(self) -> Path:
        return self.skill_dir / CONSTANTS_FILE

    def read(self) -> Schema:
        """Read the schema from disk.

        Missing config files mean empty collections; a missing manifest
        means no skill metadata.

        Raises:
            FileNotFoundError: If the skill directory doesn't exist.
            ValueError: If a file is malformed.
        """
        if not self.skill_dir.is_dir():
            raise FileNotFoundError(f"Skill directory not found: {self.skill_dir}")

        schema = Schema(
            skill=parse_manifest_yaml(self.manifest_path),
            settings=tuple(parse_settings_config(self.settings_path)),
            constants=tuple(parse_constants_config(self.constants_path)),
        )
        logger.info("Read %s: %d settings, %d constants",
                    self.skill_dir, len(schema.settings), len(schema.constants))
        return schema

    def write(self, schema: Schema) -> None:
        """Write settings.config and const.config. The manifest is left alone.

        Both files are staged next to their targets first and only moved
        into place once both are written, so a failed write leaves the
        previous files untouched.

        Raises:
            OSError: If the files cannot be written.
        """
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)
        targets = [
            (self.settings_path, generate_settings_config(schema)),
            (self.constants_path, generate_constants_config(schema)),
        ]

        staged: list[tuple[Path, Path]] = []
        try:
            for path, text in targets:
                tmp = path.with_name(path.name + ".tmp")
                staged.append((tmp, path))
                tmp.write_text(text)
        except OSError:
            for tmp, _ in staged:
                if tmp.is_file():
                    tmp.unlink()
            raise

        for tmp, path in staged:
            tmp.replace(path)
        logger.info("Wrote %s", self.settings_path.parent)

    async def load_schema(self) -> Schema:
        """Session loader."""
        return await asyncio.to_thread(self.read)

    async def save_schema(self, schema: Schema) -> None:
        """Session saver."""
        await asyncio.to_thread(self.write, schema)
