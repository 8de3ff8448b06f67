"""Workspace settings stored in ``forge.toml``.

The settings file tells the CLI where the host installation lives, where
project trees are kept and which phrase groups the host already ships::

    [paths]
    source_root = "forum"
    projects_dir = "projects"

    [registry]
    global_phrase_groups = ["global", "vbsettings", "cron"]

Relative paths resolve against the directory holding the file. The file is
optional; missing keys fall back to the defaults below.
"""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ
from pathlib import Path

import tomlkit
from tomlkit.exceptions import ParseError

from .errors import ProjectConfigError
from .registry import StaticPhraseGroupRegistry

DEFAULT_CONFIG_PATH = Path(os.getenv("FORGE_CONFIG_FILE", "forge.toml"))
DEFAULT_SOURCE_ROOT = Path()
DEFAULT_PROJECTS_DIR = Path("projects")


@dc.dataclass(slots=True)
class ForgeSettings:
    """Locations and host lookups shared by every build in a workspace."""

    source_root: Path = DEFAULT_SOURCE_ROOT
    projects_dir: Path = DEFAULT_PROJECTS_DIR
    global_phrase_groups: frozenset[str] | None = None

    def registry(self) -> StaticPhraseGroupRegistry:
        """Return the phrase-group registry these settings describe."""
        return StaticPhraseGroupRegistry(self.global_phrase_groups)


def _as_dict(table: typ.Any) -> dict[str, typ.Any]:
    return {k: v for k, v in table.items()} if table else {}


def load_settings(path: Path = DEFAULT_CONFIG_PATH) -> ForgeSettings:
    """Load ``forge.toml`` from ``path``, returning defaults when it is absent.

    Raises
    ------
    ProjectConfigError
        If the file exists but is not valid TOML or has malformed values.
    """
    if not path.exists():
        return ForgeSettings()
    try:
        data = tomlkit.parse(path.read_text(encoding="utf-8"))
    except ParseError as exc:
        msg = f"Unable to parse settings TOML at {path}"
        raise ProjectConfigError(msg) from exc

    base = path.parent
    paths_data = _as_dict(data.get("paths"))
    registry_data = _as_dict(data.get("registry"))

    def _path(key: str, default: Path) -> Path:
        value = paths_data.get(key)
        if value is None:
            return base / default
        candidate = Path(str(value))
        return candidate if candidate.is_absolute() else base / candidate

    groups = registry_data.get("global_phrase_groups")
    if groups is not None and not isinstance(groups, list):
        msg = f"'registry.global_phrase_groups' in {path} must be an array."
        raise ProjectConfigError(msg)

    return ForgeSettings(
        source_root=_path("source_root", DEFAULT_SOURCE_ROOT),
        projects_dir=_path("projects_dir", DEFAULT_PROJECTS_DIR),
        global_phrase_groups=(
            None if groups is None else frozenset(str(group) for group in groups)
        ),
    )


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_PROJECTS_DIR",
    "DEFAULT_SOURCE_ROOT",
    "ForgeSettings",
    "load_settings",
]
