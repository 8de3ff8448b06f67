"""Utility helpers shared by the project tree loader."""

from __future__ import annotations

import re
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from product_forge.errors import ProjectConfigError

PHP_OPEN_TAG_PATTERN = re.compile(r"\A\s*<\?php\s*")
ALL_VERSIONS = "*"
ALL_VERSIONS_LABEL = "all"


def _read_yaml(path: Path) -> dict[str, typ.Any]:
    """Return the mapping stored in ``path`` or raise ``ProjectConfigError``."""
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = f"Top-level YAML structure in '{path}' must be a mapping."
        raise ProjectConfigError(msg)
    return dict(loaded)


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_str(value: object | None, default: str = "") -> str:
    """Return ``value`` as a string, mapping ``None`` to ``default``."""
    if value is None:
        return default
    return str(value)


def _as_int(value: object | None, default: int = 0) -> int:
    """Coerce YAML scalars such as ``"5"`` or ``True`` into integers."""
    match value:
        case None | "":
            return default
        case bool():
            return int(value)
        case int():
            return value
        case str() as text:
            try:
                return int(text.strip())
            except ValueError:
                return default
        case _:
            return default


def _strip_php_open_tag(code: str) -> str:
    """Remove the leading ``<?php`` marker that code files carry on disk."""
    return PHP_OPEN_TAG_PATTERN.sub("", code, count=1)


def _version_from_label(label: str) -> str:
    """Map an ``updown`` filename label back to a version key."""
    return ALL_VERSIONS if label == ALL_VERSIONS_LABEL else label


def _label_from_version(version: str) -> str:
    """Map a version key to the label used in ``updown`` filenames."""
    return version.replace(ALL_VERSIONS, ALL_VERSIONS_LABEL)


def _resolve_against(base: Path, value: str | Path) -> Path:
    """Resolve ``value`` relative to ``base`` unless it is already absolute."""
    path = Path(value)
    return path if path.is_absolute() else base / path


def _sorted_files(directory: Path, pattern: str) -> list[Path]:
    """Return files in ``directory`` matching ``pattern`` in lexicographic order."""
    if not directory.is_dir():
        return []
    return sorted(path for path in directory.glob(pattern) if path.is_file())


def _sorted_dirs(directory: Path) -> list[Path]:
    """Return subdirectories of ``directory`` in lexicographic order."""
    if not directory.is_dir():
        return []
    return sorted(path for path in directory.iterdir() if path.is_dir())


__all__ = [
    "ALL_VERSIONS",
    "ALL_VERSIONS_LABEL",
    "_as_int",
    "_as_str",
    "_label_from_version",
    "_optional_str",
    "_read_yaml",
    "_resolve_against",
    "_sorted_dirs",
    "_sorted_files",
    "_strip_php_open_tag",
    "_version_from_label",
]
