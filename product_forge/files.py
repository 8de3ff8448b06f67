"""Resolve, merge and stage the files shipped with a product.

Directory entries expand recursively into their files (lexicographic order,
version-control metadata excluded) so that checksums are reproducible, and
staged copies keep their path relative to the host root.
"""

from __future__ import annotations

import collections.abc as cabc
import shutil
from pathlib import Path

from ._constants import VCS_MARKERS


def _is_vcs_path(path: Path) -> bool:
    return any(part in VCS_MARKERS for part in path.parts)


def expand_paths(paths: cabc.Iterable[Path]) -> list[Path]:
    """Replace directory entries with every file found beneath them.

    Parameters
    ----------
    paths : Iterable[Path]
        Declared file and directory paths.

    Returns
    -------
    list[Path]
        Files in declaration order; each directory contributes its files
        sorted lexicographically, skipping ``.svn``/``.git`` metadata.

    Raises
    ------
    FileNotFoundError
        If a declared path does not exist.
    """
    expanded: list[Path] = []
    for path in paths:
        if path.is_dir():
            expanded.extend(
                found
                for found in sorted(path.rglob("*"))
                if found.is_file() and not _is_vcs_path(found.relative_to(path))
            )
        elif path.exists():
            expanded.append(path)
        else:
            msg = f"Declared project file '{path}' does not exist."
            raise FileNotFoundError(msg)
    return expanded


def merge_paths(*groups: cabc.Iterable[Path]) -> list[Path]:
    """Concatenate path groups, dropping repeated entries but keeping order."""
    merged: dict[Path, None] = {}
    for group in groups:
        for path in group:
            merged.setdefault(path, None)
    return list(merged)


def relative_to_root(path: Path, source_root: Path) -> Path:
    """Return ``path`` relative to ``source_root``.

    Paths outside the root keep their file name only so they still land
    inside the staging tree.
    """
    try:
        return path.relative_to(source_root)
    except ValueError:
        return Path(path.name)


def copy_files(
    files: cabc.Sequence[Path], destination_root: Path, source_root: Path
) -> list[str]:
    """Copy ``files`` beneath ``destination_root`` preserving relative paths.

    Returns
    -------
    list[str]
        One ``Copied file <relative path>`` line per copied file. Nothing is
        created when ``files`` is empty.

    Raises
    ------
    FileNotFoundError
        If a source file does not exist.
    """
    log: list[str] = []
    for source in files:
        relative = relative_to_root(source, source_root)
        destination = destination_root / relative
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        log.append(f"Copied file {relative.as_posix()}")
    return log


__all__ = ["copy_files", "expand_paths", "merge_paths", "relative_to_root"]
