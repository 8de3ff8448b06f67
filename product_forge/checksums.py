"""Checksum manifests covering a staged product build.

Two manifests are produced per build. The flat manifest maps every staged
directory (``/includes/cron``) to ``{basename: md5}`` and is what the host's
file verifier understands. The extended manifest wraps the same file map
together with per-hook plugin hashes and per-template hashes so a deployed
product can also verify code stored in the database.

Text files are hashed after CRLF -> LF normalization so line-ending
rewrites on checkout or transfer do not change the result; images are hashed
byte-for-byte.

Examples
--------
>>> from product_forge.checksums import hash_inline
>>> hash_inline("a\\r\\nb") == hash_inline("a\\nb")
True
"""

from __future__ import annotations

import collections.abc as cabc
import datetime as dt
import hashlib
import io
import shutil
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from ._constants import (
    BINARY_EXTENSIONS,
    CHECKSUM_FILE_TEMPLATE,
    EXTENDED_CHECKSUM_FILE_TEMPLATE,
    INCLUDES_DIRNAME,
)
from .build_comments import strip_build_comments
from .files import relative_to_root

if typ.TYPE_CHECKING:
    from .config import Project

FlatManifest = dict[str, dict[str, str]]
ExtendedManifest = dict[str, dict[str, typ.Any]]

_HEADER_TIME_FORMAT = "%H:%M:%S, %a %b %d %Y"


def _md5(data: bytes) -> str:
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def _normalize_newlines(data: bytes) -> bytes:
    return data.replace(b"\r\n", b"\n")


def hash_inline(content: str) -> str:
    """Hash in-memory text after CRLF -> LF normalization."""
    return _md5(_normalize_newlines(content.encode("utf-8")))


def hash_file(path: Path) -> str:
    """Hash ``path``; images byte-for-byte, everything else newline-normalized."""
    data = path.read_bytes()
    if path.suffix.lstrip(".").lower() in BINARY_EXTENSIONS:
        return _md5(data)
    return _md5(_normalize_newlines(data))


def directory_key(relative: Path) -> str:
    """Return the manifest key for the directory containing ``relative``.

    Examples
    --------
    >>> from pathlib import Path
    >>> directory_key(Path("includes/cron/task.php"))
    '/includes/cron'
    >>> directory_key(Path("index.php"))
    '/'
    """
    parent = relative.parent.as_posix().strip(".")
    return "/" + parent.strip("/")


def build_file_manifest(
    files: cabc.Iterable[Path], upload_root: Path, source_root: Path
) -> FlatManifest:
    """Hash the staged copy of every file, grouped by directory key."""
    collected: dict[str, dict[str, str]] = {}
    for source in files:
        relative = relative_to_root(source, source_root)
        entry = collected.setdefault(directory_key(relative), {})
        entry[relative.name] = hash_file(upload_root / relative)
    return {
        key: dict(sorted(collected[key].items())) for key in sorted(collected)
    }


def build_manifests(
    project: Project,
    files: cabc.Iterable[Path],
    upload_root: Path,
    source_root: Path,
) -> tuple[FlatManifest, ExtendedManifest]:
    """Return the flat and extended manifests for a staged build.

    Plugin hashes cover the code that actually ships (build comments
    stripped); plugins left empty by stripping are omitted. Plugins sharing a
    hook are hashed together in project order.
    """
    flat = build_file_manifest(files, upload_root, source_root)

    hook_code: dict[str, list[str]] = {}
    for plugin in project.plugins:
        code = strip_build_comments(plugin.code)
        if code.strip():
            hook_code.setdefault(plugin.hookname, []).append(code)

    extended: ExtendedManifest = {
        "files": flat,
        "plugins": {
            hook: hash_inline("\n\n".join(codes)) for hook, codes in hook_code.items()
        },
        "templates": {
            template.name: hash_inline(template.content)
            for template in project.templates
        },
    }
    return flat, extended


def _to_commented(value: typ.Any) -> typ.Any:
    """Convert nested dicts into ``CommentedMap`` so key order is kept."""
    if isinstance(value, dict):
        mapping = CommentedMap()
        for key, item in value.items():
            mapping[key] = _to_commented(item)
        return mapping
    return value


def render_manifest(
    assignments: typ.Mapping[str, typ.Any],
    project: Project,
    generated_at: dt.datetime,
) -> str:
    """Render manifest assignments as YAML behind a ``# id version, time`` header."""
    yaml = YAML()
    yaml.width = 4096
    yaml.indent(mapping=2, sequence=4, offset=2)
    header = (
        f"# {project.id} {project.meta.version}, "
        f"{generated_at.strftime(_HEADER_TIME_FORMAT)}\n"
    )
    stream = io.StringIO()
    stream.write(header)
    yaml.dump(_to_commented(dict(assignments)), stream)
    return stream.getvalue()


class ChecksumWriter:
    """Write both manifests and mirror them into the staged upload tree."""

    def __init__(
        self,
        *,
        source_root: Path,
        clock: cabc.Callable[[], dt.datetime] | None = None,
    ) -> None:
        """Initialize the writer.

        Parameters
        ----------
        source_root : Path
            Host root; manifests are written to ``<source_root>/includes``.
        clock : Callable[[], datetime], optional
            Source of the header timestamp; defaults to the current UTC time.
        """
        self.source_root = source_root
        self.includes_root = source_root / INCLUDES_DIRNAME
        self._clock = clock or (lambda: dt.datetime.now(dt.UTC))

    def write(
        self, project: Project, files: cabc.Sequence[Path], upload_root: Path
    ) -> list[Path]:
        """Hash the staged files and persist the two manifest files.

        Returns
        -------
        list[Path]
            The manifests under ``includes`` followed by their copies under
            ``<upload_root>/includes``.
        """
        flat, extended = build_manifests(project, files, upload_root, self.source_root)
        generated_at = self._clock()
        self.includes_root.mkdir(parents=True, exist_ok=True)
        flat_path = self.includes_root / CHECKSUM_FILE_TEMPLATE.format(id=project.id)
        extended_path = self.includes_root / EXTENDED_CHECKSUM_FILE_TEMPLATE.format(
            id=project.id
        )
        flat_path.write_text(
            render_manifest({"md5_sums": flat}, project, generated_at),
            encoding="utf-8",
        )
        extended_path.write_text(
            render_manifest(extended, project, generated_at), encoding="utf-8"
        )

        staged_includes = upload_root / INCLUDES_DIRNAME
        staged_includes.mkdir(parents=True, exist_ok=True)
        written = [flat_path, extended_path]
        for manifest in (flat_path, extended_path):
            copy_path = staged_includes / manifest.name
            shutil.copyfile(manifest, copy_path)
            written.append(copy_path)
        return written


__all__ = [
    "ChecksumWriter",
    "ExtendedManifest",
    "FlatManifest",
    "build_file_manifest",
    "build_manifests",
    "directory_key",
    "hash_file",
    "hash_inline",
    "render_manifest",
]
