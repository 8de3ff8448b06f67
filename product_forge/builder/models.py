"""Shared state threaded through the section processors of one build."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
from pathlib import Path

from product_forge.config import Project
from product_forge.document import DocumentBuilder
from product_forge.logging import get_logger

logger = get_logger("builder")


@dc.dataclass(slots=True)
class DerivedPhraseGroup:
    """Phrases synthesized for one phrase-group key."""

    title: str | None = None
    phrases: dict[str, str] = dc.field(default_factory=dict)


class DerivedPhrases:
    """Phrase entries synthesized as a side effect of other sections."""

    def __init__(self) -> None:
        self._groups: dict[str, DerivedPhraseGroup] = {}

    def group(self, key: str) -> DerivedPhraseGroup:
        """Return the group stored under ``key``, creating it if needed."""
        return self._groups.setdefault(key, DerivedPhraseGroup())

    def set_title(self, key: str, title: str) -> None:
        """Record ``title`` for ``key`` unless a title was already written."""
        group = self.group(key)
        if group.title is None:
            group.title = title

    def add(self, key: str, varname: str, text: str) -> None:
        """Store ``text`` under ``varname`` in the ``key`` group."""
        self.group(key).phrases[varname] = text

    def items(self) -> list[tuple[str, DerivedPhraseGroup]]:
        """Return the groups in insertion order."""
        return list(self._groups.items())

    def __contains__(self, key: object) -> bool:
        return key in self._groups

    def __getitem__(self, key: str) -> DerivedPhraseGroup:
        return self._groups[key]

    def __len__(self) -> int:
        return len(self._groups)


@dc.dataclass(slots=True)
class BuildContext:
    """Mutable state owned by a single build invocation.

    Attributes
    ----------
    project : Project
        The project being built.
    document : DocumentBuilder
        Writer receiving the product markup.
    source_root : Path
        Root of the host installation; shipped files are staged relative to it.
    existing_groups : frozenset[str]
        Phrase-group keys the host already ships globally.
    group_titles : dict[str, str]
        Display titles of host groups, used when a project adds phrases to
        one without naming it.
    generated_at : datetime
        Timestamp stamped onto templates and phrases.
    phrases : DerivedPhrases
        Phrases synthesized by the options, tasks and navigation processors.
    files : list[Path]
        Files implied by processed sections (task handlers).
    log : list[str]
        Human-readable record of every action taken.
    """

    project: Project
    document: DocumentBuilder
    source_root: Path
    existing_groups: frozenset[str] = frozenset()
    group_titles: dict[str, str] = dc.field(default_factory=dict)
    generated_at: dt.datetime = dc.field(
        default_factory=lambda: dt.datetime.now(dt.UTC)
    )
    phrases: DerivedPhrases = dc.field(default_factory=DerivedPhrases)
    files: list[Path] = dc.field(default_factory=list)
    log: list[str] = dc.field(default_factory=list)

    @property
    def timestamp(self) -> int:
        """Return ``generated_at`` as a Unix timestamp."""
        return int(self.generated_at.timestamp())

    def record(self, message: str) -> None:
        """Append ``message`` to the build log and echo it to the logger."""
        self.log.append(message)
        logger.info(message)


@dc.dataclass(slots=True)
class BuildResult:
    """Artifacts produced by a successful build."""

    xml_path: Path
    files: list[Path]
    manifest_paths: list[Path]
    log: list[str]

    @property
    def output(self) -> str:
        """Return the build log as newline-terminated text."""
        return "".join(f"{line}\n" for line in self.log)


__all__ = [
    "BuildContext",
    "BuildResult",
    "DerivedPhraseGroup",
    "DerivedPhrases",
]
