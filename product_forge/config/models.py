"""Typed dataclasses describing a product project and its sections."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ
from pathlib import Path

from product_forge._constants import DEFAULT_ENCODING


class SectionKind(enum.Enum):
    """Typed categories of product content, in build order."""

    DEPENDENCIES = "dependencies"
    CODES = "codes"
    TEMPLATES = "templates"
    PLUGINS = "plugins"
    OPTIONS = "options"
    TASKS = "tasks"
    NAVIGATION = "navigation"
    PHRASES = "phrases"


@dc.dataclass(slots=True)
class ProjectMeta:
    """Descriptive product metadata stamped onto generated records."""

    title: str
    description: str = ""
    version: str = ""
    url: str = ""
    versionurl: str = ""
    author: str = ""
    order: int = 0
    encoding: str = DEFAULT_ENCODING


@dc.dataclass(slots=True)
class Dependency:
    """Version bounds on another product or the host itself."""

    type: str
    minversion: str = ""
    maxversion: str = ""


@dc.dataclass(slots=True)
class CodeVersion:
    """Install and uninstall code attached to a product version."""

    version: str
    install: str = ""
    uninstall: str = ""


@dc.dataclass(slots=True)
class Template:
    """A template body shipped with the product."""

    name: str
    content: str
    version: str = ""
    author: str = ""


@dc.dataclass(slots=True)
class Plugin:
    """Code injected into a named host hook."""

    hookname: str
    title: str
    code: str
    active: int = 1
    executionorder: int = 5


@dc.dataclass(slots=True)
class Option:
    """A single host setting owned by the product."""

    varname: str
    title: str = ""
    description: str = ""
    displayorder: int = 0
    datatype: str | None = None
    optioncode: str | None = None
    validationcode: str | None = None
    defaultvalue: str | None = None
    blacklist: str | None = None
    advanced: int | None = None


@dc.dataclass(slots=True)
class OptionGroup:
    """A setting group and the options it contains."""

    varname: str
    title: str | None = None
    displayorder: int | None = None
    options: list[Option] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class Task:
    """A scheduled task with cron-style fields passed through verbatim."""

    varname: str
    title: str
    filename: str
    description: str = ""
    logtext: str = ""
    weekday: str = "*"
    day: str = "*"
    hour: str = "*"
    minutes: str = "*"
    active: int = 1
    loglevel: int = 1


@dc.dataclass(slots=True)
class NavigationLink:
    """A navigation link nested under a tab."""

    name: str
    text: str = ""
    displayorder: int = 0
    parent: str = ""
    show: str = ""
    scripts: str = ""
    url: str = ""


@dc.dataclass(slots=True)
class NavigationTab:
    """A top-level navigation tab and its links."""

    name: str
    text: str = ""
    displayorder: int = 0
    show: str = ""
    scripts: str = ""
    url: str = ""
    links: list[NavigationLink] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class PhraseGroup:
    """Explicitly authored phrases grouped under a phrase-type key."""

    key: str
    title: str | None = None
    phrases: dict[str, str] = dc.field(default_factory=dict)


@dc.dataclass(slots=True)
class Project:
    """Read-only view over one product project tree."""

    id: str
    meta: ProjectMeta
    build_path: Path
    path: Path | None = None
    active: bool = True
    files: list[Path] = dc.field(default_factory=list)
    dependencies: list[Dependency] = dc.field(default_factory=list)
    codes: list[CodeVersion] = dc.field(default_factory=list)
    templates: list[Template] = dc.field(default_factory=list)
    plugins: list[Plugin] = dc.field(default_factory=list)
    options: list[OptionGroup] = dc.field(default_factory=list)
    tasks: list[Task] = dc.field(default_factory=list)
    navigation: list[NavigationTab] = dc.field(default_factory=list)
    phrases: list[PhraseGroup] = dc.field(default_factory=list)

    def section(self, kind: SectionKind) -> list[typ.Any]:
        """Return the ordered records stored for ``kind``."""
        return getattr(self, kind.value)


__all__ = [
    "CodeVersion",
    "Dependency",
    "NavigationLink",
    "NavigationTab",
    "Option",
    "OptionGroup",
    "PhraseGroup",
    "Plugin",
    "Project",
    "ProjectMeta",
    "SectionKind",
    "Task",
    "Template",
]
