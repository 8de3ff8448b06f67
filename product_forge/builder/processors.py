"""Section processors that translate project records into product markup.

Each processor receives the records of one section and the shared
:class:`~product_forge.builder.models.BuildContext`. Processors write markup
through the context's document builder and may add derived phrases or
derived files; the phrases processor drains the derived phrases, so it must
run last. :data:`SECTION_PROCESSORS` fixes the order for a build.
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ
from pathlib import Path

from product_forge._constants import (
    NAVIGATION_PHRASE_GROUP,
    NAVIGATION_PHRASE_TITLE,
    SETTINGS_PHRASE_GROUP,
    SETTINGS_PHRASE_TITLE,
    TASK_PHRASE_GROUP,
    TASK_PHRASE_TITLE,
)
from product_forge.build_comments import strip_build_comments
from product_forge.config import (
    CodeVersion,
    Dependency,
    NavigationTab,
    OptionGroup,
    PhraseGroup,
    Plugin,
    SectionKind,
    Task,
    Template,
)
from product_forge.logging import get_logger

if typ.TYPE_CHECKING:
    from .models import BuildContext

OPTION_TAGS = (
    "datatype",
    "optioncode",
    "validationcode",
    "defaultvalue",
    "blacklist",
    "advanced",
)

logger = get_logger("builder")

Processor = cabc.Callable[[list[typ.Any], "BuildContext"], None]


def process_dependencies(
    dependencies: cabc.Sequence[Dependency], context: BuildContext
) -> None:
    """Emit one ``dependency`` leaf per version bound."""
    doc = context.document
    doc.open_group("dependencies")
    for dependency in dependencies:
        doc.add_tag(
            "dependency",
            "",
            {
                "type": dependency.type,
                "minversion": dependency.minversion,
                "maxversion": dependency.maxversion,
            },
        )
        context.record(f"Added dependency on {dependency.type}")
    doc.close_group()


def process_codes(codes: cabc.Sequence[CodeVersion], context: BuildContext) -> None:
    """Emit install and uninstall code per version, omitting empty code."""
    doc = context.document
    doc.open_group("codes")
    for code in codes:
        doc.open_group("code", {"version": code.version})
        if code.install:
            doc.add_tag("installcode", code.install, escape=True)
        if code.uninstall:
            doc.add_tag("uninstallcode", code.uninstall, escape=True)
        doc.close_group()
        context.record(f"Added up/down code for version {code.version}")
    doc.close_group()


def process_templates(
    templates: cabc.Sequence[Template], context: BuildContext
) -> None:
    """Emit every template body as an escaped leaf."""
    doc = context.document
    meta = context.project.meta
    doc.open_group("templates")
    for template in templates:
        doc.add_tag(
            "template",
            template.content,
            {
                "name": template.name,
                "version": template.version or meta.version,
                "username": template.author or meta.author,
                "date": context.timestamp,
                "templatetype": "template",
            },
            escape=True,
        )
        context.record(f"Added template {template.name}")
    doc.close_group()


def process_plugins(plugins: cabc.Sequence[Plugin], context: BuildContext) -> None:
    """Emit plugins, skipping those left empty by build-comment stripping."""
    doc = context.document
    doc.open_group("plugins")
    for plugin in plugins:
        code = strip_build_comments(plugin.code)
        if not code.strip():
            continue
        doc.open_group(
            "plugin",
            {"active": plugin.active, "executionorder": plugin.executionorder},
        )
        doc.add_tag("title", plugin.title)
        doc.add_tag("hookname", plugin.hookname)
        doc.add_tag("phpcode", code, escape=True)
        doc.close_group()
        context.record(f"Added plugin on {plugin.hookname}")
    doc.close_group()


def process_options(groups: cabc.Sequence[OptionGroup], context: BuildContext) -> None:
    """Emit setting groups and settings, deriving their title phrases."""
    doc = context.document
    phrases = context.phrases
    doc.open_group("options")
    for group in groups:
        if group.title is not None and group.varname not in context.existing_groups:
            phrases.add(
                SETTINGS_PHRASE_GROUP, f"settinggroup_{group.varname}", group.title
            )
        doc.open_group(
            "settinggroup",
            {"name": group.varname, "displayorder": group.displayorder},
        )
        for option in group.options:
            attributes: dict[str, str | int | None] = {
                "varname": option.varname,
                "displayorder": option.displayorder,
            }
            if option.advanced:
                attributes["advanced"] = 1
            doc.open_group("setting", attributes)
            for tag in OPTION_TAGS:
                value = getattr(option, tag)
                if value is not None:
                    doc.add_tag(tag, value)
            doc.close_group()

            phrases.add(
                SETTINGS_PHRASE_GROUP, f"setting_{option.varname}_title", option.title
            )
            phrases.add(
                SETTINGS_PHRASE_GROUP,
                f"setting_{option.varname}_desc",
                option.description,
            )
            context.record(f"Added option {option.varname}")
        doc.close_group()
    if groups:
        phrases.set_title(SETTINGS_PHRASE_GROUP, SETTINGS_PHRASE_TITLE)
    doc.close_group()


def task_handler_path(source_root: Path, filename: str) -> Path:
    """Return the absolute handler path for a task ``filename``.

    Task filenames are stored relative to the host root (``./includes/cron/x.php``
    or ``/x.php``); separators are normalized to forward slashes.
    """
    relative = filename.replace("\\", "/")
    if relative.startswith("./"):
        relative = relative[2:]
    relative = relative.lstrip("/")
    return Path(source_root.as_posix()) / relative


def process_tasks(tasks: cabc.Sequence[Task], context: BuildContext) -> None:
    """Emit scheduled tasks, their phrases and their handler files."""
    doc = context.document
    phrases = context.phrases
    doc.open_group("cronentries")
    for task in tasks:
        doc.open_group(
            "cron",
            {"varname": task.varname, "active": task.active, "loglevel": task.loglevel},
        )
        doc.add_tag("filename", task.filename)
        doc.add_tag(
            "scheduling",
            "",
            {
                "weekday": task.weekday,
                "day": task.day,
                "hour": task.hour,
                "minute": task.minutes,
            },
        )
        doc.close_group()

        phrases.set_title(TASK_PHRASE_GROUP, TASK_PHRASE_TITLE)
        phrases.add(TASK_PHRASE_GROUP, f"task_{task.varname}_title", task.title)
        phrases.add(TASK_PHRASE_GROUP, f"task_{task.varname}_desc", task.description)
        phrases.add(TASK_PHRASE_GROUP, f"task_{task.varname}_log", task.logtext)

        context.files.append(task_handler_path(context.source_root, task.filename))
        context.record(f"Added scheduled task entitled {task.title}")
    doc.close_group()


def process_navigation(
    tabs: cabc.Sequence[NavigationTab], context: BuildContext
) -> None:
    """Emit navigation tabs followed by their links.

    Links are written as siblings of their tab. Every link carries the
    ``scripts`` value of its parent tab.
    """
    doc = context.document
    meta = context.project.meta
    phrases = context.phrases
    stamp = {"version": meta.version, "username": meta.author}
    doc.open_group("navigation")
    for tab in tabs:
        phrases.set_title(NAVIGATION_PHRASE_GROUP, NAVIGATION_PHRASE_TITLE)
        doc.open_group("tab", {"name": tab.name, **stamp})
        doc.add_tag("active", 1)
        doc.add_tag("displayorder", tab.displayorder)
        doc.add_tag("show", tab.show)
        doc.add_tag("scripts", tab.scripts)
        doc.add_tag("url", tab.url, escape=True)
        doc.close_group()
        phrases.add(
            NAVIGATION_PHRASE_GROUP, f"navigation_tab_{tab.name}_text", tab.text
        )
        context.record(f"Added navigation tab {tab.name}")

        for link in tab.links:
            doc.open_group("link", {"name": link.name, **stamp})
            doc.add_tag("active", 1)
            doc.add_tag("displayorder", link.displayorder)
            doc.add_tag("parent", link.parent)
            doc.add_tag("show", link.show)
            doc.add_tag("scripts", tab.scripts)
            doc.add_tag("url", link.url, escape=True)
            doc.close_group()
            phrases.add(
                NAVIGATION_PHRASE_GROUP, f"navigation_link_{link.name}_text", link.text
            )
            context.record(f"Added navigation link {link.name}")
    doc.close_group()


def merge_phrase_groups(
    groups: cabc.Sequence[PhraseGroup], context: BuildContext
) -> dict[str, PhraseGroup]:
    """Merge derived phrases with explicitly authored phrase groups.

    Derived groups come first; explicit phrases override derived ones with
    the same varname and explicit titles replace derived titles when set.
    A group left without a title takes the host title for its key, so
    phrases added to a stock group such as ``global`` still ship.
    """
    merged: dict[str, PhraseGroup] = {}
    for key, derived in context.phrases.items():
        merged[key] = PhraseGroup(
            key=key, title=derived.title, phrases=dict(derived.phrases)
        )
    for group in groups:
        target = merged.setdefault(group.key, PhraseGroup(key=group.key))
        if group.title is not None:
            target.title = group.title
        target.phrases.update(group.phrases)
    for key, target in merged.items():
        if target.title is None:
            target.title = context.group_titles.get(key)
    return merged


def process_phrases(groups: cabc.Sequence[PhraseGroup], context: BuildContext) -> None:
    """Emit derived and explicit phrases grouped by phrase type."""
    doc = context.document
    meta = context.project.meta
    doc.open_group("phrases")
    for key, group in merge_phrase_groups(groups, context).items():
        if group.title is None:
            logger.warning(
                "Skipping %d phrase(s) in untitled group %s", len(group.phrases), key
            )
            continue
        doc.open_group("phrasetype", {"name": group.title, "fieldname": key})
        for varname, text in group.phrases.items():
            doc.add_tag(
                "phrase",
                text,
                {
                    "name": varname,
                    "username": meta.author,
                    "version": meta.version,
                    "date": context.timestamp,
                },
                escape=True,
            )
            context.record(f"Added phrase {varname}")
        doc.close_group()
    doc.close_group()


SECTION_PROCESSORS: dict[SectionKind, Processor] = {
    SectionKind.DEPENDENCIES: process_dependencies,
    SectionKind.CODES: process_codes,
    SectionKind.TEMPLATES: process_templates,
    SectionKind.PLUGINS: process_plugins,
    SectionKind.OPTIONS: process_options,
    SectionKind.TASKS: process_tasks,
    SectionKind.NAVIGATION: process_navigation,
    SectionKind.PHRASES: process_phrases,
}


__all__ = [
    "OPTION_TAGS",
    "SECTION_PROCESSORS",
    "merge_phrase_groups",
    "process_codes",
    "process_dependencies",
    "process_navigation",
    "process_options",
    "process_phrases",
    "process_plugins",
    "process_tasks",
    "process_templates",
    "strip_build_comments",
    "task_handler_path",
]
