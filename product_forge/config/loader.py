"""Load a product project tree into typed dataclasses."""

from __future__ import annotations

import re
import typing as typ
from pathlib import Path

from product_forge._constants import DEFAULT_ENCODING
from product_forge.errors import ProjectConfigError
from product_forge.logging import get_logger

from .helpers import (
    _as_int,
    _as_str,
    _optional_str,
    _read_yaml,
    _resolve_against,
    _sorted_dirs,
    _sorted_files,
    _strip_php_open_tag,
    _version_from_label,
)
from .models import (
    CodeVersion,
    Dependency,
    NavigationLink,
    NavigationTab,
    Option,
    OptionGroup,
    PhraseGroup,
    Plugin,
    Project,
    ProjectMeta,
    Task,
    Template,
)

CONFIG_FILENAME = "config.yaml"
PROJECT_DIR_PATTERN = re.compile(r"^[-_a-z0-9]+$", re.IGNORECASE)
CODE_FILE_PATTERN = re.compile(r"^(up|down)-(.+)\.php$")

logger = get_logger("config")


def load_project(path: Path) -> Project:
    """Load the project stored under ``path``.

    Parameters
    ----------
    path : Path
        Project root containing ``config.yaml`` and the section directories
        (``updown``, ``plugins``, ``templates``, ``phrases``, ``options``,
        ``tasks``, ``navigation``).

    Returns
    -------
    Project
        Fully populated project model with sections in stable order.

    Raises
    ------
    FileNotFoundError
        If ``config.yaml`` does not exist.
    ProjectConfigError
        If the configuration is not a mapping or lacks an ``id``.

    Examples
    --------
    >>> from pathlib import Path
    >>> project = load_project(Path("projects/demo"))  # doctest: +SKIP
    >>> project.id  # doctest: +SKIP
    'demo'
    """
    config_path = path / CONFIG_FILENAME
    if not config_path.exists():
        msg = f"Project configuration '{config_path}' not found."
        raise FileNotFoundError(msg)
    raw = _read_yaml(config_path)

    project_id = _optional_str(raw.get("id"))
    if not project_id:
        msg = f"Project '{path}' is missing an 'id'."
        raise ProjectConfigError(msg)

    meta = ProjectMeta(
        title=_as_str(raw.get("title"), project_id),
        description=_as_str(raw.get("description")),
        version=_as_str(raw.get("version")),
        url=_as_str(raw.get("url")),
        versionurl=_as_str(raw.get("versionurl")),
        author=_as_str(raw.get("author")),
        order=_as_int(raw.get("order")),
        encoding=_as_str(raw.get("encoding"), DEFAULT_ENCODING),
    )
    build_path = _resolve_against(path, raw.get("buildPath") or "build")

    return Project(
        id=project_id,
        meta=meta,
        build_path=build_path,
        path=path,
        active=bool(raw.get("active", True)),
        files=[Path(str(entry)) for entry in raw.get("files") or []],
        dependencies=_load_dependencies(raw.get("dependencies") or {}),
        codes=_load_codes(path / "updown"),
        templates=_load_templates(path / "templates", meta),
        plugins=_load_plugins(path / "plugins", raw.get("plugins") or {}, meta),
        options=_load_options(path / "options"),
        tasks=_load_tasks(path / "tasks"),
        navigation=_load_navigation(path / "navigation"),
        phrases=_load_phrases(path / "phrases"),
    )


def load_projects(directory: Path) -> list[Project]:
    """Load every project directory beneath ``directory`` ordered by ``meta.order``.

    Directories whose names are not simple identifiers are ignored; projects
    that fail to load are skipped with a warning so one broken project does
    not hide the others.
    """
    if not directory.is_dir():
        msg = f"Projects directory '{directory}' not found."
        raise FileNotFoundError(msg)
    projects: list[Project] = []
    for candidate in _sorted_dirs(directory):
        if not PROJECT_DIR_PATTERN.match(candidate.name):
            continue
        try:
            projects.append(load_project(candidate))
        except (FileNotFoundError, ProjectConfigError) as exc:
            logger.warning("Could not load project %s - %s", candidate.name, exc)
    return sorted(projects, key=lambda project: project.meta.order)


def _load_dependencies(payload: typ.Mapping[str, typ.Any]) -> list[Dependency]:
    dependencies: list[Dependency] = []
    for dep_type, bounds in payload.items():
        match bounds:
            case [minimum, maximum]:
                dependencies.append(
                    Dependency(str(dep_type), _as_str(minimum), _as_str(maximum))
                )
            case {"minversion": _} | {"maxversion": _}:
                dependencies.append(
                    Dependency(
                        str(dep_type),
                        _as_str(bounds.get("minversion")),
                        _as_str(bounds.get("maxversion")),
                    )
                )
            case _:
                msg = f"Dependency '{dep_type}' must be a [min, max] pair."
                raise ProjectConfigError(msg)
    return dependencies


def _load_codes(directory: Path) -> list[CodeVersion]:
    codes: dict[str, CodeVersion] = {}
    for code_file in _sorted_files(directory, "*.php"):
        match = CODE_FILE_PATTERN.match(code_file.name)
        if not match:
            continue
        direction, label = match.groups()
        version = _version_from_label(label)
        entry = codes.setdefault(version, CodeVersion(version=version))
        code = _strip_php_open_tag(code_file.read_text(encoding="utf-8"))
        if direction == "up":
            entry.install = code
        else:
            entry.uninstall = code
    return list(codes.values())


def _load_templates(directory: Path, meta: ProjectMeta) -> list[Template]:
    return [
        Template(
            name=template_file.stem,
            content=template_file.read_text(encoding="utf-8"),
            version=meta.version,
            author=meta.author,
        )
        for template_file in _sorted_files(directory, "*.html")
    ]


def _load_plugins(
    directory: Path,
    overrides: typ.Mapping[str, typ.Any],
    meta: ProjectMeta,
) -> list[Plugin]:
    plugins: list[Plugin] = []
    for plugin_file in _sorted_files(directory, "*.php"):
        hookname = plugin_file.stem
        settings = overrides.get(hookname) or {}
        plugins.append(
            Plugin(
                hookname=hookname,
                title=_as_str(settings.get("title"), f"{meta.title} - {hookname}"),
                code=_strip_php_open_tag(plugin_file.read_text(encoding="utf-8")),
                active=_as_int(settings.get("active"), 1),
                executionorder=_as_int(settings.get("executionorder"), 5),
            )
        )
    return plugins


def _load_options(directory: Path) -> list[OptionGroup]:
    groups: list[OptionGroup] = []
    for group_dir in _sorted_dirs(directory):
        group = OptionGroup(varname=group_dir.name)
        group_file = group_dir / f"{group_dir.name}.yaml"
        if group_file.exists():
            group_raw = _read_yaml(group_file)
            group.title = _optional_str(group_raw.get("title"))
            group.displayorder = _as_int(group_raw.get("displayorder"))
        options: list[Option] = []
        for option_file in _sorted_files(group_dir, "*.yaml"):
            if option_file == group_file:
                continue
            options.append(_build_option(option_file.stem, _read_yaml(option_file)))
        group.options = sorted(
            options, key=lambda option: (option.displayorder, option.varname)
        )
        groups.append(group)
    return groups


def _build_option(varname: str, payload: typ.Mapping[str, typ.Any]) -> Option:
    def _optional(key: str) -> str | None:
        value = payload.get(key)
        return None if value is None else str(value)

    advanced = payload.get("advanced")
    return Option(
        varname=_as_str(payload.get("varname"), varname),
        title=_as_str(payload.get("title")),
        description=_as_str(payload.get("description")),
        displayorder=_as_int(payload.get("displayorder")),
        datatype=_optional("datatype"),
        optioncode=_optional("optioncode"),
        validationcode=_optional("validationcode"),
        defaultvalue=_optional("defaultvalue"),
        blacklist=_optional("blacklist"),
        advanced=None if advanced is None else _as_int(advanced),
    )


def _load_tasks(directory: Path) -> list[Task]:
    tasks: list[Task] = []
    for task_file in _sorted_files(directory, "*.yaml"):
        raw = _read_yaml(task_file)
        filename = _optional_str(raw.get("filename"))
        if not filename:
            msg = f"Task '{task_file.stem}' is missing a 'filename'."
            raise ProjectConfigError(msg)
        varname = _as_str(raw.get("varname"), task_file.stem)
        tasks.append(
            Task(
                varname=varname,
                title=_as_str(raw.get("title"), varname),
                filename=filename,
                description=_as_str(raw.get("description")),
                logtext=_as_str(raw.get("logtext")),
                weekday=_as_str(raw.get("weekday"), "*"),
                day=_as_str(raw.get("day"), "*"),
                hour=_as_str(raw.get("hour"), "*"),
                minutes=_as_str(raw.get("minutes", raw.get("minute")), "*"),
                active=_as_int(raw.get("active"), 1),
                loglevel=_as_int(raw.get("loglevel"), 1),
            )
        )
    return tasks


def _load_navigation(directory: Path) -> list[NavigationTab]:
    tabs: list[NavigationTab] = []
    for tab_dir in _sorted_dirs(directory):
        tab_file = tab_dir / f"{tab_dir.name}.yaml"
        if not tab_file.exists():
            continue
        raw = _read_yaml(tab_file)
        tab = NavigationTab(
            name=_as_str(raw.get("name"), tab_dir.name),
            text=_as_str(raw.get("text")),
            displayorder=_as_int(raw.get("displayorder")),
            show=_as_str(raw.get("show", raw.get("showperm"))),
            scripts=_as_str(raw.get("scripts")),
            url=_as_str(raw.get("url")),
        )
        links: list[NavigationLink] = []
        for link_file in _sorted_files(tab_dir, f"{tab_dir.name}_*.yaml"):
            link_raw = _read_yaml(link_file)
            fallback_name = link_file.stem[len(tab_dir.name) + 1 :]
            links.append(
                NavigationLink(
                    name=_as_str(link_raw.get("name"), fallback_name),
                    text=_as_str(link_raw.get("text")),
                    displayorder=_as_int(link_raw.get("displayorder")),
                    parent=_as_str(link_raw.get("parent"), tab.name),
                    show=_as_str(link_raw.get("show", link_raw.get("showperm"))),
                    scripts=_as_str(link_raw.get("scripts")),
                    url=_as_str(link_raw.get("url")),
                )
            )
        tab.links = sorted(links, key=lambda link: (link.displayorder, link.name))
        tabs.append(tab)
    return sorted(tabs, key=lambda tab: (tab.displayorder, tab.name))


def _read_phrase(path: Path) -> str:
    """Return phrase text without the single line break that ends the file."""
    text = path.read_text(encoding="utf-8")
    return text.removesuffix("\n")


def _load_phrases(directory: Path) -> list[PhraseGroup]:
    groups: list[PhraseGroup] = []
    for group_dir in _sorted_dirs(directory):
        group = PhraseGroup(key=group_dir.name)
        title_file = group_dir / f"{group_dir.name}.txt"
        if title_file.exists():
            group.title = _optional_str(title_file.read_text(encoding="utf-8"))
        for phrase_file in _sorted_files(group_dir, "*.txt"):
            if phrase_file == title_file:
                continue
            group.phrases[phrase_file.stem] = _read_phrase(phrase_file)
        groups.append(group)
    return groups


__all__ = ["CONFIG_FILENAME", "load_project", "load_projects"]
