"""Reconstitute a project tree from an installed or exported product.

The porter is the inverse of the builder. A :class:`ProductSource` exposes the
records the host stores for one product (metadata, dependencies, install
code, plugins, templates, phrases, options, scheduled tasks and navigation);
:class:`ProductPorter` writes them back out in the layout that
:func:`~product_forge.config.load_project` reads.

Phrases the builder derives from other sections (task, setting and
navigation text) are folded back into their owning records instead of being
written as phrase files, so a ported tree builds into the same product.

Example
-------
.. code-block:: python

    from pathlib import Path
    from product_forge.porter import ProductPorter, XmlProductSource

    source = XmlProductSource(Path("exports/product-demo.xml"))
    written = ProductPorter(source).port("demo", Path("projects/demo"))
    print(f"wrote {len(written)} files")

"""

from __future__ import annotations

import re
import typing as typ
import xml.etree.ElementTree as ET  # noqa: N817
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq

from .config import (
    CodeVersion,
    Dependency,
    NavigationLink,
    NavigationTab,
    Option,
    OptionGroup,
    PhraseGroup,
    Plugin,
    ProjectMeta,
    Task,
    Template,
)
from .config.helpers import _as_int, _label_from_version
from .config.loader import CONFIG_FILENAME
from .errors import ProductNotFoundError
from .logging import get_logger
from .registry import StaticPhraseGroupRegistry

if typ.TYPE_CHECKING:
    from .registry import PhraseGroupRegistry

logger = get_logger("porter")

DERIVED_PHRASE_PATTERN = re.compile(
    r"^(?:task_.+_(?:title|desc|log)"
    r"|setting_.+_(?:title|desc)"
    r"|settinggroup_.+"
    r"|(?:vb_)?navigation_.+)$"
)
_PHP_HEADER = "<?php\n\n"


class ProductSource(typ.Protocol):
    """Read access to the records the host keeps for installed products."""

    def get_product(self, product_id: str) -> ProjectMeta | None:
        """Return product metadata, or ``None`` when the product is unknown."""
        ...

    def get_dependencies(self, product_id: str) -> list[Dependency]:
        """Return the version bounds the product declares."""
        ...

    def get_codes(self, product_id: str) -> list[CodeVersion]:
        """Return install and uninstall code per version."""
        ...

    def get_plugins(self, product_id: str) -> list[Plugin]:
        """Return active plugins ordered by execution order."""
        ...

    def get_templates(self, product_id: str) -> list[Template]:
        """Return the product's templates."""
        ...

    def get_phrase_groups(self, product_id: str) -> list[PhraseGroup]:
        """Return non-derived phrases; titles are set only for new groups."""
        ...

    def get_option_groups(self, product_id: str) -> list[OptionGroup]:
        """Return settings grouped by setting group; titles only for new groups."""
        ...

    def get_tasks(self, product_id: str) -> list[Task]:
        """Return scheduled tasks with their titles resolved."""
        ...

    def get_navigation(self, product_id: str) -> list[NavigationTab]:
        """Return navigation tabs carrying their links."""
        ...


def _text(element: ET.Element | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text


def _child_text(element: ET.Element, tag: str) -> str:
    return _text(element.find(tag))


def _optional_child_text(element: ET.Element, tag: str) -> str | None:
    child = element.find(tag)
    return None if child is None else _text(child)


class XmlProductSource:
    """Product source backed by a product XML document.

    The document may be one written by the builder or a product export from
    the host; both share the ``<product productid="...">`` layout.
    """

    def __init__(
        self, path: Path, *, registry: PhraseGroupRegistry | None = None
    ) -> None:
        self.path = path
        self.registry = registry or StaticPhraseGroupRegistry()
        self._tree = ET.parse(path)  # noqa: S314

    def _product(self, product_id: str) -> ET.Element:
        root = self._tree.getroot()
        candidates = [root] if root.tag == "product" else root.iter("product")
        for element in candidates:
            if element.get("productid") == product_id:
                return element
        msg = f"Product '{product_id}' not found in {self.path}"
        raise ProductNotFoundError(msg)

    def _phrase_text(self, product_id: str) -> dict[str, str]:
        product = self._product(product_id)
        return {
            phrase.get("name", ""): _text(phrase)
            for phrase in product.iterfind("phrases/phrasetype/phrase")
        }

    def _author(self, product: ET.Element) -> str:
        for element in product.iter():
            if username := element.get("username"):
                return username
        return ""

    def get_product(self, product_id: str) -> ProjectMeta | None:
        try:
            product = self._product(product_id)
        except ProductNotFoundError:
            return None
        return ProjectMeta(
            title=_child_text(product, "title") or product_id,
            description=_child_text(product, "description"),
            version=_child_text(product, "version"),
            url=_child_text(product, "url"),
            versionurl=_child_text(product, "versioncheckurl"),
            author=self._author(product),
        )

    def get_dependencies(self, product_id: str) -> list[Dependency]:
        product = self._product(product_id)
        return [
            Dependency(
                type=element.get("type") or element.get("dependencytype", ""),
                minversion=element.get("minversion", ""),
                maxversion=element.get("maxversion", ""),
            )
            for element in product.iterfind("dependencies/dependency")
        ]

    def get_codes(self, product_id: str) -> list[CodeVersion]:
        product = self._product(product_id)
        return [
            CodeVersion(
                version=element.get("version", ""),
                install=_child_text(element, "installcode"),
                uninstall=_child_text(element, "uninstallcode"),
            )
            for element in product.iterfind("codes/code")
        ]

    def get_plugins(self, product_id: str) -> list[Plugin]:
        product = self._product(product_id)
        plugins = [
            Plugin(
                hookname=_child_text(element, "hookname"),
                title=_child_text(element, "title"),
                code=_child_text(element, "phpcode"),
                active=_as_int(element.get("active"), 1),
                executionorder=_as_int(element.get("executionorder"), 5),
            )
            for element in product.iterfind("plugins/plugin")
        ]
        active = [plugin for plugin in plugins if plugin.active == 1]
        return sorted(active, key=lambda plugin: plugin.executionorder)

    def get_templates(self, product_id: str) -> list[Template]:
        product = self._product(product_id)
        return [
            Template(
                name=element.get("name", ""),
                content=_text(element),
                version=element.get("version", ""),
                author=element.get("username", ""),
            )
            for element in product.iterfind("templates/template")
            if element.get("templatetype", "template") == "template"
        ]

    def get_phrase_groups(self, product_id: str) -> list[PhraseGroup]:
        product = self._product(product_id)
        existing = self.registry.list_global_phrase_group_keys()
        groups: list[PhraseGroup] = []
        for element in product.iterfind("phrases/phrasetype"):
            key = element.get("fieldname", "")
            phrases = {
                phrase.get("name", ""): _text(phrase)
                for phrase in element.iterfind("phrase")
                if not DERIVED_PHRASE_PATTERN.match(phrase.get("name", ""))
            }
            if not phrases:
                continue
            title = None if key in existing else element.get("name")
            groups.append(PhraseGroup(key=key, title=title, phrases=phrases))
        return groups

    def get_option_groups(self, product_id: str) -> list[OptionGroup]:
        product = self._product(product_id)
        phrases = self._phrase_text(product_id)
        groups: list[OptionGroup] = []
        for element in product.iterfind("options/settinggroup"):
            varname = element.get("name", "")
            title = phrases.get(f"settinggroup_{varname}")
            group = OptionGroup(
                varname=varname,
                title=title,
                displayorder=(
                    None if title is None else _as_int(element.get("displayorder"))
                ),
            )
            for setting in element.iterfind("setting"):
                name = setting.get("varname", "")
                advanced = setting.get("advanced") or _optional_child_text(
                    setting, "advanced"
                )
                group.options.append(
                    Option(
                        varname=name,
                        title=phrases.get(f"setting_{name}_title", ""),
                        description=phrases.get(f"setting_{name}_desc", ""),
                        displayorder=_as_int(setting.get("displayorder")),
                        datatype=_optional_child_text(setting, "datatype"),
                        optioncode=_optional_child_text(setting, "optioncode"),
                        validationcode=_optional_child_text(setting, "validationcode"),
                        defaultvalue=_optional_child_text(setting, "defaultvalue"),
                        blacklist=_optional_child_text(setting, "blacklist"),
                        advanced=None if advanced is None else _as_int(advanced),
                    )
                )
            groups.append(group)
        return groups

    def get_tasks(self, product_id: str) -> list[Task]:
        product = self._product(product_id)
        phrases = self._phrase_text(product_id)
        tasks: list[Task] = []
        for element in product.iterfind("cronentries/cron"):
            varname = element.get("varname", "")
            scheduling = element.find("scheduling")
            schedule = {} if scheduling is None else dict(scheduling.attrib)
            tasks.append(
                Task(
                    varname=varname,
                    title=phrases.get(f"task_{varname}_title", varname),
                    filename=_child_text(element, "filename"),
                    description=phrases.get(f"task_{varname}_desc", ""),
                    logtext=phrases.get(f"task_{varname}_log", ""),
                    weekday=schedule.get("weekday", "*"),
                    day=schedule.get("day", "*"),
                    hour=schedule.get("hour", "*"),
                    minutes=schedule.get("minute", "*"),
                    active=_as_int(element.get("active"), 1),
                    loglevel=_as_int(element.get("loglevel"), 1),
                )
            )
        return tasks

    def get_navigation(self, product_id: str) -> list[NavigationTab]:
        product = self._product(product_id)
        phrases = self._phrase_text(product_id)

        def _nav_text(kind: str, name: str) -> str:
            for prefix in ("navigation", "vb_navigation"):
                key = f"{prefix}_{kind}_{name}_text"
                if key in phrases:
                    return phrases[key]
            return ""

        tabs: dict[str, NavigationTab] = {}
        for element in product.iterfind("navigation/tab"):
            name = element.get("name", "")
            tabs[name] = NavigationTab(
                name=name,
                text=_nav_text("tab", name),
                displayorder=_as_int(_child_text(element, "displayorder")),
                show=_child_text(element, "show"),
                scripts=_child_text(element, "scripts"),
                url=_child_text(element, "url"),
            )
        for element in product.iterfind("navigation/link"):
            name = element.get("name", "")
            parent = _child_text(element, "parent")
            tab = tabs.get(parent)
            if tab is None:
                logger.warning("Skipping link %s with unknown tab %s", name, parent)
                continue
            tab.links.append(
                NavigationLink(
                    name=name,
                    text=_nav_text("link", name),
                    displayorder=_as_int(_child_text(element, "displayorder")),
                    parent=parent,
                    show=_child_text(element, "show"),
                    scripts=_child_text(element, "scripts"),
                    url=_child_text(element, "url"),
                )
            )
        return list(tabs.values())


def _build_roundtrip_yaml() -> YAML:
    yaml = YAML()
    yaml.width = 4096
    yaml.indent(mapping=2, sequence=4, offset=2)
    return yaml


class ProductPorter:
    """Write a product from a :class:`ProductSource` as a project tree."""

    def __init__(self, source: ProductSource) -> None:
        self.source = source
        self._yaml = _build_roundtrip_yaml()
        self._written: list[Path] = []

    def port(self, product_id: str, out_dir: Path) -> list[Path]:
        """Write the project tree for ``product_id`` beneath ``out_dir``.

        Parameters
        ----------
        product_id : str
            Identifier of the product to port.
        out_dir : Path
            Destination project root; created when missing.

        Returns
        -------
        list[Path]
            Every file written, in write order.

        Raises
        ------
        ProductNotFoundError
            If the source does not know ``product_id``.
        """
        meta = self.source.get_product(product_id)
        if meta is None:
            msg = f"Product '{product_id}' not found."
            raise ProductNotFoundError(msg)

        out_dir.mkdir(parents=True, exist_ok=True)
        self._written = []
        plugins = self.source.get_plugins(product_id)

        self._write_config(out_dir / CONFIG_FILENAME, product_id, meta, plugins)
        self._write_codes(out_dir / "updown", self.source.get_codes(product_id))
        self._write_plugins(out_dir / "plugins", plugins)
        self._write_templates(
            out_dir / "templates", self.source.get_templates(product_id)
        )
        self._write_phrases(
            out_dir / "phrases", self.source.get_phrase_groups(product_id)
        )
        self._write_options(
            out_dir / "options", self.source.get_option_groups(product_id)
        )
        self._write_tasks(out_dir / "tasks", self.source.get_tasks(product_id))
        self._write_navigation(
            out_dir / "navigation", self.source.get_navigation(product_id)
        )

        logger.info("Ported %s into %s", product_id, out_dir)
        return list(self._written)

    def _write_text(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        self._written.append(path)

    def _write_yaml(self, path: Path, payload: CommentedMap) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            self._yaml.dump(payload, handle)
        self._written.append(path)

    def _write_config(
        self,
        path: Path,
        product_id: str,
        meta: ProjectMeta,
        plugins: list[Plugin],
    ) -> None:
        config = CommentedMap()
        config["id"] = product_id
        config["title"] = meta.title
        config["description"] = meta.description
        config["version"] = meta.version
        config["url"] = meta.url
        config["versionurl"] = meta.versionurl
        config["author"] = meta.author

        dependencies = CommentedMap()
        for dependency in self.source.get_dependencies(product_id):
            bounds = CommentedSeq([dependency.minversion, dependency.maxversion])
            bounds.fa.set_flow_style()
            dependencies[dependency.type] = bounds
        config["dependencies"] = dependencies
        config["files"] = CommentedSeq()

        hooks = CommentedMap()
        for plugin in plugins:
            if plugin.hookname in hooks:
                continue
            settings = CommentedMap()
            settings["title"] = plugin.title
            settings["active"] = plugin.active
            settings["executionorder"] = plugin.executionorder
            hooks[plugin.hookname] = settings
        if hooks:
            config["plugins"] = hooks

        self._write_yaml(path, config)

    def _write_codes(self, directory: Path, codes: list[CodeVersion]) -> None:
        for code in codes:
            label = _label_from_version(code.version)
            self._write_text(directory / f"up-{label}.php", _PHP_HEADER + code.install)
            self._write_text(
                directory / f"down-{label}.php", _PHP_HEADER + code.uninstall
            )

    def _write_plugins(self, directory: Path, plugins: list[Plugin]) -> None:
        by_hook: dict[str, list[str]] = {}
        for plugin in plugins:
            by_hook.setdefault(plugin.hookname, []).append(plugin.code)
        for hook, codes in by_hook.items():
            code = "\n\n".join(codes)
            self._write_text(directory / f"{hook}.php", _PHP_HEADER + code)

    def _write_templates(self, directory: Path, templates: list[Template]) -> None:
        for template in templates:
            self._write_text(directory / f"{template.name}.html", template.content)

    def _write_phrases(self, directory: Path, groups: list[PhraseGroup]) -> None:
        for group in groups:
            group_dir = directory / group.key
            if group.title is not None:
                self._write_text(group_dir / f"{group.key}.txt", group.title)
            for varname, text in group.phrases.items():
                self._write_text(group_dir / f"{varname}.txt", f"{text}\n")

    def _write_options(self, directory: Path, groups: list[OptionGroup]) -> None:
        for group in groups:
            group_dir = directory / group.varname
            group_dir.mkdir(parents=True, exist_ok=True)
            if group.title is not None:
                header = CommentedMap()
                header["title"] = group.title
                header["displayorder"] = group.displayorder or 0
                self._write_yaml(group_dir / f"{group.varname}.yaml", header)
            for option in group.options:
                record = CommentedMap()
                record["title"] = option.title
                record["description"] = option.description
                record["displayorder"] = option.displayorder
                for key in (
                    "datatype",
                    "optioncode",
                    "validationcode",
                    "defaultvalue",
                    "blacklist",
                    "advanced",
                ):
                    value = getattr(option, key)
                    if value is not None:
                        record[key] = value
                self._write_yaml(group_dir / f"{option.varname}.yaml", record)

    def _write_tasks(self, directory: Path, tasks: list[Task]) -> None:
        for task in tasks:
            record = CommentedMap()
            record["title"] = task.title
            record["description"] = task.description
            record["logtext"] = task.logtext
            record["filename"] = task.filename
            record["weekday"] = task.weekday
            record["day"] = task.day
            record["hour"] = task.hour
            record["minutes"] = task.minutes
            record["active"] = task.active
            record["loglevel"] = task.loglevel
            self._write_yaml(directory / f"{task.varname}.yaml", record)

    def _write_navigation(self, directory: Path, tabs: list[NavigationTab]) -> None:
        for tab in tabs:
            tab_dir = directory / tab.name
            record = CommentedMap()
            record["name"] = tab.name
            record["text"] = tab.text
            record["displayorder"] = tab.displayorder
            record["show"] = tab.show
            record["scripts"] = tab.scripts
            record["url"] = tab.url
            self._write_yaml(tab_dir / f"{tab.name}.yaml", record)
            for link in tab.links:
                link_record = CommentedMap()
                link_record["name"] = link.name
                link_record["text"] = link.text
                link_record["displayorder"] = link.displayorder
                link_record["parent"] = link.parent
                link_record["show"] = link.show
                link_record["scripts"] = link.scripts
                link_record["url"] = link.url
                link_path = tab_dir / f"{tab.name}_{link.name}.yaml"
                self._write_yaml(link_path, link_record)


__all__ = [
    "DERIVED_PHRASE_PATTERN",
    "ProductPorter",
    "ProductSource",
    "XmlProductSource",
]
