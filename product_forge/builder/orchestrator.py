"""High-level orchestration for product builds.

:class:`ProductBuilder` walks a :class:`~product_forge.config.Project` through
the section processors, writes ``<buildPath>/product-<id>.xml``, stages the
shipped files under ``<buildPath>/upload`` and emits checksum manifests over
the staged tree. The accumulated build log is returned so callers can show
what happened even when nothing failed.

Example
-------
>>> from pathlib import Path
>>> from product_forge.builder import ProductBuilder
>>> from product_forge.config import load_project
>>> from product_forge.registry import StaticPhraseGroupRegistry
>>> project = load_project(Path("projects/demo"))  # doctest: +SKIP
>>> builder = ProductBuilder(StaticPhraseGroupRegistry(), source_root=Path("forum"))
>>> result = builder.build(project)  # doctest: +SKIP
>>> result.xml_path  # doctest: +SKIP
PosixPath('projects/demo/build/product-demo.xml')
"""

from __future__ import annotations

import collections.abc as cabc
import datetime as dt
import json
import typing as typ
from pathlib import Path

from product_forge._constants import (
    BUILD_META_TEMPLATE,
    PRODUCT_XML_TEMPLATE,
    UPLOAD_DIRNAME,
)
from product_forge.checksums import ChecksumWriter
from product_forge.config import SectionKind
from product_forge.document import DocumentBuilder
from product_forge.errors import StagingError
from product_forge.files import copy_files, expand_paths, merge_paths
from product_forge.logging import get_logger

from .models import BuildContext, BuildResult
from .processors import SECTION_PROCESSORS, task_handler_path

if typ.TYPE_CHECKING:
    from product_forge.config import Project
    from product_forge.registry import PhraseGroupRegistry

logger = get_logger("builder")


class ProductBuilder:
    """Assemble a product document, staging tree and checksums for a project."""

    def __init__(
        self,
        registry: PhraseGroupRegistry,
        *,
        source_root: Path,
        clock: cabc.Callable[[], dt.datetime] | None = None,
    ) -> None:
        """Initialize the builder.

        Parameters
        ----------
        registry : PhraseGroupRegistry
            Lookup of phrase groups the host already ships.
        source_root : Path
            Host root that shipped files live under; staged copies keep their
            path relative to it and manifests are written to its ``includes``.
        clock : Callable[[], datetime], optional
            Source of the build timestamp; defaults to the current UTC time.
        """
        self.registry = registry
        self.source_root = source_root
        self._clock = clock or (lambda: dt.datetime.now(dt.UTC))

    def build(self, project: Project) -> BuildResult:
        """Build ``project`` and return the written artifacts and log.

        Raises
        ------
        StagingError
            If the build directory cannot be created.
        FileNotFoundError
            If a declared or derived file is missing; the build stops and the
            partially staged tree is left in place.
        """
        self._prepare_build_dir(project.build_path)

        generated_at = self._clock()
        existing = self.registry.list_global_phrase_group_keys()
        context = BuildContext(
            project=project,
            document=DocumentBuilder(),
            source_root=self.source_root,
            existing_groups=existing,
            group_titles=self._host_titles(existing),
            generated_at=generated_at,
        )
        context.record(f"Building project {project.id}")

        xml_path = self._write_document(context)
        context.record(f"Created product XML successfully at {xml_path}")

        declared = [self._resolve_source(path) for path in project.files]
        files = merge_paths(expand_paths(declared), context.files)
        manifest_paths: list[Path] = []
        if files:
            upload_root = project.build_path / UPLOAD_DIRNAME
            for line in copy_files(files, upload_root, self.source_root):
                context.record(line)
            writer = ChecksumWriter(
                source_root=self.source_root, clock=lambda: generated_at
            )
            manifest_paths = writer.write(project, files, upload_root)
            context.record("Created project checksum files")

        self._write_metadata(project, xml_path, files, generated_at)
        context.record(f"Project {project.meta.title} built successfully!")
        return BuildResult(
            xml_path=xml_path,
            files=files,
            manifest_paths=manifest_paths,
            log=list(context.log),
        )

    def resolve_files(self, project: Project) -> list[Path]:
        """Return the declared files plus every task handler, expanded."""
        declared = [self._resolve_source(path) for path in project.files]
        handlers = [
            task_handler_path(self.source_root, task.filename) for task in project.tasks
        ]
        return merge_paths(expand_paths(declared), handlers)

    def refresh_checksums(self, project: Project) -> list[Path]:
        """Rewrite the manifests for an already staged build of ``project``.

        Raises
        ------
        FileNotFoundError
            If a shipped file has not been staged under ``<buildPath>/upload``.
        """
        files = self.resolve_files(project)
        writer = ChecksumWriter(source_root=self.source_root, clock=self._clock)
        return writer.write(project, files, project.build_path / UPLOAD_DIRNAME)

    def render_document(self, context: BuildContext) -> str:
        """Run every section processor and return the product XML text."""
        project = context.project
        doc = context.document
        doc.open_group("product", {"productid": project.id, "active": 1})
        doc.add_tag("title", project.meta.title)
        doc.add_tag("description", project.meta.description)
        doc.add_tag("version", project.meta.version)
        doc.add_tag("url", project.meta.url)
        doc.add_tag("versioncheckurl", project.meta.versionurl)

        for kind in SectionKind:
            SECTION_PROCESSORS[kind](project.section(kind), context)

        doc.open_group("stylevardfns")
        doc.close_group()
        doc.close_group()
        return doc.document(project.meta.encoding)

    def _write_document(self, context: BuildContext) -> Path:
        project = context.project
        xml = self.render_document(context)
        xml_path = project.build_path / PRODUCT_XML_TEMPLATE.format(id=project.id)
        try:
            xml_path.write_bytes(
                xml.encode(project.meta.encoding, errors="xmlcharrefreplace")
            )
        except OSError as exc:
            msg = f"Could not write product XML to '{xml_path}': {exc}"
            raise StagingError(msg) from exc
        return xml_path

    def _host_titles(self, keys: frozenset[str]) -> dict[str, str]:
        titles = {key: self.registry.phrase_group_title(key) for key in sorted(keys)}
        return {key: title for key, title in titles.items() if title is not None}

    def _resolve_source(self, path: Path) -> Path:
        return path if path.is_absolute() else self.source_root / path

    @staticmethod
    def _prepare_build_dir(build_path: Path) -> None:
        try:
            build_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Could not create project directory '{build_path}': {exc}"
            raise StagingError(msg) from exc

    @staticmethod
    def _write_metadata(
        project: Project,
        xml_path: Path,
        files: cabc.Sequence[Path],
        generated_at: dt.datetime,
    ) -> None:
        """Persist the metadata JSON describing the latest build."""
        metadata = {
            "id": project.id,
            "version": project.meta.version,
            "product_xml": xml_path.name,
            "file_count": len(files),
            "generated_at": generated_at.isoformat(),
        }
        path = project.build_path / BUILD_META_TEMPLATE.format(id=project.id)
        try:
            path.write_text(json.dumps(metadata), encoding="utf-8")
        except OSError:  # pragma: no cover - IO issues
            logger.warning("Could not write build metadata to %s", path)


__all__ = ["ProductBuilder"]
