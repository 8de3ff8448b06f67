"""Cyclopts CLI entrypoint for building and porting forum products.

The ``forge`` console script defined here assembles a project tree into a
product XML document with its staged upload tree and checksum manifests,
rebuilds every project in a workspace, recomputes manifests for an existing
staging tree, and ports an exported product back into a project tree.
Workspace locations come from ``forge.toml`` (see
:mod:`product_forge.settings`) and may be overridden per invocation.

Examples
--------
Build the project in the current directory:

>>> from product_forge.cli import main
>>> main()  # doctest: +SKIP

Build a single project against a specific host installation:

>>> from product_forge.cli import app
>>> app(
...     ["build", "--project", "projects/demo", "--source-root", "forum"]
... )  # doctest: +SKIP
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .builder import ProductBuilder
from .config import load_project, load_projects
from .errors import ForgeError
from .logging import configure_logging, get_logger
from .porter import ProductPorter, XmlProductSource
from .settings import DEFAULT_CONFIG_PATH, load_settings

if typ.TYPE_CHECKING:
    from .builder import BuildResult
    from .settings import ForgeSettings

app = App(name="forge", config=cyclopts.config.Env("INPUT_", command=False))  # type: ignore[unknown-argument]

logger = get_logger("cli")


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _builder(settings: ForgeSettings, source_root: Path | None) -> ProductBuilder:
    return ProductBuilder(
        settings.registry(), source_root=source_root or settings.source_root
    )


def _print_result(result: BuildResult) -> None:
    print(result.output, end="")
    print(f"wrote {_format_path(result.xml_path)}")


@app.command(help="Build one project into a product XML and staged upload tree.")
def build(
    *,
    project: typ.Annotated[
        Path, Parameter(help="Project directory", env_var="INPUT_PROJECT")
    ] = Path(),
    source_root: typ.Annotated[
        Path | None,
        Parameter(help="Host installation root", env_var="INPUT_SOURCE_ROOT"),
    ] = None,
    config: typ.Annotated[
        Path, Parameter(help="Path to forge.toml", env_var="FORGE_CONFIG_FILE")
    ] = DEFAULT_CONFIG_PATH,
    verbose: typ.Annotated[
        bool, Parameter(help="Enable debug logging", env_var="INPUT_VERBOSE")
    ] = False,
) -> None:
    """Build the project stored under ``project``.

    Parameters
    ----------
    project : Path, optional
        Project root holding ``config.yaml``; defaults to the current
        directory (``INPUT_PROJECT``).
    source_root : Path or None, optional
        Host installation that shipped files are copied from; overrides the
        ``paths.source_root`` setting (``INPUT_SOURCE_ROOT``).
    config : Path, optional
        Workspace settings file (``FORGE_CONFIG_FILE``).
    verbose : bool, optional
        Log at DEBUG instead of INFO.

    Raises
    ------
    ForgeError
        If the project tree is invalid or the build directory is unwritable.
    FileNotFoundError
        If a declared or derived file is missing.
    """
    configure_logging(verbose=verbose)
    settings = load_settings(config)
    result = _builder(settings, source_root).build(load_project(project))
    _print_result(result)


@app.command(name="build-all", help="Build every active project in the workspace.")
def build_all(
    *,
    projects_dir: typ.Annotated[
        Path | None,
        Parameter(help="Directory of project trees", env_var="INPUT_PROJECTS_DIR"),
    ] = None,
    source_root: typ.Annotated[
        Path | None,
        Parameter(help="Host installation root", env_var="INPUT_SOURCE_ROOT"),
    ] = None,
    config: typ.Annotated[
        Path, Parameter(help="Path to forge.toml", env_var="FORGE_CONFIG_FILE")
    ] = DEFAULT_CONFIG_PATH,
    verbose: typ.Annotated[
        bool, Parameter(help="Enable debug logging", env_var="INPUT_VERBOSE")
    ] = False,
) -> None:
    """Build every active project beneath ``projects_dir`` in ``order``.

    A failing project is reported and skipped; the command exits non-zero
    when any project failed.
    """
    configure_logging(verbose=verbose)
    settings = load_settings(config)
    builder = _builder(settings, source_root)
    failures: list[str] = []
    for project in load_projects(projects_dir or settings.projects_dir):
        if not project.active:
            logger.debug("Skipping inactive project %s", project.id)
            continue
        try:
            result = builder.build(project)
        except (ForgeError, FileNotFoundError) as exc:
            logger.error("Build of %s failed: %s", project.id, exc)  # noqa: TRY400
            failures.append(project.id)
            continue
        _print_result(result)
    if failures:
        raise SystemExit(1)


@app.command(help="Recompute checksum manifests for an already staged build.")
def checksums(
    *,
    project: typ.Annotated[
        Path, Parameter(help="Project directory", env_var="INPUT_PROJECT")
    ] = Path(),
    source_root: typ.Annotated[
        Path | None,
        Parameter(help="Host installation root", env_var="INPUT_SOURCE_ROOT"),
    ] = None,
    config: typ.Annotated[
        Path, Parameter(help="Path to forge.toml", env_var="FORGE_CONFIG_FILE")
    ] = DEFAULT_CONFIG_PATH,
) -> None:
    """Rewrite ``md5_sums_<id>.yaml`` and its extended variant."""
    configure_logging()
    settings = load_settings(config)
    written = _builder(settings, source_root).refresh_checksums(
        load_project(project)
    )
    for path in written:
        print(f"wrote {_format_path(path)}")


@app.command(help="Port a product XML export into a project tree.")
def port(
    product_xml: typ.Annotated[Path, Parameter(help="Product XML document")],
    *,
    product_id: typ.Annotated[
        str, Parameter(help="Product identifier", env_var="INPUT_PRODUCT_ID")
    ],
    out: typ.Annotated[
        Path, Parameter(help="Destination project directory", env_var="INPUT_OUT")
    ],
    config: typ.Annotated[
        Path, Parameter(help="Path to forge.toml", env_var="FORGE_CONFIG_FILE")
    ] = DEFAULT_CONFIG_PATH,
) -> None:
    """Write the project tree for ``product_id`` from ``product_xml`` into ``out``.

    Raises
    ------
    ProductNotFoundError
        If the document holds no product with ``product_id``.
    """
    configure_logging()
    settings = load_settings(config)
    source = XmlProductSource(product_xml, registry=settings.registry())
    for path in ProductPorter(source).port(product_id, out):
        print(f"wrote {_format_path(path)}")


def main() -> None:
    """Invoke the Cyclopts application that powers the `forge` console command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
