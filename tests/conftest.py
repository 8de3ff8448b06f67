"""Shared fixtures for product_forge tests."""

from __future__ import annotations

import datetime as dt
import logging
import typing as typ
from pathlib import Path
from textwrap import dedent

import pytest

from product_forge.builder import ProductBuilder
from product_forge.registry import StaticPhraseGroupRegistry

FIXED_TIME = dt.datetime(2024, 3, 5, 14, 7, 9, tzinfo=dt.UTC)

HANDLER_CODE = b"<?php\r\n// prune expired rows\r\n$db->query('DELETE');\r\n"
FUNCTIONS_CODE = b"<?php\r\nfunction demo() {}\r\n"
LOGO_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00"


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(content).lstrip(), encoding="utf-8")


def write_demo_project(root: Path) -> Path:
    """Write a project tree exercising every section and return its path."""
    project = root / "demo"
    _write(
        project / "config.yaml",
        """
        id: demo
        title: Demo Product
        description: Adds a demo box
        version: 1.0.0
        url: http://example.com/demo
        versionurl: http://example.com/demo/version
        author: Forge
        order: 2
        dependencies:
          php: ["5.2", ""]
          vbulletin: ["3.8.0", "3.8.99"]
        files:
          - includes/demo
        plugins:
          global_start:
            title: Demo bootstrap
            executionorder: 3
        """,
    )
    _write(project / "updown" / "up-all.php", "<?php\n$db->query('CREATE');\n")
    _write(project / "updown" / "down-all.php", "<?php\n$db->query('DROP');\n")
    _write(project / "plugins" / "global_start.php", "<?php\necho 'hi';\n")
    _write(
        project / "plugins" / "init_startup.php",
        """
        <?php
        #if devonly
        $debug = true;
        #endif
        """,
    )
    _write(project / "templates" / "demo_box.html", "<div>{$box}</div>")
    _write(project / "phrases" / "demo" / "demo.txt", "Demo Phrases")
    _write(project / "phrases" / "demo" / "demo_hello.txt", "Hello & welcome")
    _write(
        project / "options" / "demo_group" / "demo_group.yaml",
        """
        title: Demo Settings
        displayorder: 10
        """,
    )
    _write(
        project / "options" / "demo_group" / "demo_enabled.yaml",
        """
        title: Enable Demo
        description: Switch the demo box on
        displayorder: 1
        datatype: boolean
        optioncode: yesno
        defaultvalue: 1
        """,
    )
    _write(
        project / "tasks" / "demo_cleanup.yaml",
        """
        title: Demo Cleanup
        description: Removes expired demo rows
        logtext: Demo rows pruned
        filename: ./includes/cron/demo_cleanup.php
        hour: 3
        minutes: "0"
        """,
    )
    _write(
        project / "navigation" / "demo" / "demo.yaml",
        """
        text: Demo
        displayorder: 5
        show: showdemo
        scripts: demo
        url: demo.php
        """,
    )
    _write(
        project / "navigation" / "demo" / "demo_home.yaml",
        """
        text: Home
        displayorder: 1
        url: demo.php?do=home
        """,
    )
    return project


def write_source_root(root: Path) -> Path:
    """Write a host installation holding the files the demo project ships."""
    source = root / "forum"
    (source / "includes" / "demo" / ".svn").mkdir(parents=True)
    (source / "includes" / "cron").mkdir(parents=True)
    (source / "includes" / "demo" / "functions.php").write_bytes(FUNCTIONS_CODE)
    (source / "includes" / "demo" / "logo.png").write_bytes(LOGO_BYTES)
    (source / "includes" / "demo" / ".svn" / "entries").write_text("10\n")
    (source / "includes" / "cron" / "demo_cleanup.php").write_bytes(HANDLER_CODE)
    return source


@pytest.fixture(autouse=True)
def _reset_forge_logger() -> typ.Iterator[None]:
    """Undo CLI logging configuration so caplog sees every record."""
    yield
    logger = logging.getLogger("product_forge")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def demo_project(tmp_path: Path) -> Path:
    """Project tree for the demo product."""
    return write_demo_project(tmp_path / "projects")


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    """Host installation for the demo product."""
    return write_source_root(tmp_path)


@pytest.fixture
def fixed_clock() -> typ.Callable[[], dt.datetime]:
    """Clock returning :data:`FIXED_TIME`."""
    return lambda: FIXED_TIME


@pytest.fixture
def builder(
    source_root: Path, fixed_clock: typ.Callable[[], dt.datetime]
) -> ProductBuilder:
    """Builder over the demo host with a deterministic clock."""
    return ProductBuilder(
        StaticPhraseGroupRegistry(), source_root=source_root, clock=fixed_clock
    )
