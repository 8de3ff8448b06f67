from __future__ import annotations

import datetime as dt
import hashlib
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from product_forge.checksums import (
    ChecksumWriter,
    build_file_manifest,
    build_manifests,
    directory_key,
    hash_file,
    hash_inline,
    render_manifest,
)
from product_forge.config import Plugin, Project, ProjectMeta, Template
from product_forge.files import copy_files, expand_paths

FIXED_TIME = dt.datetime(2024, 3, 5, 14, 7, 9, tzinfo=dt.UTC)
LOGO_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00"


def _load(text: str) -> typ.Any:
    return YAML(typ="safe").load(text)


def _project(tmp_path: Path) -> Project:
    return Project(
        id="demo",
        meta=ProjectMeta(title="Demo", version="1.0.0"),
        build_path=tmp_path / "build",
        plugins=[
            Plugin("global_start", "A", "echo 1;"),
            Plugin("global_start", "B", "echo 2;"),
            Plugin("init_startup", "Dev", "#if devonly\n$x = 1;\n#endif"),
        ],
        templates=[Template("demo_box", "<b>\r\n</b>"), Template("other", "x")],
    )


def test_text_hash_ignores_line_endings(tmp_path: Path) -> None:
    crlf = tmp_path / "crlf.php"
    lf = tmp_path / "lf.php"
    crlf.write_bytes(b"<?php\r\necho 1;\r\n")
    lf.write_bytes(b"<?php\necho 1;\n")

    assert hash_file(crlf) == hash_file(lf) == hash_inline("<?php\necho 1;\n")


def test_images_are_hashed_raw(tmp_path: Path) -> None:
    logo = tmp_path / "logo.PNG"
    logo.write_bytes(LOGO_BYTES)

    assert hash_file(logo) == hashlib.md5(LOGO_BYTES).hexdigest()  # noqa: S324
    assert hash_file(logo) != hash_inline(LOGO_BYTES.decode("latin-1"))


def test_directory_key_uses_forward_slashes() -> None:
    assert directory_key(Path("includes/cron/x.php")) == "/includes/cron"
    assert directory_key(Path("x.php")) == "/"


def test_file_manifest_hashes_staged_copies(
    source_root: Path, tmp_path: Path
) -> None:
    files = expand_paths([source_root / "includes"])
    upload = tmp_path / "upload"
    copy_files(files, upload, source_root)
    (upload / "includes" / "cron" / "demo_cleanup.php").write_text("changed")

    manifest = build_file_manifest(files, upload, source_root)

    assert list(manifest) == ["/includes/cron", "/includes/demo"]
    assert list(manifest["/includes/demo"]) == ["functions.php", "logo.png"]
    assert manifest["/includes/cron"]["demo_cleanup.php"] == hash_inline("changed")


def test_extended_manifest_covers_plugins_and_templates(tmp_path: Path) -> None:
    flat, extended = build_manifests(_project(tmp_path), [], tmp_path, tmp_path)

    assert flat == {}
    assert extended["plugins"] == {
        "global_start": hash_inline("echo 1;\n\necho 2;"),
    }
    assert extended["templates"] == {
        "demo_box": hash_inline("<b>\n</b>"),
        "other": hash_inline("x"),
    }


def test_render_manifest_has_header_and_parses(tmp_path: Path) -> None:
    text = render_manifest(
        {"md5_sums": {"/includes": {"a.php": "abc"}}}, _project(tmp_path), FIXED_TIME
    )

    header, _, body = text.partition("\n")
    assert header == "# demo 1.0.0, 14:07:09, Tue Mar 05 2024"
    assert _load(body) == {"md5_sums": {"/includes": {"a.php": "abc"}}}


def test_writer_outputs_are_byte_identical_for_fixed_clock(
    source_root: Path, tmp_path: Path
) -> None:
    files = expand_paths([source_root / "includes"])
    upload = tmp_path / "upload"
    copy_files(files, upload, source_root)
    writer = ChecksumWriter(source_root=source_root, clock=lambda: FIXED_TIME)
    project = _project(tmp_path)

    first = [path.read_bytes() for path in writer.write(project, files, upload)]
    second_paths = writer.write(project, files, upload)
    second = [path.read_bytes() for path in second_paths]

    assert first == second
    assert [path.name for path in second_paths] == [
        "md5_sums_demo.yaml",
        "md5_sums_demo.extended.yaml",
        "md5_sums_demo.yaml",
        "md5_sums_demo.extended.yaml",
    ]
    assert second_paths[0].parent == source_root / "includes"
    assert second_paths[2].parent == upload / "includes"
    assert second_paths[0].read_bytes() == second_paths[2].read_bytes()


def test_writer_without_files_writes_empty_manifest(
    source_root: Path, tmp_path: Path
) -> None:
    writer = ChecksumWriter(source_root=source_root)

    (flat_path, *_) = writer.write(_project(tmp_path), [], tmp_path / "upload")

    text = flat_path.read_text(encoding="utf-8")
    assert text.startswith("# demo 1.0.0, ")
    assert _load(text) == {"md5_sums": {}}
