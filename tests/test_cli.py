from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from product_forge import cli


def _settings(tmp_path: Path, source_root: Path, projects_dir: Path) -> Path:
    path = tmp_path / "forge.toml"
    path.write_text(
        f'[paths]\nsource_root = "{source_root.as_posix()}"\n'
        f'projects_dir = "{projects_dir.as_posix()}"\n',
        encoding="utf-8",
    )
    return path


def test_build_prints_log_and_written_xml(
    demo_project: Path,
    source_root: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    cli.build(
        project=demo_project,
        source_root=source_root,
        config=tmp_path / "absent.toml",
    )

    out = capsys.readouterr().out
    assert out.startswith("Building project demo\n")
    assert "Project Demo Product built successfully!\n" in out
    assert "product-demo.xml" in out.splitlines()[-1]


def test_build_reads_source_root_from_settings(
    demo_project: Path, source_root: Path, tmp_path: Path
) -> None:
    config = _settings(tmp_path, source_root, demo_project.parent)

    cli.build(project=demo_project, config=config)

    assert (source_root / "includes" / "md5_sums_demo.yaml").is_file()


def test_build_all_skips_inactive_and_reports_failures(
    demo_project: Path,
    source_root: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    projects_dir = demo_project.parent
    inactive = projects_dir / "sleepy"
    shutil.copytree(demo_project, inactive)
    (inactive / "config.yaml").write_text(
        "id: sleepy\nactive: false\n", encoding="utf-8"
    )
    broken = projects_dir / "broken"
    broken.mkdir()
    (broken / "config.yaml").write_text(
        "id: broken\nfiles: [includes/nowhere.php]\n", encoding="utf-8"
    )
    config = _settings(tmp_path, source_root, projects_dir)

    with pytest.raises(SystemExit) as excinfo:
        cli.build_all(config=config)

    assert excinfo.value.code == 1
    out = capsys.readouterr().out
    assert "Project Demo Product built successfully!" in out
    assert "sleepy" not in out
    assert (demo_project / "build" / "product-demo.xml").is_file()
    assert not (inactive / "build").exists()


def test_checksums_command_rewrites_manifests(
    demo_project: Path,
    source_root: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    config = _settings(tmp_path, source_root, demo_project.parent)
    cli.build(project=demo_project, config=config)
    capsys.readouterr()

    cli.checksums(project=demo_project, config=config)

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 4
    assert all(line.startswith("wrote ") for line in lines)


def test_port_command_writes_project_tree(
    demo_project: Path,
    source_root: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    config = _settings(tmp_path, source_root, demo_project.parent)
    cli.build(project=demo_project, config=config)
    capsys.readouterr()
    out_dir = tmp_path / "ported"

    cli.port(
        demo_project / "build" / "product-demo.xml",
        product_id="demo",
        out=out_dir,
        config=config,
    )

    assert (out_dir / "config.yaml").is_file()
    assert (out_dir / "tasks" / "demo_cleanup.yaml").is_file()
    assert "config.yaml" in capsys.readouterr().out
