"""CLI tests for import, pairing preview, and library listing."""

import json
import os
from pathlib import Path
from typing import Any, Callable, Mapping

from click.testing import CliRunner

from mangadrop.cli import cli


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    return env


def _drop(write_tree: Callable[[Mapping[str, bytes]], Path], mokuro_bytes, png_bytes) -> Path:
    root = write_tree(
        {
            "drop/SeriesA/vol1.mokuro": mokuro_bytes(["vol1/001.png", "vol1/002.png"]),
            "drop/SeriesA/vol1/001.png": png_bytes(),
            "drop/SeriesA/vol1/002.png": png_bytes(),
            "drop/SeriesA/notes.txt": b"hello",
        }
    )
    return root / "drop" / "SeriesA"


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Import manga volumes" in result.output
    for command in ("import", "pair", "list", "config"):
        assert command in result.output


def test_pair_json_previews_groups(
    tmp_path: Path, write_tree, mokuro_bytes, png_bytes
) -> None:
    runner = CliRunner()
    drop = _drop(write_tree, mokuro_bytes, png_bytes)

    result = runner.invoke(cli, ["pair", str(drop), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["routing"] == "direct"
    (pairing,) = payload["pairings"]
    assert pairing["base_path"] == "SeriesA/vol1"
    assert pairing["type"] == "directory"
    assert pairing["metadata"] == "vol1.mokuro"
    assert pairing["files"] == 2
    assert payload["ignored"] == ["SeriesA/notes.txt"]


def test_import_json_then_list(tmp_path: Path, write_tree, mokuro_bytes, png_bytes) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    drop = _drop(write_tree, mokuro_bytes, png_bytes)
    library = tmp_path / "library"

    imported = runner.invoke(
        cli, ["import", str(drop), "--library", str(library), "--yes", "--json"], env=env
    )

    assert imported.exit_code == 0, imported.output
    payload = json.loads(imported.output)
    assert payload["success"] is True
    assert payload["imported"] == 1
    assert payload["library"] == str(library)

    listed = runner.invoke(cli, ["list", "--library", str(library), "--json"], env=env)

    assert listed.exit_code == 0
    volumes = json.loads(listed.output)["volumes"]
    assert [(v["series_title"], v["volume_title"]) for v in volumes] == [("Series", "Volume 1")]
    assert (tmp_path / ".mangadrop" / "mangadrop.log").exists()


def test_duplicate_import_exits_with_error(
    tmp_path: Path, write_tree, mokuro_bytes, png_bytes
) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    drop = _drop(write_tree, mokuro_bytes, png_bytes)
    library = tmp_path / "library"

    runner.invoke(cli, ["import", str(drop), "--library", str(library), "--yes"], env=env)
    again = runner.invoke(cli, ["import", str(drop), "--library", str(library), "--yes"], env=env)

    assert again.exit_code == 1
    assert 'Volume "Volume 1" already exists' in again.output
    assert "Import finished with errors." in again.output


def test_import_json_without_volumes_fails(tmp_path: Path, write_tree) -> None:
    runner = CliRunner()
    root = write_tree({"drop/readme.txt": b"nothing here"})

    result = runner.invoke(
        cli,
        ["import", str(root / "drop"), "--library", str(tmp_path / "library"), "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["success"] is False
    assert payload["errors"] == ["No importable volumes found"]


def test_list_reports_empty_library(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli, ["list", "--library", str(tmp_path / "empty")], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0
    assert "No volumes stored" in result.output
