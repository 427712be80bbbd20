"""CLI tests for configuration commands."""

import os
from pathlib import Path
from typing import Any

from click.testing import CliRunner

from mangadrop.cli import cli
from mangadrop.config import ConfigManager


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    return env


def _config_path(tmp_path: Path) -> Path:
    return tmp_path / ".mangadrop" / "config.yaml"


def _manager(tmp_path: Path) -> ConfigManager:
    return ConfigManager(config_path=_config_path(tmp_path), env={})


def test_config_view_creates_and_displays_config(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "view"], env=env)

    assert result.exit_code == 0
    assert "imports:" in result.output
    assert _config_path(tmp_path).exists()


def test_config_set_updates_value_and_writes_diff(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(
        cli, ["config", "set", "imports.extract_batch_size", "--value", "7"], env=env
    )

    assert result.exit_code == 0
    assert "Updated imports.extract_batch_size." in result.output

    config = _manager(tmp_path).load(include_env=False)
    assert config.imports.extract_batch_size == 7

    repeat = runner.invoke(
        cli, ["config", "set", "imports.extract_batch_size", "--value", "7"], env=env
    )
    assert repeat.exit_code == 0
    assert "No changes applied" in repeat.output


def test_config_set_rejects_invalid_values(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(
        cli, ["config", "set", "thumbnails.quality", "--value", "500"], env=env
    )

    assert result.exit_code != 0
    assert _manager(tmp_path).load(include_env=False).thumbnails.quality == 85


def test_config_edit_applies_changes(tmp_path: Path, monkeypatch) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    manager = _manager(tmp_path)
    manager.ensure_exists()

    def _mock_edit(text: str, **_: Any) -> str:
        return text.replace("image_only_archives: false", "image_only_archives: true")

    monkeypatch.setattr("mangadrop.cli.click.edit", _mock_edit)

    result = runner.invoke(cli, ["config", "edit"], env=env)

    assert result.exit_code == 0
    assert "updated" in result.output.lower()

    config = manager.load(include_env=False)
    assert config.imports.image_only_archives is True
