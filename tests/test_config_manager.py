"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from mangadrop.config import (
    ConfigError,
    ConfigManager,
    MangadropConfig,
    flatten_for_env,
    resolve_with_precedence,
)


def _fresh_manager(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, env: dict[str, str] | None = None
) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager(env=env or {})


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".mangadrop" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "mangadrop configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, MangadropConfig)


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env = {
        "MANGADROP__IMPORTS__EXTRACT_BATCH_SIZE": "8",
        "MANGADROP__THUMBNAILS__QUALITY": "70",
    }
    manager = _fresh_manager(tmp_path, monkeypatch, env)
    manager.ensure_exists()

    manager.save({"imports": {"extract_batch_size": 3}, "library": {"path": "/srv/manga"}})

    config = manager.load(cli_overrides={"thumbnails.quality": 60})

    assert config.library.path == "/srv/manga"
    # environment beats the file
    assert config.imports.extract_batch_size == 8
    # CLI overrides take precedence over environment
    assert config.thumbnails.quality == 60


def test_environment_is_ignored_when_excluded(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(
        tmp_path, monkeypatch, {"MANGADROP__IMPORTS__IMAGE_ONLY_ARCHIVES": "true"}
    )

    assert manager.load().imports.image_only_archives is True
    assert manager.load(include_env=False).imports.image_only_archives is False


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_unknown_keys_are_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"imports": {"not_a_setting": 1}})

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_round_trips_defaults() -> None:
    flat = flatten_for_env(MangadropConfig())

    assert flat["MANGADROP__IMPORTS__EXTRACT_BATCH_SIZE"] == "5"
    assert flat["MANGADROP__IMPORTS__IMAGE_ONLY_ARCHIVES"] == "False"
    assert flat["MANGADROP__LIBRARY__PATH"] == "~/.mangadrop/library"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=MangadropConfig(),
            file_overrides={"imports": {"extract_batch_size": "not-an-int"}},
        )

    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=MangadropConfig(),
            cli_overrides={"imports.extract_batch_size": 0},
        )
