"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Iterable, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import MangadropConfig

ENV_PREFIX = "MANGADROP__"


def resolve_with_precedence(
    *,
    defaults: MangadropConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> MangadropConfig:
    """Layer override sources on top of ``defaults`` and validate the result.

    Later sources win: file values replace defaults, environment values replace
    file values, and CLI values replace everything else. Keys may be nested
    mappings or dotted paths such as ``imports.extract_batch_size``.

    Raises:
        ConfigError: If a source is malformed or the merged values fail validation.
    """
    merged = defaults.model_dump(mode="python")
    layers = (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    )
    for source_name, source in layers:
        if source is None:
            continue
        merged = _deep_merge(merged, expand_dotted(source, source_name=source_name))

    try:
        return MangadropConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def expand_dotted(source: Mapping[str, Any], *, source_name: str = "config") -> dict[str, Any]:
    """Expand dotted keys of ``source`` into nested dictionaries."""
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = expand_dotted(value, source_name=source_name)
        _set_path(result, key.split("."), value, source_name=source_name)
    return result


def env_to_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``MANGADROP__SECTION__KEY`` variables into a nested override mapping."""
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        _set_path(overrides, segments, parse_scalar(raw_value), source_name="environment")
    return overrides


def parse_scalar(raw_value: str) -> Any:
    """Interpret a string the way YAML would, falling back to the raw text."""
    try:
        return yaml.safe_load(raw_value)
    except yaml.YAMLError:
        return raw_value


def flatten_for_env(config: MangadropConfig) -> Dict[str, str]:
    """Flatten the config into ``MANGADROP__SECTION__KEY`` environment variable mappings."""
    flat: Dict[str, str] = {}
    for path, value in _walk(config.model_dump(mode="python"), []):
        env_key = ENV_PREFIX + "__".join(part.upper() for part in path)
        if isinstance(value, list):
            flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
        else:
            flat[env_key] = "null" if value is None else str(value)
    return flat


def _walk(value: Any, prefix: list[str]) -> Iterable[tuple[list[str], Any]]:
    if isinstance(value, dict):
        for key, child in value.items():
            yield from _walk(child, prefix + [str(key)])
    else:
        yield prefix, value


def _set_path(target: dict[str, Any], path: list[str], value: Any, *, source_name: str) -> None:
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            joined = ".".join(path)
            raise ConfigError(
                f"{source_name.capitalize()} override for {joined} conflicts with existing value."
            )
        node = existing
    leaf = path[-1]
    if isinstance(value, dict) and isinstance(node.get(leaf), dict):
        node[leaf] = _deep_merge(node[leaf], value)
    else:
        node[leaf] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "resolve_with_precedence",
    "expand_dotted",
    "env_to_overrides",
    "parse_scalar",
    "flatten_for_env",
]
