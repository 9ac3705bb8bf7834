"""
stage-planner — runtime config loader.

File: src/stage_planner/config/loader.py
Last updated: 2026-10-17

Purpose
- Resolve the effective planner config from layered sources.

Functional requirements
- Layers apply in order defaults, ``planner.toml``, ``PLANNER_*`` env, CLI flags;
  later layers win and every layer is validated as soon as it is applied.
- Every scalar or list field in the defaults has exactly one env variable.
- ``observability.log_dir`` is resolved relative to the config file.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from stage_planner.config.schema import (
    DEFAULT_CONFIG,
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "planner.toml"
ENV_PREFIX: Final[str] = "PLANNER_"

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


class ConfigLoadError(ValueError):
    """Raised when a config source cannot be read or an override cannot be coerced."""


@dataclass(frozen=True, slots=True)
class EnvBinding:
    """One ``PLANNER_*`` variable and the config field it overrides."""

    name: str
    path: tuple[str, ...]
    default: object

    @property
    def field(self) -> str:
        return ".".join(self.path)

    def coerce(self, raw: str) -> object:
        """Convert the raw variable text to the type of the default value."""
        text = raw.strip()
        if isinstance(self.default, bool):
            lowered = text.lower()
            if lowered in _TRUE_WORDS:
                return True
            if lowered in _FALSE_WORDS:
                return False
            raise ConfigLoadError(
                f"{self.name} -> {self.field} must be a boolean (true/false/1/0/yes/no/on/off)"
            )
        if isinstance(self.default, int):
            try:
                return int(text)
            except ValueError as exc:
                raise ConfigLoadError(f"{self.name} -> {self.field} must be an integer") from exc
        if isinstance(self.default, list):
            return [item.strip() for item in text.split(",") if item.strip()]
        return text


def env_bindings() -> tuple[EnvBinding, ...]:
    """All supported env variables, sorted by name."""
    bindings = (
        EnvBinding(
            name=ENV_PREFIX + "_".join(part.upper() for part in path),
            path=path,
            default=value,
        )
        for path, value in _leaves(DEFAULT_CONFIG)
    )
    return tuple(sorted(bindings, key=lambda binding: binding.name))


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
    base_dir: str | Path | None = None,
) -> dict[str, Any]:
    """Return the validated effective config.

    Without an explicit ``config_path``, ``planner.toml`` in ``base_dir`` (default:
    the working directory) is read when it exists. CLI overrides use dotted keys
    such as ``"pipeline.capacity"``; ``None`` values are skipped.
    """
    path = _config_file_path(config_path, base_dir)
    layers = (
        _read_config_file(path, required=config_path is not None),
        _env_layer(os.environ if environ is None else environ),
        _cli_layer(cli_overrides or {}),
    )

    effective = default_config()
    for layer in layers:
        effective = assert_valid_config(merge_config(effective, layer))
    return assert_valid_config(normalize_paths(effective, base_dir=path.parent))


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Copy of ``config`` with relative path fields anchored at ``base_dir``."""
    normalized = merge_config({}, config)
    for field_path in PATH_FIELDS:
        section: object = normalized
        for part in field_path[:-1]:
            section = section.get(part) if isinstance(section, dict) else None
        if not isinstance(section, dict):
            continue
        raw = section.get(field_path[-1])
        if isinstance(raw, str):
            section[field_path[-1]] = _anchor(raw, base_dir)
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Deterministic single-line JSON of the effective config."""
    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _config_file_path(config_path: str | Path | None, base_dir: str | Path | None) -> Path:
    if config_path is not None:
        return Path(config_path).expanduser().resolve()
    root = Path(base_dir) if base_dir is not None else Path.cwd()
    return (root / DEFAULT_CONFIG_FILE).resolve()


def _read_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.is_file():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for binding in env_bindings():
        raw = environ.get(binding.name)
        if raw is not None:
            layer = merge_config(layer, _nest(binding.path, binding.coerce(raw)))
    return layer


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for key in sorted(overrides):
        value = overrides[key]
        if value is None:
            continue
        path = tuple(part for part in key.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        layer = merge_config(layer, _nest(path, value))
    return layer


def _leaves(
    payload: Mapping[str, object], prefix: tuple[str, ...] = ()
) -> Iterator[tuple[tuple[str, ...], object]]:
    for key, value in payload.items():
        if isinstance(value, Mapping):
            yield from _leaves(value, (*prefix, key))
        else:
            yield (*prefix, key), value


def _nest(path: tuple[str, ...], value: object) -> dict[str, Any]:
    payload: dict[str, Any] = {path[-1]: value}
    for part in reversed(path[:-1]):
        payload = {part: payload}
    return payload


def _anchor(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "EnvBinding",
    "dump_effective_config",
    "env_bindings",
    "load_config",
    "normalize_paths",
]
