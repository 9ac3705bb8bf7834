"""
stage-planner — configuration schema and validation.

File: src/stage_planner/config/schema.py
Last updated: 2026-10-17

Purpose
- Own the built-in defaults and the field rules every effective config must satisfy.

Functional requirements
- Report every problem at once as (dotted field path, message) pairs.
- Unknown sections and fields are errors so typos in planner.toml never pass silently.
- Validation returns a normalized copy (trimmed strings, upper-case log level,
  de-duplicated lists); the input is never mutated.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypedDict

from stage_planner.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_LOG_DIR,
    DEFAULT_STAGE_CAPACITY,
)
from stage_planner.repository.discovery import DEFAULT_IGNORE_DIRS, DEFAULT_MARKER_FILES
from stage_planner.repository.settings import DEFAULT_SETTINGS_FILE

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION

# Fields holding filesystem paths; the loader anchors them at the config file.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (("observability", "log_dir"),)

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")


class MetaConfig(TypedDict):
    schema_version: int


class PipelineConfig(TypedDict):
    capacity: int
    include_upstream_dependencies: bool


class DiscoveryConfig(TypedDict):
    marker_files: list[str]
    ignore_dirs: list[str]
    settings_file: str


class ObservabilityConfig(TypedDict):
    log_level: str
    log_dir: str
    log_to_stderr: bool


class PlannerConfig(TypedDict):
    meta: MetaConfig
    pipeline: PipelineConfig
    discovery: DiscoveryConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[PlannerConfig] = {
    "meta": {"schema_version": ConfigSchemaVersion},
    "pipeline": {
        "capacity": DEFAULT_STAGE_CAPACITY,
        "include_upstream_dependencies": False,
    },
    "discovery": {
        "marker_files": list(DEFAULT_MARKER_FILES),
        "ignore_dirs": list(DEFAULT_IGNORE_DIRS),
        "settings_file": DEFAULT_SETTINGS_FILE,
    },
    "observability": {
        "log_level": "WARNING",
        "log_dir": DEFAULT_LOG_DIR.as_posix(),
        "log_to_stderr": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """One invalid field."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Outcome of ``validate_config``; ``config`` is ``None`` whenever issues exist."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """The effective config broke at least one field rule."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {issue.path}: {issue.message}" for issue in self.issues]
        super().__init__("invalid config:\n" + ("\n".join(lines) or "- <root>: rejected"))


class _FieldError(Exception):
    """Raised by a field rule; ``suffix`` narrows the path, e.g. ``[2]``."""

    def __init__(self, message: str, suffix: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.suffix = suffix


_Rule = Callable[[object], object]


def _type_name(value: object) -> str:
    return type(value).__name__


def _text(value: object) -> str:
    if not isinstance(value, str):
        raise _FieldError(f"expected string, got {_type_name(value)}")
    stripped = value.strip()
    if not stripped:
        raise _FieldError("must not be empty")
    return stripped


def _path_text(value: object) -> str:
    text = _text(value)
    if "\x00" in text:
        raise _FieldError("must not contain NUL bytes")
    return text


def _flag(value: object) -> bool:
    if not isinstance(value, bool):
        raise _FieldError(f"expected boolean, got {_type_name(value)}")
    return value


def _integer(minimum: int) -> _Rule:
    def rule(value: object) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _FieldError(f"expected integer, got {_type_name(value)}")
        if value < minimum:
            raise _FieldError(f"must be >= {minimum}")
        return value

    return rule


def _text_list(*, min_items: int = 0, file_names: bool = False) -> _Rule:
    def rule(value: object) -> list[str]:
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            raise _FieldError(f"expected list of strings, got {_type_name(value)}")
        unique: dict[str, None] = {}
        for index, item in enumerate(value):
            try:
                text = _text(item)
            except _FieldError as exc:
                raise _FieldError(exc.message, f"[{index}]") from exc
            if file_names and ("/" in text or "\\" in text):
                raise _FieldError("must be a file name, not a path", f"[{index}]")
            unique.setdefault(text, None)
        if len(unique) < min_items:
            raise _FieldError(f"must contain at least {min_items} item(s)")
        return list(unique)

    return rule


def _log_level(value: object) -> str:
    level = _text(value).upper()
    if level not in LOG_LEVELS:
        raise _FieldError(
            f"invalid value {value!r}; expected one of: {', '.join(sorted(LOG_LEVELS))}"
        )
    return level


def _schema_version(value: object) -> int:
    version = _integer(1)(value)
    if version != ConfigSchemaVersion:
        raise _FieldError(migration_guidance(version))
    return version


_SECTIONS: Final[dict[str, dict[str, _Rule]]] = {
    "meta": {"schema_version": _schema_version},
    "pipeline": {
        "capacity": _integer(1),
        "include_upstream_dependencies": _flag,
    },
    "discovery": {
        "marker_files": _text_list(min_items=1, file_names=True),
        "ignore_dirs": _text_list(),
        "settings_file": _path_text,
    },
    "observability": {
        "log_level": _log_level,
        "log_dir": _path_text,
        "log_to_stderr": _flag,
    },
}


def default_config() -> PlannerConfig:
    """Fresh deep copy of the built-in defaults."""
    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Human hint for a ``meta.schema_version`` that does not match this release."""
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade planner.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade stage-planner"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; mappings merge, everything else replaces."""
    merged: dict[str, Any] = {key: _copied(value) for key, value in base.items()}
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = _copied(value)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Check ``config`` against every section rule and collect all issues."""
    issues: list[ConfigValidationIssue] = []
    normalized = _check_mapping(config, "", _SECTIONS, issues)
    if issues or normalized is None:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Normalized copy of ``config``; raises ``ConfigValidationError`` on any issue."""
    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _check_mapping(
    payload: object,
    path: str,
    rules: Mapping[str, Mapping[str, _Rule]] | Mapping[str, _Rule],
    issues: list[ConfigValidationIssue],
) -> dict[str, Any] | None:
    where = path or "<root>"
    if not isinstance(payload, Mapping):
        issues.append(ConfigValidationIssue(where, f"expected object, got {_type_name(payload)}"))
        return None
    if any(not isinstance(key, str) for key in payload):
        issues.append(ConfigValidationIssue(where, "object keys must be strings"))
        return None

    for key in sorted(set(payload) - set(rules)):
        issues.append(ConfigValidationIssue(_join(path, key), "unknown field"))

    normalized: dict[str, Any] = {}
    for key, rule in rules.items():
        field_path = _join(path, key)
        if key not in payload:
            issues.append(ConfigValidationIssue(field_path, "missing required field"))
            continue
        if isinstance(rule, Mapping):
            section = _check_mapping(payload[key], field_path, rule, issues)
            if section is not None:
                normalized[key] = section
            continue
        try:
            normalized[key] = rule(payload[key])
        except _FieldError as exc:
            issues.append(ConfigValidationIssue(field_path + exc.suffix, exc.message))
    return normalized


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _copied(value: object) -> Any:
    if isinstance(value, Mapping):
        return {key: _copied(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_copied(item) for item in value]
    return value


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "PlannerConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
