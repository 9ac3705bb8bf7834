"""JSON/YAML document loading for manifests and repository settings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Final

import yaml

from stage_planner.errors import MalformedInputError

YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})


def load_document(path: Path) -> dict[str, Any]:
    """Parse ``path`` as JSON, or as YAML when it has a ``.yaml``/``.yml`` suffix.

    Empty documents load as ``{}``. Anything other than a mapping at the root is
    rejected.
    """
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise MalformedInputError(f"unable to read file: {exc}", source=path.as_posix()) from exc

    if not text.strip():
        return {}

    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            parsed = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise MalformedInputError(f"invalid YAML: {exc}", source=path.as_posix()) from exc
    else:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedInputError(f"invalid JSON: {exc}", source=path.as_posix()) from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise MalformedInputError(
            f"document root must be an object, got {type(parsed).__name__}",
            source=path.as_posix(),
        )
    return parsed


def as_string_list(value: object, *, source: str) -> tuple[str, ...]:
    """Validate a list of non-empty strings, preserving order and dropping duplicates."""
    if not isinstance(value, list):
        raise MalformedInputError(
            f"expected a list of strings, got {type(value).__name__}", source=source
        )
    items: dict[str, None] = {}
    for index, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise MalformedInputError("must be a non-empty string", source=f"{source}[{index}]")
        items.setdefault(item.strip(), None)
    return tuple(items)


def reject_unknown_keys(payload: dict[str, Any], allowed: frozenset[str], *, source: str) -> None:
    unknown = sorted(key for key in payload if key not in allowed)
    if unknown:
        raise MalformedInputError(f"unknown field(s): {', '.join(unknown)}", source=source)


__all__ = ["YAML_SUFFIXES", "as_string_list", "load_document", "reject_unknown_keys"]
