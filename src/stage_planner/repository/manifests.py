"""Per-project manifest parsing."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from stage_planner.errors import MalformedInputError
from stage_planner.repository.documents import (
    as_string_list,
    load_document,
    reject_unknown_keys,
)

MANIFEST_FIELDS: Final[frozenset[str]] = frozenset({"name", "dependencies", "watch"})


@dataclass(frozen=True, slots=True)
class ProjectManifest:
    """Declared settings of one project folder."""

    name: str | None = None
    dependencies: tuple[str, ...] = ()
    watch: tuple[str, ...] = ()


def load_manifest(path: Path) -> ProjectManifest:
    """Load and validate the manifest at ``path``."""
    source = path.as_posix()
    payload = load_document(path)
    reject_unknown_keys(payload, MANIFEST_FIELDS, source=source)

    name: str | None = None
    if "name" in payload:
        raw_name = payload["name"]
        if not isinstance(raw_name, str) or not raw_name.strip():
            raise MalformedInputError("must be a non-empty string", source=f"{source}:name")
        name = raw_name.strip()

    dependencies: tuple[str, ...] = ()
    if "dependencies" in payload and payload["dependencies"] is not None:
        dependencies = as_string_list(payload["dependencies"], source=f"{source}:dependencies")

    watch: tuple[str, ...] = ()
    if "watch" in payload and payload["watch"] is not None:
        watch = as_string_list(payload["watch"], source=f"{source}:watch")

    return ProjectManifest(name=name, dependencies=dependencies, watch=watch)


__all__ = ["MANIFEST_FIELDS", "ProjectManifest", "load_manifest"]
