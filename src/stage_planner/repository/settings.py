"""Repository-wide build settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from stage_planner.errors import MalformedInputError
from stage_planner.repository.documents import (
    as_string_list,
    load_document,
    reject_unknown_keys,
)

DEFAULT_SETTINGS_FILE: Final[str] = "build-settings.json"
SETTINGS_FIELDS: Final[frozenset[str]] = frozenset(
    {"alwaysBuildAllProjects", "projects", "buildAllPatterns"}
)


@dataclass(frozen=True, slots=True)
class RepositorySettings:
    """Settings that decide which projects are selected directly.

    ``projects`` is an explicit override list; ``build_all_patterns`` are
    repository-relative globs whose changes force a full build.
    """

    always_build_all_projects: bool = False
    projects: tuple[str, ...] = ()
    build_all_patterns: tuple[str, ...] = ()

    @classmethod
    def from_mapping(
        cls,
        payload: dict[str, Any],
        *,
        source: str = "settings",
    ) -> RepositorySettings:
        reject_unknown_keys(payload, SETTINGS_FIELDS, source=source)

        always = payload.get("alwaysBuildAllProjects", False)
        if not isinstance(always, bool):
            raise MalformedInputError(
                f"expected boolean, got {type(always).__name__}",
                source=f"{source}:alwaysBuildAllProjects",
            )

        projects: tuple[str, ...] = ()
        if payload.get("projects") is not None:
            projects = as_string_list(payload["projects"], source=f"{source}:projects")

        patterns: tuple[str, ...] = ()
        if payload.get("buildAllPatterns") is not None:
            patterns = as_string_list(
                payload["buildAllPatterns"], source=f"{source}:buildAllPatterns"
            )

        return cls(
            always_build_all_projects=always,
            projects=projects,
            build_all_patterns=patterns,
        )


def load_repository_settings(path: Path, *, required: bool = False) -> RepositorySettings:
    """Load settings from ``path``; a missing optional file yields defaults."""
    if not path.exists():
        if required:
            raise MalformedInputError("settings file not found", source=path.as_posix())
        return RepositorySettings()
    return RepositorySettings.from_mapping(load_document(path), source=path.as_posix())


__all__ = [
    "DEFAULT_SETTINGS_FILE",
    "SETTINGS_FIELDS",
    "RepositorySettings",
    "load_repository_settings",
]
