"""Change-based selection of the projects to build directly."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable, Sequence
from pathlib import PurePosixPath

from stage_planner.domain.models import Selection, SelectionReason
from stage_planner.errors import MalformedInputError
from stage_planner.observability.context import RunContext, resolve_context
from stage_planner.repository.discovery import DiscoveredProject
from stage_planner.repository.settings import RepositorySettings


def normalize_changed_file(raw: str) -> PurePosixPath | None:
    """Repository-relative POSIX path for a changed-file entry; ``None`` for blanks."""
    text = raw.strip().replace("\\", "/")
    while text.startswith("./"):
        text = text[2:]
    text = text.lstrip("/")
    if not text:
        return None
    return PurePosixPath(text)


def select_projects(
    projects: Sequence[DiscoveredProject],
    modified_files: Iterable[str],
    settings: RepositorySettings,
    *,
    build_all: bool = False,
    context: RunContext | None = None,
) -> Selection:
    """
    Decide which projects are selected directly, before the build-also closure.

    Precedence: an explicit request for everything, ``alwaysBuildAllProjects``,
    the explicit ``projects`` list, a changed file matching ``buildAllPatterns``,
    and finally ownership of each changed file.
    """
    ctx = resolve_context(context)
    universe = tuple(project.name for project in projects)
    changed = _normalize_all(modified_files)

    if build_all:
        selection = Selection(universe, SelectionReason.REQUESTED_ALL)
    elif settings.always_build_all_projects:
        selection = Selection(universe, SelectionReason.ALWAYS_BUILD_ALL)
    elif settings.projects:
        selection = Selection(_explicit(universe, settings.projects), SelectionReason.EXPLICIT)
    else:
        triggers = tuple(
            path.as_posix()
            for path in changed
            if _matches_any(path, settings.build_all_patterns)
        )
        if triggers:
            selection = Selection(universe, SelectionReason.BUILD_ALL_PATTERN, triggers)
        else:
            owned = _owned_projects(projects, changed)
            selection = Selection(
                tuple(name for name in universe if name in owned),
                SelectionReason.CHANGED_FILES,
                tuple(path.as_posix() for path in changed),
            )

    ctx.info(
        "selected projects",
        reason=str(selection.reason),
        selected=list(selection.projects),
        changed_file_count=len(changed),
    )
    return selection


def _normalize_all(modified_files: Iterable[str]) -> tuple[PurePosixPath, ...]:
    seen: dict[PurePosixPath, None] = {}
    for raw in modified_files:
        path = normalize_changed_file(raw)
        if path is not None:
            seen.setdefault(path, None)
    return tuple(seen)


def _explicit(universe: Sequence[str], requested: Sequence[str]) -> tuple[str, ...]:
    known = set(universe)
    unknown = [name for name in requested if name not in known]
    if unknown:
        raise MalformedInputError(
            f"unknown project(s) in explicit selection: {', '.join(unknown)}",
            source="settings:projects",
        )
    wanted = set(requested)
    return tuple(name for name in universe if name in wanted)


def _matches_any(path: PurePosixPath, patterns: Iterable[str]) -> bool:
    text = path.as_posix()
    return any(fnmatch.fnmatchcase(text, pattern) for pattern in patterns)


def _owned_projects(
    projects: Sequence[DiscoveredProject],
    changed: Sequence[PurePosixPath],
) -> set[str]:
    owned: set[str] = set()
    for path in changed:
        # nested projects: the deepest folder owns the file
        owners = [project for project in projects if project.owns(path)]
        if owners:
            deepest = max(owners, key=lambda project: len(project.path.parts))
            owned.add(deepest.name)
        for project in projects:
            if _matches_any(path, project.manifest.watch):
                owned.add(project.name)
    return owned


__all__ = ["normalize_changed_file", "select_projects"]
