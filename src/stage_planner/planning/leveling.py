"""Topological stratification of a project set into build levels."""

from __future__ import annotations

from collections.abc import Iterable

from stage_planner.domain.models import LeveledBuildOrder
from stage_planner.errors import CyclicDependencyError, MalformedInputError
from stage_planner.observability.context import RunContext, resolve_context
from stage_planner.planning.graph import DependencyGraph


def compute_levels(
    projects: Iterable[str],
    graph: DependencyGraph,
    *,
    context: RunContext | None = None,
) -> LeveledBuildOrder:
    """
    Assign every project a level so that its dependencies sit on lower levels.

    Each pass places the projects whose dependencies (restricted to ``projects``)
    are all placed already. Dependencies outside ``projects`` count as built.
    Within a level, projects keep their order in ``projects``.

    Raises ``CyclicDependencyError`` when a pass makes no progress.
    """
    ctx = resolve_context(context)
    pending = _ordered_members(projects, graph)
    members = set(pending)
    requirements = {
        project: frozenset(dep for dep in graph.dependencies_of(project) if dep in members)
        for project in pending
    }

    assigned: dict[str, int] = {}
    levels: dict[int, tuple[str, ...]] = {}
    level = 0
    while pending:
        level += 1
        ready = tuple(
            project
            for project in pending
            if all(dependency in assigned for dependency in requirements[project])
        )
        if not ready:
            raise CyclicDependencyError(pending, graph.detect_cycles(within=pending))

        for project in ready:
            assigned[project] = level
        levels[level] = ready
        placed = set(ready)
        pending = [project for project in pending if project not in placed]

    build_order = LeveledBuildOrder(levels)
    ctx.debug(
        "computed build levels",
        depth=build_order.depth,
        level_sizes={str(number): len(items) for number, items in levels.items()},
    )
    return build_order


def _ordered_members(projects: Iterable[str], graph: DependencyGraph) -> list[str]:
    ordered: dict[str, None] = {}
    for project in projects:
        if project not in graph:
            raise MalformedInputError(f"cannot level unknown project {project!r}")
        ordered.setdefault(project, None)
    return list(ordered)


__all__ = ["compute_levels"]
