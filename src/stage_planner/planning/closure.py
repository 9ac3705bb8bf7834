"""Build-also closure over the dependency graph."""

from __future__ import annotations

from collections.abc import Iterable

from stage_planner.domain.models import BuildAlsoResult
from stage_planner.errors import MalformedInputError
from stage_planner.observability.context import RunContext, resolve_context
from stage_planner.planning.graph import DependencyGraph


def compute_build_also(
    selected: Iterable[str],
    graph: DependencyGraph,
    *,
    context: RunContext | None = None,
) -> BuildAlsoResult:
    """
    Find every project that must be rebuilt because it depends on a selected one.

    For each selected project the result maps to its transitive dependents that
    were not selected themselves. Only dependents are followed; prerequisites of
    the selection are left to :func:`compute_prerequisites`.
    """
    ctx = resolve_context(context)
    ordered = _dedupe_known(selected, graph)
    selected_set = set(ordered)

    build_also: dict[str, tuple[str, ...]] = {}
    for project in ordered:
        extra = tuple(
            dependent
            for dependent in graph.transitive_dependents(project)
            if dependent not in selected_set
        )
        if extra:
            build_also[project] = extra

    result = BuildAlsoResult(selected=ordered, build_also=build_also)
    ctx.debug(
        "computed build-also closure",
        selected_count=len(ordered),
        added=list(result.added),
    )
    return result


def compute_prerequisites(
    projects: Iterable[str],
    graph: DependencyGraph,
    *,
    context: RunContext | None = None,
) -> tuple[str, ...]:
    """Transitive dependencies of ``projects`` that are not already in ``projects``."""
    ctx = resolve_context(context)
    ordered = _dedupe_known(projects, graph)
    present = set(ordered)

    found: set[str] = set()
    for project in ordered:
        found.update(graph.transitive_dependencies(project))
    prerequisites = tuple(sorted(found - present, key=graph.sort_key))

    ctx.debug("computed upstream prerequisites", added=list(prerequisites))
    return prerequisites


def _dedupe_known(projects: Iterable[str], graph: DependencyGraph) -> tuple[str, ...]:
    ordered: dict[str, None] = {}
    for project in projects:
        if project not in graph:
            raise MalformedInputError(f"selected project {project!r} is not a known project")
        ordered.setdefault(project, None)
    return tuple(ordered)


__all__ = ["compute_build_also", "compute_prerequisites"]
