"""End-to-end planning: selection, closure, leveling, and stage emission."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from stage_planner.constants import DEFAULT_STAGE_CAPACITY
from stage_planner.domain.models import BuildPlan, Selection
from stage_planner.observability.context import RunContext, resolve_context
from stage_planner.planning import (
    DependencyGraph,
    compute_build_also,
    compute_levels,
    compute_prerequisites,
    emit_stages,
)
from stage_planner.repository import (
    DEFAULT_IGNORE_DIRS,
    DEFAULT_MARKER_FILES,
    DEFAULT_SETTINGS_FILE,
    DiscoveredProject,
    build_dependency_graph,
    discover_projects,
    load_repository_settings,
    select_projects,
)


@dataclass(frozen=True, slots=True)
class PlannerOptions:
    """Runtime knobs resolved from the effective config."""

    capacity: int = DEFAULT_STAGE_CAPACITY
    include_upstream_dependencies: bool = False
    marker_files: tuple[str, ...] = DEFAULT_MARKER_FILES
    ignore_dirs: tuple[str, ...] = DEFAULT_IGNORE_DIRS
    settings_file: str = DEFAULT_SETTINGS_FILE

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> PlannerOptions:
        pipeline = config.get("pipeline", {})
        discovery = config.get("discovery", {})
        return cls(
            capacity=int(pipeline.get("capacity", DEFAULT_STAGE_CAPACITY)),
            include_upstream_dependencies=bool(
                pipeline.get("include_upstream_dependencies", False)
            ),
            marker_files=tuple(discovery.get("marker_files", DEFAULT_MARKER_FILES)),
            ignore_dirs=tuple(discovery.get("ignore_dirs", DEFAULT_IGNORE_DIRS)),
            settings_file=str(discovery.get("settings_file", DEFAULT_SETTINGS_FILE)),
        )


@dataclass(frozen=True, slots=True)
class RepositorySnapshot:
    """Projects and graph discovered in one checkout."""

    root: Path
    projects: tuple[DiscoveredProject, ...]
    graph: DependencyGraph


def plan_build(
    graph: DependencyGraph,
    selection: Selection,
    capacity: int,
    *,
    include_upstream: bool = False,
    context: RunContext | None = None,
) -> BuildPlan:
    """Close, level, and emit the build for an already-made selection.

    Raises ``CyclicDependencyError`` or ``CapacityExceededError``; nothing is
    returned for a partially planned build.
    """
    ctx = resolve_context(context)
    closure = compute_build_also(selection.projects, graph, context=ctx)

    prerequisites: tuple[str, ...] = ()
    if include_upstream:
        prerequisites = compute_prerequisites(closure.projects, graph, context=ctx)

    final = list(dict.fromkeys((*closure.projects, *prerequisites)))
    build_order = compute_levels(final, graph, context=ctx)
    stages = emit_stages(build_order, capacity, context=ctx)

    plan = BuildPlan(
        selection=selection,
        closure=closure,
        dependencies={project: graph.dependencies_of(project) for project in final},
        build_order=build_order,
        stages=stages,
        capacity=capacity,
        prerequisites=prerequisites,
    )
    ctx.info(
        "planned build",
        project_count=len(plan.projects),
        depth=plan.depth,
        capacity=capacity,
    )
    return plan


def scan_repository(
    repo_root: str | os.PathLike[str],
    options: PlannerOptions,
    *,
    context: RunContext | None = None,
) -> RepositorySnapshot:
    """Discover projects under ``repo_root`` and build their dependency graph."""
    ctx = resolve_context(context)
    root = Path(repo_root).resolve(strict=True)
    projects = discover_projects(
        root,
        marker_files=options.marker_files,
        ignore_dirs=options.ignore_dirs,
    )
    graph = build_dependency_graph(projects)
    ctx.info("discovered projects", project_count=len(projects), root=root.as_posix())
    return RepositorySnapshot(root=root, projects=projects, graph=graph)


def plan_repository(
    repo_root: str | os.PathLike[str],
    options: PlannerOptions,
    *,
    modified_files: Iterable[str] = (),
    build_all: bool = False,
    context: RunContext | None = None,
) -> BuildPlan:
    """Plan the build for a repository checkout and a list of changed files."""
    ctx = resolve_context(context)
    snapshot = scan_repository(repo_root, options, context=ctx)
    settings = load_repository_settings(snapshot.root / options.settings_file)
    selection = select_projects(
        snapshot.projects,
        modified_files,
        settings,
        build_all=build_all,
        context=ctx,
    )
    return plan_build(
        snapshot.graph,
        selection,
        options.capacity,
        include_upstream=options.include_upstream_dependencies,
        context=ctx,
    )


__all__ = [
    "PlannerOptions",
    "RepositorySnapshot",
    "plan_build",
    "plan_repository",
    "scan_repository",
]
