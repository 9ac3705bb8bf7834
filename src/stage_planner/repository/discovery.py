"""Project discovery and dependency extraction for a repository checkout."""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Final

from stage_planner.errors import MalformedInputError
from stage_planner.planning.graph import DependencyGraph
from stage_planner.repository.manifests import ProjectManifest, load_manifest

DEFAULT_MARKER_FILES: Final[tuple[str, ...]] = ("project.json", "project.yaml", "project.yml")
DEFAULT_IGNORE_DIRS: Final[tuple[str, ...]] = (
    ".git",
    ".venv",
    "__pycache__",
    "bin",
    "node_modules",
    "obj",
)


@dataclass(frozen=True, slots=True)
class DiscoveredProject:
    """A project folder and its parsed manifest."""

    name: str
    path: PurePosixPath
    manifest_path: PurePosixPath
    manifest: ProjectManifest

    def owns(self, relative_file: PurePosixPath) -> bool:
        """Whether ``relative_file`` lies under this project's folder."""
        if self.path == PurePosixPath("."):
            return True
        return relative_file == self.path or self.path in relative_file.parents


def discover_projects(
    repo_root: str | os.PathLike[str],
    *,
    marker_files: Sequence[str] = DEFAULT_MARKER_FILES,
    ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
) -> tuple[DiscoveredProject, ...]:
    """
    Walk ``repo_root`` and return every folder holding a marker file.

    Folders are visited in sorted order so the project list is stable. When a
    folder holds several marker files, the first one in ``marker_files`` wins.
    """
    root = Path(repo_root).resolve(strict=True)
    if not root.is_dir():
        raise NotADirectoryError(f"{root!s} is not a directory")
    if not marker_files:
        raise ValueError("at least one marker file name is required")

    ignored = frozenset(ignore_dirs)
    projects: list[DiscoveredProject] = []
    seen: dict[str, PurePosixPath] = {}

    for current_dir, dir_names, file_names in os.walk(root, topdown=True, followlinks=False):
        dir_names[:] = sorted(name for name in dir_names if name not in ignored)
        present = set(file_names)
        marker = next((name for name in marker_files if name in present), None)
        if marker is None:
            continue

        current = Path(current_dir)
        relative = PurePosixPath(current.relative_to(root).as_posix())
        manifest_path = relative / marker
        manifest = load_manifest(current / marker)
        name = manifest.name or _default_name(relative, manifest_path)

        if name in seen:
            raise MalformedInputError(
                f"project name {name!r} is declared by both {seen[name]} and {relative}",
                source=manifest_path.as_posix(),
            )
        seen[name] = relative
        projects.append(
            DiscoveredProject(
                name=name,
                path=relative,
                manifest_path=manifest_path,
                manifest=manifest,
            )
        )

    return tuple(projects)


def extract_dependencies(projects: Sequence[DiscoveredProject]) -> dict[str, tuple[str, ...]]:
    """Map each project to its declared direct dependencies, validated against the universe."""
    known = {project.name for project in projects}
    dependencies: dict[str, tuple[str, ...]] = {}
    for project in projects:
        source = project.manifest_path.as_posix()
        for dependency in project.manifest.dependencies:
            if dependency == project.name:
                raise MalformedInputError(
                    f"project {project.name!r} must not depend on itself", source=source
                )
            if dependency not in known:
                raise MalformedInputError(
                    f"project {project.name!r} depends on unknown project {dependency!r}",
                    source=source,
                )
        dependencies[project.name] = project.manifest.dependencies
    return dependencies


def build_dependency_graph(projects: Sequence[DiscoveredProject]) -> DependencyGraph:
    """Dependency graph over ``projects`` in discovery order."""
    return DependencyGraph(
        (project.name for project in projects),
        extract_dependencies(projects),
    )


def _default_name(relative: PurePosixPath, manifest_path: PurePosixPath) -> str:
    # Root projects need an explicit name; the checkout folder varies between runners.
    if relative == PurePosixPath("."):
        raise MalformedInputError(
            "a manifest at the repository root must declare a name",
            source=manifest_path.as_posix(),
        )
    return relative.as_posix()


__all__ = [
    "DEFAULT_IGNORE_DIRS",
    "DEFAULT_MARKER_FILES",
    "DiscoveredProject",
    "build_dependency_graph",
    "discover_projects",
    "extract_dependencies",
]
