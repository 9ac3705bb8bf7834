"""
stage-planner — repository collaborators

File: src/stage_planner/repository/__init__.py
Last updated: 2026-10-17

Purpose
- Turn a repository checkout into planner inputs: project list, dependency
  graph, repository settings, and the directly selected project set.

Functional requirements
- Malformed manifests and settings fail with ``MalformedInputError`` naming the file.
"""

from stage_planner.repository.discovery import (
    DEFAULT_IGNORE_DIRS,
    DEFAULT_MARKER_FILES,
    DiscoveredProject,
    build_dependency_graph,
    discover_projects,
    extract_dependencies,
)
from stage_planner.repository.manifests import ProjectManifest, load_manifest
from stage_planner.repository.selection import normalize_changed_file, select_projects
from stage_planner.repository.settings import (
    DEFAULT_SETTINGS_FILE,
    RepositorySettings,
    load_repository_settings,
)

__all__ = [
    "DEFAULT_IGNORE_DIRS",
    "DEFAULT_MARKER_FILES",
    "DEFAULT_SETTINGS_FILE",
    "DiscoveredProject",
    "ProjectManifest",
    "RepositorySettings",
    "build_dependency_graph",
    "discover_projects",
    "extract_dependencies",
    "load_manifest",
    "load_repository_settings",
    "normalize_changed_file",
    "select_projects",
]
