"""
stage-planner — planning core

File: src/stage_planner/planning/__init__.py
Last updated: 2026-10-17

Purpose
- Dependency closure, level stratification, and stage emission.

Functional requirements
- Every project's dependencies sit on strictly lower levels than the project.
- Depth beyond the pipeline's stage capacity is fatal, never truncated.

Non-functional requirements
- Pure and deterministic: the same inputs always yield the same batches.
"""

from __future__ import annotations

from stage_planner.planning.closure import compute_build_also, compute_prerequisites
from stage_planner.planning.graph import DependencyGraph
from stage_planner.planning.leveling import compute_levels
from stage_planner.planning.stages import emit_stages

__all__ = [
    "DependencyGraph",
    "compute_build_also",
    "compute_levels",
    "compute_prerequisites",
    "emit_stages",
]
