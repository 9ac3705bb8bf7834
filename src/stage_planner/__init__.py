"""
stage-planner — dependency-leveled CI build planning.

File: src/stage_planner/__init__.py
Last updated: 2026-10-17

Purpose
- Package root. Decides which projects a CI run builds and assigns each one to a
  pipeline stage so that every project builds after its dependencies.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
