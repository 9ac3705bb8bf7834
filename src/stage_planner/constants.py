"""Stable constants shared across the planner."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Schema version of planner.toml.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Stage slots defined by the default workflow template.
DEFAULT_STAGE_CAPACITY: Final[int] = 5

DEFAULT_LOG_DIR: Final[PurePosixPath] = PurePosixPath(".stage-planner/logs")

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_LOG_DIR",
    "DEFAULT_STAGE_CAPACITY",
]
