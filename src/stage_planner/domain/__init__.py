"""Planning domain types: selections, closures, build orders, and stage batches."""

from stage_planner.domain.models import (
    BuildAlsoResult,
    BuildPlan,
    LeveledBuildOrder,
    Selection,
    SelectionReason,
    StageOutput,
)

__all__ = [
    "BuildAlsoResult",
    "BuildPlan",
    "LeveledBuildOrder",
    "Selection",
    "SelectionReason",
    "StageOutput",
]
