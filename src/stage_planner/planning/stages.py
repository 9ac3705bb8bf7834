"""Mapping of build levels onto the pipeline's fixed stage slots."""

from __future__ import annotations

from stage_planner.domain.models import LeveledBuildOrder, StageOutput
from stage_planner.errors import CapacityExceededError, MalformedInputError
from stage_planner.observability.context import RunContext, resolve_context


def emit_stages(
    levels: LeveledBuildOrder,
    capacity: int,
    *,
    depth: int | None = None,
    context: RunContext | None = None,
) -> tuple[StageOutput, ...]:
    """
    Emit one batch per stage slot, from stage ``capacity`` down to stage 1.

    The deepest level lands in the highest slot. Empty levels do not consume a
    slot, so populated levels are packed densely from the top; slots left over
    at the bottom are emitted empty. A declared ``depth`` may exceed the order's
    own depth but never undercut it.
    """
    ctx = resolve_context(context)
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
        raise ValueError(f"pipeline capacity must be an integer >= 1, got {capacity!r}")

    resolved_depth = levels.depth if depth is None else depth
    if resolved_depth < levels.depth:
        raise MalformedInputError(
            f"declared depth {resolved_depth} is shallower than "
            f"the build order depth {levels.depth}"
        )
    if resolved_depth > capacity:
        raise CapacityExceededError(resolved_depth, capacity)

    stages: list[StageOutput] = []
    step = capacity
    for level in range(resolved_depth, 0, -1):
        projects = levels.level(level)
        if not projects:
            ctx.debug("skipping empty build level", level=level)
            continue
        stages.append(StageOutput(stage_index=step, projects=tuple(projects)))
        step -= 1

    for remaining in range(step, 0, -1):
        stages.append(StageOutput(stage_index=remaining))

    ctx.debug(
        "emitted pipeline stages",
        capacity=capacity,
        depth=resolved_depth,
        populated=capacity - step,
    )
    return tuple(stages)


__all__ = ["emit_stages"]
