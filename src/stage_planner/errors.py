"""Error types raised while planning a build."""

from __future__ import annotations

from collections.abc import Iterable, Sequence


class PlanningError(ValueError):
    """Base class for fatal planning failures."""


class MalformedInputError(PlanningError):
    """Raised when project, graph, or settings input is structurally invalid."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class CyclicDependencyError(PlanningError):
    """Raised when the projects being leveled contain a dependency cycle."""

    unresolved: tuple[str, ...]
    cycles: tuple[tuple[str, ...], ...]

    def __init__(
        self,
        unresolved: Iterable[str],
        cycles: Iterable[Sequence[str]] = (),
    ) -> None:
        self.unresolved = tuple(unresolved)
        self.cycles = tuple(tuple(path) for path in cycles)

        if self.cycles:
            preview = ", ".join(" -> ".join(path) for path in self.cycles[:3])
            suffix = "..." if len(self.cycles) > 3 else ""
            message = f"dependency cycle(s) detected: {preview}{suffix}"
        else:
            message = "dependency cycle detected"
        if self.unresolved:
            message += f"; unresolved projects: {', '.join(self.unresolved)}"
        super().__init__(message)


class CapacityExceededError(PlanningError):
    """Raised when the build order is deeper than the pipeline has stages."""

    def __init__(self, depth: int, capacity: int) -> None:
        self.depth = depth
        self.capacity = capacity
        super().__init__(
            f"build order depth {depth} exceeds pipeline stage capacity {capacity}; "
            "regenerate the pipeline configuration with at least "
            f"{depth} stage(s)"
        )


__all__ = [
    "CapacityExceededError",
    "CyclicDependencyError",
    "MalformedInputError",
    "PlanningError",
]
