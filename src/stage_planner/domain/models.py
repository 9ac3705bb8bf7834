"""Immutable planning models shared by the planner, CLI, and output writers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import cast

from stage_planner.errors import MalformedInputError


class SelectionReason(StrEnum):
    ALWAYS_BUILD_ALL = "always-build-all"
    EXPLICIT = "explicit"
    BUILD_ALL_PATTERN = "build-all-pattern"
    CHANGED_FILES = "changed-files"
    REQUESTED_ALL = "requested-all"


@dataclass(frozen=True, slots=True)
class Selection:
    """Projects chosen directly for this run, before closure."""

    projects: tuple[str, ...]
    reason: SelectionReason
    triggers: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BuildAlsoResult:
    """Closure result: the merged build set plus the per-project build-also side channel."""

    selected: tuple[str, ...]
    build_also: Mapping[str, tuple[str, ...]]

    @property
    def projects(self) -> tuple[str, ...]:
        """``selected`` followed by every build-also project, first-seen order, deduplicated."""
        merged: dict[str, None] = dict.fromkeys(self.selected)
        for project in self.selected:
            for dependent in self.build_also.get(project, ()):
                merged.setdefault(dependent, None)
        return tuple(merged)

    @property
    def added(self) -> tuple[str, ...]:
        """Projects pulled in by the closure only."""
        selected = set(self.selected)
        return tuple(project for project in self.projects if project not in selected)


@dataclass(frozen=True, slots=True)
class LeveledBuildOrder:
    """Mapping of level number to the projects assigned to it.

    Absent levels are empty; use :meth:`level` rather than indexing.
    """

    levels: Mapping[int, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized: dict[int, tuple[str, ...]] = {}
        seen: set[str] = set()
        for raw_level in sorted(self.levels):
            if isinstance(raw_level, bool) or not isinstance(raw_level, int) or raw_level < 1:
                raise MalformedInputError(
                    f"level keys must be integers >= 1, got {raw_level!r}", source="levels"
                )
            projects: list[str] = []
            for project in self.levels[raw_level]:
                if project in seen:
                    raise MalformedInputError(
                        f"project {project!r} is assigned to more than one level",
                        source="levels",
                    )
                seen.add(project)
                projects.append(project)
            normalized[raw_level] = tuple(projects)
        object.__setattr__(self, "levels", normalized)

    @property
    def depth(self) -> int:
        """Highest level holding at least one project."""
        populated = [level for level, projects in self.levels.items() if projects]
        return max(populated, default=0)

    def level(self, number: int) -> tuple[str, ...]:
        """Projects at ``number``; empty when nothing was assigned there."""
        return self.levels.get(number, ())

    def level_of(self, project: str) -> int | None:
        for number, projects in self.levels.items():
            if project in projects:
                return number
        return None

    def projects(self) -> tuple[str, ...]:
        """All projects from level 1 upwards."""
        return tuple(project for number in sorted(self.levels) for project in self.levels[number])

    def to_json_mapping(self) -> dict[str, list[str]]:
        """``{"1": [...], "2": [...]}`` for every populated level."""
        return {
            str(number): list(projects)
            for number, projects in sorted(self.levels.items())
            if projects
        }

    @classmethod
    def from_json_mapping(cls, payload: Mapping[str, object]) -> LeveledBuildOrder:
        """Parse a ``BuildOrderJson`` document."""
        if not isinstance(payload, Mapping):
            raise MalformedInputError("build order must be a JSON object", source="BuildOrderJson")

        levels: dict[int, tuple[str, ...]] = {}
        for raw_key, raw_value in cast("Mapping[object, object]", payload).items():
            if not isinstance(raw_key, str) or not (raw_key.isascii() and raw_key.isdigit()):
                raise MalformedInputError(
                    f"level key {raw_key!r} is not a positive integer", source="BuildOrderJson"
                )
            number = int(raw_key)
            if number in levels:
                raise MalformedInputError(
                    f"duplicate level {number} (key {raw_key!r})", source="BuildOrderJson"
                )
            if isinstance(raw_value, str):
                items: Iterable[object] = (raw_value,)
            elif isinstance(raw_value, list):
                items = raw_value
            else:
                raise MalformedInputError(
                    "must be a list of project names", source=f"BuildOrderJson.{raw_key}"
                )
            projects: list[str] = []
            for item in items:
                if not isinstance(item, str):
                    raise MalformedInputError(
                        "must contain only strings", source=f"BuildOrderJson.{raw_key}"
                    )
                projects.append(item)
            levels[number] = tuple(projects)
        return cls(levels)


@dataclass(frozen=True, slots=True)
class StageOutput:
    """One pipeline stage slot and the projects scheduled into it."""

    stage_index: int
    projects: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.projects)

    @property
    def json_key(self) -> str:
        return f"projects{self.stage_index}Json"

    @property
    def count_key(self) -> str:
        return f"projects{self.stage_index}Count"


@dataclass(frozen=True, slots=True)
class BuildPlan:
    """Complete result of one planning run."""

    selection: Selection
    closure: BuildAlsoResult
    dependencies: Mapping[str, tuple[str, ...]]
    build_order: LeveledBuildOrder
    stages: tuple[StageOutput, ...]
    capacity: int
    prerequisites: tuple[str, ...] = ()

    @property
    def projects(self) -> tuple[str, ...]:
        """Final build set: closure first, then any upstream prerequisites."""
        merged: dict[str, None] = dict.fromkeys(self.closure.projects)
        for project in self.prerequisites:
            merged.setdefault(project, None)
        return tuple(merged)

    @property
    def depth(self) -> int:
        return self.build_order.depth


__all__ = [
    "BuildAlsoResult",
    "BuildPlan",
    "LeveledBuildOrder",
    "Selection",
    "SelectionReason",
    "StageOutput",
]
