"""Deterministic project dependency graph."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator, Mapping, Sequence

from stage_planner.errors import MalformedInputError


class DependencyGraph:
    """Directed graph of ``dependent -> dependency`` edges over a fixed project universe.

    Enumeration order always follows the order in which projects were supplied,
    so every query is reproducible across runs.
    """

    __slots__ = ("_order", "_dependencies", "_dependents")

    def __init__(
        self,
        projects: Iterable[str],
        dependencies: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self._order: dict[str, int] = {}
        self._dependencies: dict[str, list[str]] = {}
        self._dependents: dict[str, list[str]] = {}

        for project in projects:
            self._validate_project_id(project)
            if project in self._order:
                raise MalformedInputError(f"duplicate project {project!r}", source="projects")
            self._order[project] = len(self._order)
            self._dependencies[project] = []
            self._dependents[project] = []

        if dependencies is not None:
            for dependent in dependencies:
                for dependency in dependencies[dependent]:
                    self._add_edge(dependent, dependency)

        for project in self._dependents:
            self._dependents[project].sort(key=self._order.__getitem__)

    @classmethod
    def from_edges(
        cls,
        projects: Iterable[str],
        edges: Iterable[tuple[str, str]],
    ) -> DependencyGraph:
        """Build a graph from ``(dependent, dependency)`` pairs."""
        grouped: dict[str, list[str]] = {}
        for dependent, dependency in edges:
            grouped.setdefault(dependent, []).append(dependency)
        return cls(projects, grouped)

    @property
    def projects(self) -> tuple[str, ...]:
        """All projects in input order."""
        return tuple(self._order)

    @property
    def edges(self) -> tuple[tuple[str, str], ...]:
        """All edges as ``(dependent, dependency)`` pairs."""
        return tuple(
            (dependent, dependency)
            for dependent in self._order
            for dependency in self._dependencies[dependent]
        )

    def __contains__(self, project: object) -> bool:
        return project in self._order

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def dependencies_of(self, project: str) -> tuple[str, ...]:
        """Direct dependencies of ``project`` in declaration order."""
        self._assert_known(project)
        return tuple(self._dependencies[project])

    def dependents_of(self, project: str) -> tuple[str, ...]:
        """Projects that directly depend on ``project``."""
        self._assert_known(project)
        return tuple(self._dependents[project])

    def transitive_dependents(self, project: str) -> tuple[str, ...]:
        """All projects with a dependency path to ``project``."""
        return self._reachable(project, self._dependents)

    def transitive_dependencies(self, project: str) -> tuple[str, ...]:
        """All projects ``project`` depends on, directly or indirectly."""
        return self._reachable(project, self._dependencies)

    def sort_key(self, project: str) -> int:
        """Position of ``project`` in the input order."""
        self._assert_known(project)
        return self._order[project]

    def detect_cycles(self, within: Iterable[str] | None = None) -> tuple[tuple[str, ...], ...]:
        """
        Detect dependency cycles, optionally restricted to a subset of projects.

        Cycles are returned as closed paths, e.g. ``("A", "B", "A")``.
        """
        scope = set(self._order) if within is None else set(within) & set(self._order)
        state: dict[str, int] = {}
        stack: list[str] = []
        stack_index: dict[str, int] = {}
        cycles: dict[tuple[str, ...], None] = {}

        for start in self._order:
            if start not in scope or state.get(start, 0) != 0:
                continue

            state[start] = 1
            stack.append(start)
            stack_index[start] = 0
            frames: list[tuple[str, Iterator[str]]] = [
                (start, self._scoped_dependencies(start, scope))
            ]

            while frames:
                node, dependency_iter = frames[-1]

                try:
                    dependency = next(dependency_iter)
                except StopIteration:
                    frames.pop()
                    state[node] = 2
                    stack.pop()
                    del stack_index[node]
                    continue

                dependency_state = state.get(dependency, 0)
                if dependency_state == 0:
                    state[dependency] = 1
                    stack_index[dependency] = len(stack)
                    stack.append(dependency)
                    frames.append((dependency, self._scoped_dependencies(dependency, scope)))
                    continue

                if dependency_state == 1:
                    cycle = tuple(stack[stack_index[dependency] :] + [dependency])
                    cycles[self._canonicalize_cycle(cycle)] = None

        return tuple(sorted(cycles))

    def as_mapping(self, projects: Iterable[str] | None = None) -> dict[str, list[str]]:
        """Return ``project -> direct dependencies`` for ``projects`` (default: all)."""
        selected = self._order if projects is None else projects
        mapping: dict[str, list[str]] = {}
        for project in selected:
            mapping[project] = list(self.dependencies_of(project))
        return mapping

    def serialize(self) -> dict[str, object]:
        """Serialize graph to a stable JSON-friendly mapping."""
        return {
            "projects": list(self._order),
            "dependencies": self.as_mapping(),
        }

    def _add_edge(self, dependent: str, dependency: str) -> None:
        self._validate_project_id(dependency)
        if dependent not in self._order:
            raise MalformedInputError(
                f"dependencies declared for unknown project {dependent!r}",
                source="dependencies",
            )
        if dependency not in self._order:
            raise MalformedInputError(
                f"project {dependent!r} depends on unknown project {dependency!r}",
                source="dependencies",
            )
        if dependent == dependency:
            raise MalformedInputError(
                f"project {dependent!r} must not depend on itself",
                source="dependencies",
            )
        if dependency in self._dependencies[dependent]:
            return

        self._dependencies[dependent].append(dependency)
        self._dependents[dependency].append(dependent)

    def _reachable(self, project: str, adjacency: Mapping[str, list[str]]) -> tuple[str, ...]:
        self._assert_known(project)

        visited: set[str] = set()
        pending: deque[str] = deque(adjacency[project])
        while pending:
            node = pending.popleft()
            if node in visited or node == project:
                continue
            visited.add(node)
            pending.extend(neighbor for neighbor in adjacency[node] if neighbor not in visited)

        return tuple(sorted(visited, key=self._order.__getitem__))

    def _scoped_dependencies(self, project: str, scope: set[str]) -> Iterator[str]:
        return iter([item for item in self._dependencies[project] if item in scope])

    def _assert_known(self, project: str) -> None:
        if project not in self._order:
            raise MalformedInputError(f"unknown project {project!r}")

    @staticmethod
    def _canonicalize_cycle(cycle: Sequence[str]) -> tuple[str, ...]:
        core = tuple(cycle[:-1])
        best = core
        for offset in range(1, len(core)):
            rotated = core[offset:] + core[:offset]
            if rotated < best:
                best = rotated
        return best + (best[0],)

    @staticmethod
    def _validate_project_id(project: object) -> None:
        if not isinstance(project, str):
            raise MalformedInputError(
                f"project identifiers must be strings, got {type(project).__name__}"
            )
        if not project.strip():
            raise MalformedInputError("project identifiers must be non-empty")


__all__ = ["DependencyGraph"]
