"""Key/value pipeline outputs consumed by the calling CI workflow."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Final, TextIO

from stage_planner.domain.models import BuildPlan, StageOutput

GITHUB_OUTPUT_ENV: Final[str] = "GITHUB_OUTPUT"

PROJECTS_KEY: Final[str] = "ProjectsJson"
PROJECT_DEPENDENCIES_KEY: Final[str] = "ProjectDependenciesJson"
BUILD_ORDER_KEY: Final[str] = "BuildOrderJson"


def dumps_compact(value: object) -> str:
    """Single-line JSON; key order is preserved so level keys stay numeric-ordered."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def stage_outputs(stages: Sequence[StageOutput]) -> dict[str, str]:
    """``projects{s}Json`` / ``projects{s}Count`` pairs for every stage slot."""
    outputs: dict[str, str] = {}
    for stage in stages:
        outputs[stage.json_key] = dumps_compact(list(stage.projects))
        outputs[stage.count_key] = str(stage.count)
    return outputs


def build_pipeline_outputs(plan: BuildPlan) -> dict[str, str]:
    """Every output of a planning run, in the order the workflow reads them."""
    outputs: dict[str, str] = {
        PROJECTS_KEY: dumps_compact(list(plan.projects)),
        PROJECT_DEPENDENCIES_KEY: dumps_compact(
            {project: list(dependencies) for project, dependencies in plan.dependencies.items()}
        ),
        BUILD_ORDER_KEY: dumps_compact(plan.build_order.to_json_mapping()),
    }
    outputs.update(stage_outputs(plan.stages))
    return outputs


def render_pipeline_outputs(outputs: Mapping[str, str]) -> str:
    """``key=value`` lines in the format of the GitHub Actions output file."""
    lines: list[str] = []
    for key, value in outputs.items():
        if "\n" in value or "\r" in value:
            raise ValueError(f"output {key!r} must be a single line")
        lines.append(f"{key}={value}")
    return "".join(f"{line}\n" for line in lines)


def resolve_output_path(
    explicit: str | os.PathLike[str] | None,
    environ: Mapping[str, str] | None = None,
) -> Path | None:
    """Explicit path, else ``$GITHUB_OUTPUT``; ``None`` means write to stdout."""
    if explicit is not None:
        text = os.fspath(explicit)
        return None if text == "-" else Path(text)
    env = os.environ if environ is None else environ
    configured = env.get(GITHUB_OUTPUT_ENV, "").strip()
    return Path(configured) if configured else None


def write_pipeline_outputs(
    outputs: Mapping[str, str],
    *,
    path: Path | None = None,
    stream: TextIO | None = None,
) -> None:
    """Append outputs to ``path`` (the workflow's result file) or write them to ``stream``."""
    rendered = render_pipeline_outputs(outputs)
    if path is None:
        if stream is None:
            raise ValueError("either path or stream is required")
        stream.write(rendered)
        stream.flush()
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(rendered)


__all__ = [
    "BUILD_ORDER_KEY",
    "GITHUB_OUTPUT_ENV",
    "PROJECTS_KEY",
    "PROJECT_DEPENDENCIES_KEY",
    "build_pipeline_outputs",
    "dumps_compact",
    "render_pipeline_outputs",
    "resolve_output_path",
    "stage_outputs",
    "write_pipeline_outputs",
]
