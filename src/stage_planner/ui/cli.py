"""
stage-planner — command-line interface.

File: src/stage_planner/ui/cli.py
Last updated: 2026-10-17

Purpose
- Route ``stage-planner`` subcommands to the planning core.

Functional requirements
- ``plan`` writes the pipeline outputs to ``$GITHUB_OUTPUT`` (or stdout).
- ``levels`` and ``projects`` are read-only inspection commands.
- ``stages`` re-emits stage outputs from a stored ``BuildOrderJson`` document.
- Human-readable summaries never share a stream with pipeline outputs.
- Domain errors propagate to ``stage_planner.main`` for exit-code routing.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stage_planner.config import DEFAULT_CONFIG_FILE, load_config
from stage_planner.domain.models import BuildPlan, LeveledBuildOrder
from stage_planner.errors import MalformedInputError
from stage_planner.observability import RunContext, generate_run_id, setup_logging
from stage_planner.outputs import (
    build_pipeline_outputs,
    dumps_compact,
    resolve_output_path,
    stage_outputs,
    write_pipeline_outputs,
)
from stage_planner.planner import PlannerOptions, plan_build, scan_repository
from stage_planner.planning import compute_levels, emit_stages
from stage_planner.repository import load_repository_settings, select_projects
from stage_planner.ui.render import CLIRenderer

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    _Handler = Callable[[argparse.Namespace, "Mapping[str, Any]", RunContext], int]


class CLIError(Exception):
    """Invocation problem reported as ``error: ...`` with a fixed exit code."""

    def __init__(self, message: str, *, exit_code: int = 2) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse router for all subcommands."""

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--repo-root",
        default=".",
        help="Repository checkout to scan (default: current directory).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help=f"Path to the planner config (default: <repo-root>/{DEFAULT_CONFIG_FILE}).",
    )
    common.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level.")
    common.add_argument("--no-color", action="store_true", help="Disable colored output.")
    common.add_argument(
        "--log-dir",
        default=None,
        help="Also write JSON-lines logs under this directory.",
    )

    parser = argparse.ArgumentParser(
        prog="stage-planner",
        description="Plan which projects a CI run builds and in which pipeline stage.",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    plan = subparsers.add_parser(
        "plan",
        parents=[common],
        help="Select, level, and stage the projects affected by a change.",
        description=(
            "Select projects from the changed files, add everything that depends on them,\n"
            "level the result, and write the pipeline outputs.\n\n"
            "Outputs go to --output, else $GITHUB_OUTPUT, else stdout."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    plan.add_argument("--capacity", type=int, default=None, help="Number of pipeline stages.")
    plan.add_argument(
        "--changed-files",
        dest="changed_files_path",
        default=None,
        metavar="FILE",
        help="File listing changed paths, one per line ('-' reads stdin).",
    )
    plan.add_argument(
        "--changed-file",
        dest="changed_files",
        action="append",
        default=[],
        metavar="PATH",
        help="A changed path (repeatable).",
    )
    plan.add_argument(
        "--all",
        dest="build_all",
        action="store_true",
        help="Build every discovered project.",
    )
    plan.add_argument(
        "--include-upstream",
        action="store_true",
        help="Also build the upstream dependencies of the selected projects.",
    )
    plan.add_argument(
        "--output",
        default=None,
        metavar="FILE",
        help="Append outputs to FILE ('-' writes to stdout).",
    )
    plan.set_defaults(handler=_cmd_plan)

    levels = subparsers.add_parser(
        "levels",
        parents=[common],
        help="Show the build levels of every discovered project.",
        description="Level every discovered project and print the build order.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    levels.add_argument("--json", action="store_true", help="Print BuildOrderJson instead.")
    levels.set_defaults(handler=_cmd_levels)

    projects = subparsers.add_parser(
        "projects",
        parents=[common],
        help="List discovered projects and their dependencies.",
        description="List discovered projects, their paths, and declared dependencies.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    projects.add_argument("--json", action="store_true", help="Print the graph as JSON.")
    projects.set_defaults(handler=_cmd_projects)

    stages = subparsers.add_parser(
        "stages",
        parents=[common],
        help="Emit stage outputs for an existing build order.",
        description=(
            "Read a BuildOrderJson document and emit the projects{s}Json and\n"
            "projects{s}Count outputs for every stage slot."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    stages.add_argument(
        "--build-order",
        required=True,
        metavar="FILE",
        help="BuildOrderJson document ('-' reads stdin).",
    )
    stages.add_argument("--capacity", type=int, default=None, help="Number of pipeline stages.")
    stages.add_argument(
        "--output",
        default=None,
        metavar="FILE",
        help="Append outputs to FILE ('-' writes to stdout).",
    )
    stages.set_defaults(handler=_cmd_stages)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler: _Handler | None = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        repo_root = _repo_root(namespace)
        config = _load_effective_config(namespace, repo_root)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code

    logging_handle = setup_logging(
        config.get("observability"),
        run_id=generate_run_id(),
        log_dir=namespace.log_dir,
        verbose=bool(namespace.verbose),
    )
    ctx = logging_handle.context()
    ctx.debug("starting command", command=namespace.command, repo_root=repo_root.as_posix())
    try:
        return int(handler(namespace, config, ctx))
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    finally:
        logging_handle.shutdown()


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_plan(args: argparse.Namespace, config: Mapping[str, Any], ctx: RunContext) -> int:
    options = PlannerOptions.from_config(config)
    snapshot = scan_repository(_repo_root(args), options, context=ctx)
    settings = load_repository_settings(snapshot.root / options.settings_file)
    selection = select_projects(
        snapshot.projects,
        _collect_changed_files(args),
        settings,
        build_all=bool(args.build_all),
        context=ctx,
    )
    plan = plan_build(
        snapshot.graph,
        selection,
        options.capacity,
        include_upstream=options.include_upstream_dependencies,
        context=ctx,
    )

    output_path = resolve_output_path(args.output)
    write_pipeline_outputs(build_pipeline_outputs(plan), path=output_path, stream=sys.stdout)

    # Outputs own stdout when no result file is configured.
    summary_stream = sys.stdout if output_path is not None else sys.stderr
    _render_plan(_get_renderer(args, stream=summary_stream), plan, output_path)
    return 0


def _cmd_levels(args: argparse.Namespace, config: Mapping[str, Any], ctx: RunContext) -> int:
    options = PlannerOptions.from_config(config)
    snapshot = scan_repository(_repo_root(args), options, context=ctx)
    build_order = compute_levels(snapshot.graph.projects, snapshot.graph, context=ctx)

    if args.json:
        print(dumps_compact(build_order.to_json_mapping()))
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Projects", len(snapshot.graph))
    renderer.kv("Depth", build_order.depth)
    renderer.kv("Stage capacity", options.capacity)
    if build_order.depth > options.capacity:
        renderer.warning(
            f"depth {build_order.depth} exceeds the configured capacity {options.capacity}"
        )
    rows = [
        [str(number), ", ".join(projects)]
        for number, projects in build_order.levels.items()
        if projects
    ]
    renderer.table(["LEVEL", "PROJECTS"], rows, title="Build order:")
    return 0


def _cmd_projects(args: argparse.Namespace, config: Mapping[str, Any], ctx: RunContext) -> int:
    options = PlannerOptions.from_config(config)
    snapshot = scan_repository(_repo_root(args), options, context=ctx)

    if args.json:
        print(json.dumps(snapshot.graph.serialize(), separators=(",", ":"), ensure_ascii=False))
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Repository", snapshot.root.as_posix())
    renderer.kv("Projects", len(snapshot.projects))
    rows = [
        [
            project.name,
            project.path.as_posix(),
            ", ".join(snapshot.graph.dependencies_of(project.name)) or "-",
        ]
        for project in snapshot.projects
    ]
    renderer.table(["NAME", "PATH", "DEPENDS ON"], rows, title="Discovered projects:")
    return 0


def _cmd_stages(args: argparse.Namespace, config: Mapping[str, Any], ctx: RunContext) -> int:
    options = PlannerOptions.from_config(config)
    build_order = LeveledBuildOrder.from_json_mapping(_read_build_order(args.build_order))
    stages = emit_stages(build_order, options.capacity, context=ctx)

    output_path = resolve_output_path(args.output)
    write_pipeline_outputs(stage_outputs(stages), path=output_path, stream=sys.stdout)
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _render_plan(renderer: CLIRenderer, plan: BuildPlan, output_path: Path | None) -> None:
    renderer.kv("Selection", plan.selection.reason.value)
    if plan.selection.triggers:
        renderer.kv("Triggered by", ", ".join(plan.selection.triggers))
    renderer.kv("Projects", len(plan.projects))
    renderer.kv("Depth", f"{plan.depth} of {plan.capacity} stage(s)")
    if plan.closure.added:
        renderer.kv("Build also", ", ".join(plan.closure.added))
    if plan.prerequisites:
        renderer.kv("Upstream", ", ".join(plan.prerequisites))
    if output_path is not None:
        renderer.kv("Outputs", output_path.as_posix())

    rows = [
        [str(stage.stage_index), str(stage.count), ", ".join(stage.projects)]
        for stage in plan.stages
    ]
    renderer.table(["STAGE", "COUNT", "PROJECTS"], rows, title="Stages:")


def _collect_changed_files(args: argparse.Namespace) -> list[str]:
    changed: list[str] = list(args.changed_files)
    source = args.changed_files_path
    if source is None:
        return changed
    if source == "-":
        text = sys.stdin.read()
    else:
        try:
            text = Path(source).read_text(encoding="utf-8-sig")
        except OSError as exc:
            raise CLIError(f"unable to read changed files list {source}: {exc}") from exc
    changed.extend(line.strip() for line in text.splitlines() if line.strip())
    return changed


def _read_build_order(source: str) -> object:
    if source == "-":
        text = sys.stdin.read()
    else:
        try:
            text = Path(source).read_text(encoding="utf-8-sig")
        except OSError as exc:
            raise CLIError(f"unable to read build order {source}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedInputError(f"invalid JSON: {exc}", source=source) from exc


def _get_renderer(args: argparse.Namespace, *, stream: Any = None) -> CLIRenderer:
    """Create a CLI renderer from the parsed namespace."""

    return CLIRenderer(
        no_color=bool(getattr(args, "no_color", False)),
        stream=stream,
    )


def _repo_root(args: argparse.Namespace) -> Path:
    candidate = Path(args.repo_root).expanduser().resolve()
    if not candidate.is_dir():
        raise CLIError(f"repo root is not a directory: {candidate}")
    return candidate


def _load_effective_config(args: argparse.Namespace, repo_root: Path) -> dict[str, Any]:
    overrides: dict[str, object] = {
        "pipeline.capacity": getattr(args, "capacity", None),
        "pipeline.include_upstream_dependencies": (
            True if getattr(args, "include_upstream", False) else None
        ),
    }
    return load_config(args.config_path, cli_overrides=overrides, base_dir=repo_root)


__all__ = ["CLIError", "build_parser", "run_cli"]
