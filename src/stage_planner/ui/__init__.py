"""Command-line surface: argparse routing and rich rendering."""

from stage_planner.ui.cli import CLIError, build_parser, run_cli
from stage_planner.ui.render import CLIRenderer

__all__ = ["CLIError", "CLIRenderer", "build_parser", "run_cli"]
