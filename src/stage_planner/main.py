"""Process entrypoint: run the CLI and translate failures into exit codes."""

from __future__ import annotations

import sys
import traceback
from collections.abc import Iterator
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    """Exit codes the calling workflow can rely on."""

    SUCCESS = 0
    PLAN_REJECTED = 1
    CONFIG_ERROR = 2
    INPUT_ERROR = 3
    INTERNAL_ERROR = 4


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m stage_planner`` and the console script."""

    try:
        from stage_planner.ui.cli import run_cli

        return _coerce_exit_code(run_cli(argv))
    except SystemExit as exc:
        return _coerce_exit_code(exc.code)
    except Exception as exc:  # noqa: BLE001 - CLI boundary normalization.
        code = _route_exception(exc)
        if code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            detail = str(exc).strip() or type(exc).__name__
            sys.stderr.write(f"error: {detail}\n")
        return int(code)


def _coerce_exit_code(raw: object) -> int:
    if raw is None:
        return ExitCode.SUCCESS
    if isinstance(raw, int) and raw in ExitCode._value2member_map_:
        return raw
    if isinstance(raw, str) and raw.strip():
        sys.stderr.write(raw.strip() + "\n")
    return ExitCode.INTERNAL_ERROR


def _route_exception(exc: BaseException) -> ExitCode:
    """Exit code of the first recognised error in the cause/context chain."""
    from stage_planner.config.loader import ConfigLoadError
    from stage_planner.config.schema import ConfigValidationError
    from stage_planner.errors import (
        CapacityExceededError,
        CyclicDependencyError,
        MalformedInputError,
    )

    routes: tuple[tuple[tuple[type[BaseException], ...], ExitCode], ...] = (
        ((CyclicDependencyError, CapacityExceededError), ExitCode.PLAN_REJECTED),
        ((MalformedInputError,), ExitCode.INPUT_ERROR),
        (
            (ConfigLoadError, ConfigValidationError, FileNotFoundError, NotADirectoryError),
            ExitCode.CONFIG_ERROR,
        ),
    )
    for link in _causal_chain(exc):
        for error_types, code in routes:
            if isinstance(link, error_types):
                return code
    return ExitCode.INTERNAL_ERROR


def _causal_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


__all__ = ["ExitCode", "cli_entrypoint"]
