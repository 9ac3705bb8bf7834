"""Public observability primitives: structured logging and the per-run context."""

from stage_planner.observability.context import RunContext, generate_run_id, resolve_context
from stage_planner.observability.logging import (
    JsonLineFormatter,
    LoggingConfig,
    StructuredLoggingHandle,
    get_active_logging_handle,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "JsonLineFormatter",
    "LoggingConfig",
    "RunContext",
    "StructuredLoggingHandle",
    "generate_run_id",
    "get_active_logging_handle",
    "resolve_context",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
