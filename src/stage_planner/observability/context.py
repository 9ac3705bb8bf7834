"""Explicit per-run diagnostic context passed into planning functions."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

_DEFAULT_LOGGER_NAME = "stage_planner"


def generate_run_id(now: datetime | None = None) -> str:
    """Return a sortable run identifier such as ``20261017T120000Z-1a2b3c``."""
    moment = now if now is not None else datetime.now(tz=UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    stamp = moment.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{secrets.token_hex(3)}"


@dataclass(frozen=True, slots=True)
class RunContext:
    """Run identifier plus the logger every record for that run goes through."""

    run_id: str = field(default_factory=generate_run_id)
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger(_DEFAULT_LOGGER_NAME)
    )

    def child(self, name: str) -> RunContext:
        """Context whose logger is a named child of this run's logger."""
        return RunContext(run_id=self.run_id, logger=self.logger.getChild(name))

    def debug(self, message: str, **fields: Any) -> None:
        self.logger.debug(message, extra={"run_id": self.run_id, **fields})

    def info(self, message: str, **fields: Any) -> None:
        self.logger.info(message, extra={"run_id": self.run_id, **fields})

    def warning(self, message: str, **fields: Any) -> None:
        self.logger.warning(message, extra={"run_id": self.run_id, **fields})


def resolve_context(context: RunContext | None) -> RunContext:
    """Return ``context`` or a detached default one."""
    if context is not None:
        return context
    return RunContext(run_id="detached")


__all__ = ["RunContext", "generate_run_id", "resolve_context"]
