"""Logging for fleet upgrade runs.

Records emitted while a fleet request is handled are attributed to the
caller that submitted it. :func:`bind_context` marks the active
:class:`~revshare.models.CallerContext`; :class:`CallerContextFilter`, which
:func:`configure_logging` attaches to every handler it installs, copies the
correlation id and sender onto each record so the console and the JSON audit
trail can be joined with the multisig transaction that triggered the run.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from rich.console import Console
from rich.logging import RichHandler

from .models import CallerContext

PACKAGE_LOGGER = "revshare"

_ACTIVE_CONTEXT: ContextVar[Optional[CallerContext]] = ContextVar("revshare_caller_context", default=None)


@contextmanager
def bind_context(context: CallerContext) -> Iterator[CallerContext]:
    token = _ACTIVE_CONTEXT.set(context)
    try:
        yield context
    finally:
        _ACTIVE_CONTEXT.reset(token)


class CallerContextFilter(logging.Filter):
    """Stamp ``correlation_id`` and ``sender`` from the bound caller context."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _ACTIVE_CONTEXT.get()
        record.correlation_id = context.correlation_id if context else None
        record.sender = context.sender if context else None
        return True


class StructuredJsonFormatter(logging.Formatter):
    """One JSON object per record, keyed for the upgrade audit trail."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attribute, key in (("correlation_id", "correlationId"), ("sender", "sender")):
            value = getattr(record, attribute, None)
            if value is not None:
                entry[key] = value
        for key in ("event", "data"):
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        correlation_id = getattr(record, "correlation_id", None)
        return f"[{correlation_id[:8]}] {message}" if correlation_id else message


def configure_logging(
    audit_log: Optional[str | Path] = None,
    *,
    level: int = logging.INFO,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Route ``revshare`` records to a rich console and an optional audit file.

    Handlers installed by an earlier call are closed and replaced, so the
    function is safe to call once per run.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    context_filter = CallerContextFilter()
    console_handler = RichHandler(console=console or Console(stderr=True), show_time=False, show_path=False)
    console_handler.setFormatter(_ConsoleFormatter("%(message)s"))
    console_handler.addFilter(context_filter)
    logger.addHandler(console_handler)

    if audit_log is not None:
        path = Path(audit_log)
        path.parent.mkdir(parents=True, exist_ok=True)
        audit_handler = logging.FileHandler(path, encoding="utf-8")
        audit_handler.setFormatter(StructuredJsonFormatter())
        audit_handler.addFilter(context_filter)
        logger.addHandler(audit_handler)

    return logger


__all__ = [
    "CallerContextFilter",
    "PACKAGE_LOGGER",
    "StructuredJsonFormatter",
    "bind_context",
    "configure_logging",
]
