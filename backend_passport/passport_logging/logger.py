"""
Structured logging for the passport service.

Every entry is one JSON object (or a console line with LOG_FORMAT=console) with
event_type, level, ISO timestamp, service and logger name. Request-scoped keys
(pipeline_id, address) live in structlog contextvars: the orchestrator binds
them once per run with pipeline_context() and every log call made while the
run is in flight, in any module, carries them.

Imports nothing from backend_passport so any module can import it first.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

import structlog

SERVICE_NAME = "backend-passport"


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _add_service(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Log calls pass a snake_case event name; emit it as event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    (Re)configure structlog.

    level: LOG_LEVEL name, default from env then INFO.
    fmt: "json" (default) or "console"; default from LOG_FORMAT.
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        _add_timestamp,
        _add_service,
        _event_type,
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger:

        logger = get_logger(__name__)
        logger.info("health_probe_failed", dependency="graph-indexer", detail="HTTP 502")
    """
    return structlog.get_logger(name, logger=name)


@contextmanager
def pipeline_context(pipeline_id: str, address: str) -> Iterator[None]:
    """Bind pipeline_id and address to every log entry emitted inside the block (task-local)."""
    with structlog.contextvars.bound_contextvars(pipeline_id=pipeline_id, address=address):
        yield
