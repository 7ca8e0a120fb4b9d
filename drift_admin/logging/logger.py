"""
One structlog pipeline for every drift-admin command.

Each line written to stderr is a snake_case event (tx_sent, operation_failed,
authority_mismatch) plus keyword context such as the transaction signature,
the explorer link or the program log lines. The operation name bound by
bind_operation() rides along on every line until clear_operation().

Imported by everything else in the package, so it imports nothing from it.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

# JSON output for CI / log shipping (LOG_FORMAT=json); anything else renders for a terminal
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """UTC ISO 8601 time of the event, unless the caller passed one."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # event -> event_type; message mirrors event_type when absent
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def configure_structlog() -> None:
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
    ]
    if LOG_FORMAT == "json":
        shared_processors.append(_normalize_event)
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        # ConsoleRenderer expects the "event" key
        shared_processors.append(
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        )
    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger with its dotted name bound as `logger`.

    An update-admin confirmation renders in JSON mode as
    {"event_type": "tx_confirmed", "operation": "update-admin", "signature": ..., "logger": "drift_admin.workflow.runner", ...}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_operation(operation: str, **context: Any) -> None:
    """Tag the rest of this run's log lines with the command name."""
    structlog.contextvars.bind_contextvars(operation=operation, **context)


def clear_operation() -> None:
    structlog.contextvars.clear_contextvars()
