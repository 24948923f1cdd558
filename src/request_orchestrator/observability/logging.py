"""
request_orchestrator.observability.logging

Structured logging for the orchestrator.

The library only emits events through `get_logger`; the process decides how they are
rendered. `create_orchestrator(..., configure_logs=True)` calls `configure_logging` from
settings; hosts that own their logging setup leave it off.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor


def configure_logging(*, service_name: str, level: str, json_logs: bool = True) -> None:
    """
    Routes structlog through stdlib logging on stdout: JSON lines, or a console
    renderer for local work.
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[*shared_processors(service_name), renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def shared_processors(service_name: str) -> list[Processor]:
    return [
        # tracking_key/request_id are bound by the debouncer around each dispatch.
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _tag_service(service_name),
        structlog.processors.dict_tracebacks,
    ]


def _tag_service(service_name: str) -> Processor:
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Left unconfigured, structlog uses its default console renderer (the test-suite relies
# on this and never reconfigures the global logger).
