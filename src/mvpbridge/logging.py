"""Structured logging configuration with run_id and secret redaction."""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

__all__ = [
    "configure_logging",
    "get_logger",
    "new_run_id",
    "redact_secrets",
    "run_id_var",
]

# Context variable identifying one CLI invocation
run_id_var: ContextVar[str] = ContextVar("run_id", default="")

_SENSITIVE = ("secret", "token", "password", "authorization", "signature", "signing_key")
_MASK = "***"


def new_run_id() -> str:
    """Generate and set a new run ID for the current context."""
    rid = uuid.uuid4().hex[:12]
    run_id_var.set(rid)
    return rid


def _add_run_id(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Inject run_id into every log entry."""
    rid = run_id_var.get("")
    if rid:
        event_dict["run_id"] = rid
    return event_dict


def redact_secrets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask values whose key names a credential."""
    for key in list(event_dict):
        if any(marker in key.lower() for marker in _SENSITIVE):
            event_dict[key] = _MASK
    return event_dict


def configure_logging(*, json_output: bool = False, level: str = "WARNING") -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        json_output: True for JSON lines, False for console output.
        level: Log level string.
    """
    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_run_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]
    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared, structlog.processors.StackInfoRenderer(), renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Modules log through stdlib; render their records the same way.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared],
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())


def get_logger(**kwargs: Any) -> structlog.BoundLogger:
    """Get a bound logger with optional initial context."""
    return structlog.get_logger(**kwargs)  # type: ignore[no-any-return]
