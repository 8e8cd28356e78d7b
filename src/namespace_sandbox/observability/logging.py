"""Structured logging configuration for namespace_sandbox.

The provider, transport and credential modules log through stdlib
``logging.getLogger(__name__)`` with ``extra={...}`` fields such as
``instance_id``, ``operation`` and ``endpoint``. ``configure_logging``
routes those records and structlog events through one pipeline that
lifts the extra fields into the event and masks bearer tokens before
rendering.

Usage::

    from namespace_sandbox.observability.logging import configure_logging, get_logger

    configure_logging()  # Call once at startup
    logger = get_logger()
    logger.info("sandbox_created", instance_id="abc123")
"""

from __future__ import annotations

import logging
import os
import re
import sys

import structlog

# Bearer tokens in rendered messages (headers echoed in errors, etc).
_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+")
REDACTED = "[REDACTED]"

_configured = False

# httpx logs every request line at INFO, including per-instance command
# service URLs.
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def redact_bearer_tokens(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    """Replace bearer token values in string fields with [REDACTED]."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "Bearer" in value:
            event_dict[key] = _BEARER_RE.sub(rf"\1{REDACTED}", value)
    return event_dict


def configure_logging(
    *,
    level: str | None = None,
    json_output: bool | None = None,
) -> None:
    """Install the namespace_sandbox log pipeline on the root logger.

    Only the first call has an effect, so the smoke script and host
    applications can both call it.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
            Defaults to LOG_LEVEL env var or INFO.
        json_output: If True, emit JSON lines. If False, emit
            human-readable console output. Defaults to LOG_FORMAT
            env var == "json".
    """
    global _configured
    if _configured:
        return
    _configured = True

    level = level or os.environ.get("LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "json") == "json"

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        redact_bearer_tokens,
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the given name."""
    return structlog.get_logger(name)
