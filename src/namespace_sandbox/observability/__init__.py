"""Observability infrastructure for namespace_sandbox.

Quick start::

    from namespace_sandbox.observability import configure_logging, get_logger

    configure_logging()
    logger = get_logger()
"""

from .logging import configure_logging, get_logger, redact_bearer_tokens

__all__ = [
    "configure_logging",
    "get_logger",
    "redact_bearer_tokens",
]
