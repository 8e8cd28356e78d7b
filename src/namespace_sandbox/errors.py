"""Typed error hierarchy for the Namespace sandbox provider.

All errors carry structured context (instance_id, operation) for
logging. Messages never include bearer tokens.
"""
from __future__ import annotations

from typing import Any


class NamespaceError(Exception):
    """Base error for all Namespace provider operations."""

    def __init__(
        self,
        message: str,
        *,
        instance_id: str | None = None,
        operation: str | None = None,
    ):
        self.instance_id = instance_id
        self.operation = operation
        super().__init__(message)

    def __repr__(self) -> str:
        parts = [f"{type(self).__name__}({self.args[0]!r}"]
        if self.instance_id:
            parts.append(f"instance_id={self.instance_id!r}")
        if self.operation:
            parts.append(f"operation={self.operation!r}")
        return ", ".join(parts) + ")"


class ConfigurationError(NamespaceError):
    """No usable credential or invalid provider configuration."""

    pass


class TransportError(NamespaceError):
    """The API answered with a non-success HTTP status.

    Attributes:
        status_code: HTTP status code, or 0 when no response was received.
        status_text: Reason phrase (or transport failure detail).
    """

    def __init__(self, status_code: int, status_text: str = "", **kwargs: Any):
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(
            f"Namespace API error: {status_code} {status_text}".rstrip(),
            **kwargs,
        )


class ApiError(NamespaceError):
    """Success HTTP status, but the payload carries an ``error`` field."""

    def __init__(self, error: Any, **kwargs: Any):
        self.error = error
        super().__init__(f"Namespace API error: {error}", **kwargs)


class LifecycleError(NamespaceError):
    """A lifecycle call failed or returned an incomplete response."""

    pass


class UnsupportedOperationError(NamespaceError):
    """The capability does not exist for this backend."""

    pass


class CommandExecutionError(NamespaceError):
    """Dispatching a command failed (non-zero exit codes are not errors)."""

    pass
