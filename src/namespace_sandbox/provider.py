"""Abstract interface for sandbox providers.

A provider backs the generic sandbox operations (instance lifecycle and
command execution) with one compute backend. Every provider exposes the
same capability surface; operations a backend cannot perform are still
implemented and raise ``UnsupportedOperationError``.

Implementations:
- NamespaceProvider: Namespace Compute instances
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Literal, TypeVar

Runtime = Literal["node", "python"]


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CreateSandboxOptions:
    """Per-call options for sandbox creation."""

    image: str | None = None
    envs: dict[str, str] | None = None


@dataclass(frozen=True)
class RunCommandOptions:
    """Per-call options for command execution."""

    cwd: str | None = None
    env: dict[str, str] | None = None
    background: bool = False


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandResult:
    """Outcome of a shell command. Non-zero exit codes are data."""

    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int


@dataclass(frozen=True)
class CodeResult:
    output: str
    exit_code: int
    language: str


@dataclass(frozen=True)
class SandboxInfo:
    """Information about a sandbox instance."""

    id: str
    provider: str
    runtime: Runtime
    status: str  # running, stopped, error
    created_at: datetime
    timeout: int
    metadata: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# SandboxProvider
# ---------------------------------------------------------------------------

SandboxT = TypeVar("SandboxT")
ConfigT = TypeVar("ConfigT")


@dataclass(frozen=True)
class ProviderSandbox(Generic[SandboxT]):
    """A provider-native sandbox together with its id."""

    sandbox: SandboxT
    sandbox_id: str


class SandboxProvider(ABC, Generic[SandboxT, ConfigT]):
    """Abstract interface for sandbox providers.

    Collection operations take the provider config; instance operations
    take the provider-native sandbox record returned by a collection
    operation.
    """

    name: str = ""

    @abstractmethod
    async def create(
        self,
        config: ConfigT,
        options: CreateSandboxOptions | None = None,
    ) -> ProviderSandbox[SandboxT]:
        """Create a sandbox.

        Args:
            config: Provider configuration
            options: Image and environment for the sandbox

        Returns:
            The new sandbox and its id
        """

    @abstractmethod
    async def get_by_id(
        self, config: ConfigT, sandbox_id: str
    ) -> ProviderSandbox[SandboxT] | None:
        """Look up a sandbox.

        Returns:
            The sandbox if it exists, None otherwise
        """

    @abstractmethod
    async def list(self, config: ConfigT) -> list[ProviderSandbox[SandboxT]]:
        """List sandboxes visible to the configured credentials."""

    @abstractmethod
    async def destroy(self, config: ConfigT, sandbox_id: str) -> None:
        """Destroy a sandbox."""

    @abstractmethod
    async def run_command(
        self,
        sandbox: SandboxT,
        command: str,
        options: RunCommandOptions | None = None,
    ) -> CommandResult:
        """Run a shell command inside the sandbox."""

    @abstractmethod
    async def run_code(
        self,
        sandbox: SandboxT,
        code: str,
        runtime: Runtime | None = None,
        config: ConfigT | None = None,
    ) -> CodeResult:
        """Run a code snippet inside the sandbox."""

    @abstractmethod
    async def get_info(self, sandbox: SandboxT) -> SandboxInfo:
        """Describe the sandbox."""

    @abstractmethod
    async def get_url(
        self,
        sandbox: SandboxT,
        port: int,
        protocol: str | None = None,
    ) -> str:
        """Public URL for a port exposed by the sandbox."""

    def get_instance(self, sandbox: SandboxT) -> SandboxT:
        """Provider-native handle for the sandbox."""
        return sandbox
