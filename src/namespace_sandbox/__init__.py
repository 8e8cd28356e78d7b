"""Namespace Compute backend for the generic sandbox provider interface.

Resolves a bearer token from config, environment, or an ``nsc login``
token file, and maps sandbox lifecycle and command operations onto the
Namespace Compute and Command services.
"""
from .credentials import Credentials, resolve_credentials
from .errors import (
    ApiError,
    CommandExecutionError,
    ConfigurationError,
    LifecycleError,
    NamespaceError,
    TransportError,
    UnsupportedOperationError,
)
from .provider import (
    CodeResult,
    CommandResult,
    CreateSandboxOptions,
    ProviderSandbox,
    RunCommandOptions,
    SandboxInfo,
    SandboxProvider,
)
from .providers import NamespaceClient, NamespaceProvider, NamespaceSandbox
from .settings import NamespaceConfig

__all__ = [
    "ApiError",
    "CodeResult",
    "CommandExecutionError",
    "CommandResult",
    "ConfigurationError",
    "CreateSandboxOptions",
    "Credentials",
    "LifecycleError",
    "NamespaceClient",
    "NamespaceConfig",
    "NamespaceError",
    "NamespaceProvider",
    "NamespaceSandbox",
    "ProviderSandbox",
    "RunCommandOptions",
    "SandboxInfo",
    "SandboxProvider",
    "TransportError",
    "UnsupportedOperationError",
    "resolve_credentials",
]
