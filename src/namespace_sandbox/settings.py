"""Namespace provider configuration.

NamespaceConfig is the single configuration object passed to every
provider operation. It is intentionally a plain dataclass (not
env-coupled) so tests can inject config without touching os.environ;
the environment only acts as a fallback credential source (see
``namespace_sandbox.credentials``).
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_BASE_URL = "https://us.compute.namespaceapis.com"
DEFAULT_CONTAINER_NAME = "main-container"

TOKEN_ENV_VAR = "NSC_TOKEN"
TOKEN_FILE_ENV_VAR = "NSC_TOKEN_FILE"


@dataclass(frozen=True, slots=True)
class NamespaceConfig:
    """Configuration for the Namespace sandbox provider.

    All fields have defaults. A token is resolved at call time from
    ``token``, then ``NSC_TOKEN``, then the JSON file named by
    ``token_file`` or ``NSC_TOKEN_FILE``.
    """

    # ── Credentials ────────────────────────────────────────────────
    token: str = field(default="", repr=False)
    """Namespace API bearer token. Never log this."""

    token_file: str = ""
    """Path to a JSON token file (e.g. from ``nsc login``) with a bearer_token field."""

    # ── Machine shape ──────────────────────────────────────────────
    virtual_cpu: int = 2
    memory_megabytes: int = 4096
    machine_arch: str = "amd64"
    os: str = "linux"

    # ── Instance bookkeeping ───────────────────────────────────────
    documented_purpose: str = "ComputeSDK sandbox"
    destroy_reason: str = "ComputeSDK cleanup"

    target_container_name: str = DEFAULT_CONTAINER_NAME
    """Container that shell commands run against."""

    # ── API ────────────────────────────────────────────────────────
    base_url: str = DEFAULT_BASE_URL
    """Regional compute API base URL used for lifecycle calls."""

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if self.virtual_cpu <= 0:
            errors.append(f"virtual_cpu must be positive, got {self.virtual_cpu}")
        if self.memory_megabytes <= 0:
            errors.append(
                f"memory_megabytes must be positive, got {self.memory_megabytes}"
            )
        if not self.machine_arch:
            errors.append("machine_arch is required")
        if not self.os:
            errors.append("os is required")
        if not self.target_container_name:
            errors.append("target_container_name is required")
        if not self.base_url.startswith(("https://", "http://")):
            errors.append(f"base_url must be an http(s) URL, got {self.base_url!r}")
        return errors
