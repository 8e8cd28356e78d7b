"""NamespaceProvider - sandboxes backed by Namespace Compute instances.

Each sandbox is one Namespace instance running a single long-lived
container (``sleep infinity``). Commands run synchronously through the
instance's CommandService endpoint.

Records are immutable snapshots: nothing is cached locally, and every
operation is one round trip to the API, which stays the source of truth.

Error policy differs per operation:
- create / get_by_id / list propagate failures as LifecycleError
- get_by_id maps an HTTP 404 to None
- destroy never raises; failures are logged as warnings
- run_command raises CommandExecutionError for dispatch failures, while
  non-zero exit codes are returned as data
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from ..commands import build_command, decode_output
from ..credentials import resolve_credentials
from ..errors import (
    CommandExecutionError,
    ConfigurationError,
    LifecycleError,
    NamespaceError,
    TransportError,
    UnsupportedOperationError,
)
from ..provider import (
    CodeResult,
    CommandResult,
    CreateSandboxOptions,
    ProviderSandbox,
    Runtime,
    RunCommandOptions,
    SandboxInfo,
    SandboxProvider,
)
from ..settings import DEFAULT_CONTAINER_NAME, NamespaceConfig
from .namespace_client import (
    CREATE_INSTANCE,
    DESCRIBE_INSTANCE,
    DESTROY_INSTANCE,
    LIST_INSTANCES,
    RUN_COMMAND_SYNC,
    NamespaceClient,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "namespace"

DEFAULT_IMAGE = "ubuntu:latest"
CONTAINER_ARGS = ("sleep", "infinity")
INSTANCE_DEADLINE = timedelta(hours=1)

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class NamespaceSandbox:
    """Snapshot of a Namespace instance.

    ``command_service_endpoint`` is None when the instance does not
    support command execution. The token is the one used to create or
    fetch the record and is reused for command calls.
    """

    instance_id: str
    token: str = field(repr=False)
    command_service_endpoint: str | None = None
    target_container_name: str = DEFAULT_CONTAINER_NAME
    created_at: datetime = EPOCH

    @property
    def name(self) -> str:
        return f"instance-{self.instance_id}"


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------

def _parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp from the API.

    The API may send nanosecond precision; fractions are truncated to
    microseconds.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip().replace("Z", "+00:00").replace("z", "+00:00")
    if "." in text:
        head, _, rest = text.partition(".")
        digits = len(rest) - len(rest.lstrip("0123456789"))
        text = f"{head}.{rest[:min(digits, 6)]}{rest[digits:]}"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Unparseable timestamp from Namespace API: %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _metadata(payload: dict[str, Any]) -> dict[str, Any]:
    metadata = payload.get("metadata")
    return metadata if isinstance(metadata, dict) else {}


def _command_endpoint(payload: dict[str, Any]) -> str | None:
    extended = payload.get("extendedMetadata")
    if not isinstance(extended, dict):
        return None
    return extended.get("commandServiceEndpoint") or None


def _instance_id(payload: dict[str, Any]) -> str | None:
    """Instance id from either known location in a list entry."""
    return payload.get("instanceId") or _metadata(payload).get("instanceId") or None


def _format_deadline(now: datetime) -> str:
    deadline = now + INSTANCE_DEADLINE
    return deadline.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class NamespaceProvider(SandboxProvider[NamespaceSandbox, NamespaceConfig]):
    """Runs sandboxes as Namespace Compute instances.

    Lifecycle calls use ``config.base_url``; command calls go to the
    per-instance command service endpoint carried by the record.
    """

    name = PROVIDER_NAME

    def __init__(self, client: NamespaceClient | None = None) -> None:
        self._client = client or NamespaceClient()

    # ------ helpers ------

    def _token(self, config: NamespaceConfig) -> str:
        return resolve_credentials(config).token

    def _to_record(
        self,
        payload: dict[str, Any],
        instance_id: str,
        *,
        token: str,
        config: NamespaceConfig,
        default_created_at: datetime = EPOCH,
    ) -> ProviderSandbox[NamespaceSandbox]:
        created_at = _parse_timestamp(_metadata(payload).get("createdAt"))
        sandbox = NamespaceSandbox(
            instance_id=instance_id,
            token=token,
            command_service_endpoint=_command_endpoint(payload),
            target_container_name=config.target_container_name,
            created_at=created_at or default_created_at,
        )
        return ProviderSandbox(sandbox=sandbox, sandbox_id=instance_id)

    # ------ collection operations ------

    async def create(
        self,
        config: NamespaceConfig,
        options: CreateSandboxOptions | None = None,
    ) -> ProviderSandbox[NamespaceSandbox]:
        """Create an instance with one long-running container.

        The instance deadline is always one hour after the call.
        """
        problems = config.validate()
        if problems:
            raise ConfigurationError(
                "Invalid Namespace configuration: " + "; ".join(problems),
                operation="create",
            )
        token = self._token(config)
        options = options or CreateSandboxOptions()

        container: dict[str, Any] = {
            "name": config.target_container_name,
            "image_ref": options.image or DEFAULT_IMAGE,
            "args": list(CONTAINER_ARGS),
        }
        if options.envs:
            container["environment"] = dict(options.envs)

        now = datetime.now(timezone.utc)
        body = {
            "shape": {
                "virtual_cpu": config.virtual_cpu,
                "memory_megabytes": config.memory_megabytes,
                "machine_arch": config.machine_arch,
                "os": config.os,
            },
            "containers": [container],
            "documented_purpose": config.documented_purpose,
            "deadline": _format_deadline(now),
        }

        logger.info(
            "Creating Namespace instance",
            extra={"operation": "create", "image": container["image_ref"]},
        )

        try:
            payload = await self._client.request(
                token, CREATE_INSTANCE, body, base_url=config.base_url
            )
        except NamespaceError as e:
            raise LifecycleError(
                f"Failed to create Namespace instance: {e}",
                operation="create",
            ) from e

        instance_id = _metadata(payload).get("instanceId")
        if not instance_id:
            raise LifecycleError(
                "Failed to create Namespace instance: instance ID is missing "
                f"from response: {json.dumps(payload, default=str)[:500]}",
                operation="create",
            )

        result = self._to_record(
            payload, instance_id, token=token, config=config, default_created_at=now
        )
        logger.info(
            "Namespace instance created",
            extra={
                "operation": "create",
                "instance_id": instance_id,
                "command_service": bool(result.sandbox.command_service_endpoint),
            },
        )
        return result

    async def get_by_id(
        self, config: NamespaceConfig, sandbox_id: str
    ) -> ProviderSandbox[NamespaceSandbox] | None:
        """Describe an instance. Returns None if it does not exist."""
        token = self._token(config)

        try:
            payload = await self._client.request(
                token,
                DESCRIBE_INSTANCE,
                {"instance_id": sandbox_id},
                base_url=config.base_url,
            )
        except NamespaceError as e:
            if isinstance(e, TransportError) and e.status_code == 404:
                logger.info(
                    "Namespace instance not found",
                    extra={"operation": "get_by_id", "instance_id": sandbox_id},
                )
                return None
            raise LifecycleError(
                f"Failed to get Namespace instance: {e}",
                instance_id=sandbox_id,
                operation="get_by_id",
            ) from e

        instance_id = _metadata(payload).get("instanceId")
        if not instance_id:
            raise LifecycleError(
                "Failed to get Namespace instance: instance data is missing "
                "from Namespace response",
                instance_id=sandbox_id,
                operation="get_by_id",
            )
        return self._to_record(payload, instance_id, token=token, config=config)

    async def list(self, config: NamespaceConfig) -> list[ProviderSandbox[NamespaceSandbox]]:
        """List instances. Entries without an instance id are skipped."""
        token = self._token(config)

        try:
            payload = await self._client.request(
                token, LIST_INSTANCES, {}, base_url=config.base_url
            )
        except NamespaceError as e:
            raise LifecycleError(
                f"Failed to list Namespace instances: {e}",
                operation="list",
            ) from e

        instances = payload.get("instances") or []
        results: list[ProviderSandbox[NamespaceSandbox]] = []
        for entry in instances:
            if not isinstance(entry, dict):
                continue
            instance_id = _instance_id(entry)
            if not instance_id:
                continue
            results.append(
                self._to_record(entry, instance_id, token=token, config=config)
            )

        logger.debug(
            "Listed Namespace instances",
            extra={
                "operation": "list",
                "returned": len(instances),
                "kept": len(results),
            },
        )
        return results

    async def destroy(self, config: NamespaceConfig, sandbox_id: str) -> None:
        """Destroy an instance. Best effort: never raises."""
        try:
            token = self._token(config)
            await self._client.request(
                token,
                DESTROY_INSTANCE,
                {"instance_id": sandbox_id, "reason": config.destroy_reason},
                base_url=config.base_url,
            )
        except Exception as e:
            logger.warning(
                "Namespace destroy warning: %s",
                e,
                extra={"operation": "destroy", "instance_id": sandbox_id},
            )
            return

        logger.info(
            "Namespace instance destroyed",
            extra={"operation": "destroy", "instance_id": sandbox_id},
        )

    # ------ instance operations ------

    async def run_command(
        self,
        sandbox: NamespaceSandbox,
        command: str,
        options: RunCommandOptions | None = None,
    ) -> CommandResult:
        """Run ``command`` with ``sh -c`` in the sandbox's target container."""
        if not sandbox.command_service_endpoint:
            raise UnsupportedOperationError(
                "Command service endpoint not available. The instance may "
                "not support command execution.",
                instance_id=sandbox.instance_id,
                operation="run_command",
            )

        options = options or RunCommandOptions()
        full_command = build_command(
            command,
            cwd=options.cwd,
            env=options.env,
            background=options.background,
        )
        body = {
            "instanceId": sandbox.instance_id,
            "targetContainerName": sandbox.target_container_name,
            "command": {"command": ["sh", "-c", full_command]},
        }

        start = time.monotonic()
        try:
            result = await self._client.request(
                sandbox.token,
                RUN_COMMAND_SYNC,
                body,
                base_url=sandbox.command_service_endpoint,
            )
        except NamespaceError as e:
            raise CommandExecutionError(
                f"Namespace command execution failed: {e}",
                instance_id=sandbox.instance_id,
                operation="run_command",
            ) from e
        duration_ms = int((time.monotonic() - start) * 1000)

        exit_code = result.get("exitCode")
        try:
            exit_code = int(exit_code) if exit_code is not None else 0
        except (TypeError, ValueError) as e:
            raise CommandExecutionError(
                f"Namespace command returned an invalid exit code: {exit_code!r}",
                instance_id=sandbox.instance_id,
                operation="run_command",
            ) from e
        command_result = CommandResult(
            stdout=decode_output(result.get("stdout")),
            stderr=decode_output(result.get("stderr")),
            exit_code=exit_code,
            duration_ms=duration_ms,
        )
        logger.debug(
            "Namespace command finished",
            extra={
                "operation": "run_command",
                "instance_id": sandbox.instance_id,
                "exit_code": command_result.exit_code,
                "duration_ms": duration_ms,
            },
        )
        return command_result

    async def run_code(
        self,
        sandbox: NamespaceSandbox,
        code: str,
        runtime: Runtime | None = None,
        config: NamespaceConfig | None = None,
    ) -> CodeResult:
        raise UnsupportedOperationError(
            "Namespace provider does not support run_code. Use run_command instead.",
            operation="run_code",
        )

    async def get_info(self, sandbox: NamespaceSandbox) -> SandboxInfo:
        """Static snapshot of the record. No remote status check."""
        return SandboxInfo(
            id=sandbox.instance_id,
            provider=PROVIDER_NAME,
            runtime="node",
            status="running",
            created_at=sandbox.created_at,
            timeout=0,
            metadata={
                "name": sandbox.name,
                "command_service_endpoint": sandbox.command_service_endpoint,
            },
        )

    async def get_url(
        self,
        sandbox: NamespaceSandbox,
        port: int,
        protocol: str | None = None,
    ) -> str:
        raise UnsupportedOperationError(
            "Namespace provider does not support get_url.",
            operation="get_url",
        )
