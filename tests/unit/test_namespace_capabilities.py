"""Unit tests for NamespaceProvider info and unsupported capabilities."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from namespace_sandbox.errors import UnsupportedOperationError
from namespace_sandbox.provider import SandboxInfo, SandboxProvider
from namespace_sandbox.providers.namespace import NamespaceProvider, NamespaceSandbox
from namespace_sandbox.providers.namespace_client import NamespaceClient
from namespace_sandbox.settings import NamespaceConfig


def _provider() -> tuple[NamespaceProvider, AsyncMock]:
    client = AsyncMock(spec=NamespaceClient)
    return NamespaceProvider(client), client


SANDBOX = NamespaceSandbox(
    instance_id="inst-1",
    token="tok",
    command_service_endpoint="https://cmd.example.test",
    created_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
)


def test_provider_implements_sandbox_provider_interface():
    provider, _ = _provider()

    assert isinstance(provider, SandboxProvider)
    assert provider.name == "namespace"


# ── Test: get_info ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_get_info_is_static_snapshot():
    provider, client = _provider()

    info = await provider.get_info(SANDBOX)

    assert info == SandboxInfo(
        id="inst-1",
        provider="namespace",
        runtime="node",
        status="running",
        created_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
        timeout=0,
        metadata={
            "name": "instance-inst-1",
            "command_service_endpoint": "https://cmd.example.test",
        },
    )
    client.request.assert_not_called()


@pytest.mark.asyncio
async def test_get_info_without_command_endpoint_still_running():
    provider, _ = _provider()

    info = await provider.get_info(NamespaceSandbox(instance_id="inst-2", token="tok"))

    assert info.status == "running"
    assert info.metadata["command_service_endpoint"] is None


# ── Test: unsupported operations ─────────────────────────────────


@pytest.mark.asyncio
@pytest.mark.parametrize("runtime", [None, "python", "node"])
async def test_run_code_always_unsupported(runtime):
    provider, client = _provider()

    with pytest.raises(UnsupportedOperationError, match="run_code"):
        await provider.run_code(SANDBOX, "print(1)", runtime, NamespaceConfig(token="tok"))

    client.request.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("port,protocol", [(80, None), (3000, "https"), (0, "ws")])
async def test_get_url_always_unsupported(port, protocol):
    provider, client = _provider()

    with pytest.raises(UnsupportedOperationError, match="get_url"):
        await provider.get_url(SANDBOX, port, protocol)

    client.request.assert_not_called()


def test_get_instance_returns_record():
    provider, _ = _provider()

    assert provider.get_instance(SANDBOX) is SANDBOX
