"""Unit tests for command composition and NamespaceProvider.run_command."""

from __future__ import annotations

import base64
import shlex
from unittest.mock import AsyncMock

import httpx
import pytest

from namespace_sandbox.commands import build_command, decode_output, escape_shell_arg
from namespace_sandbox.errors import CommandExecutionError, UnsupportedOperationError
from namespace_sandbox.provider import RunCommandOptions
from namespace_sandbox.providers.namespace import NamespaceProvider, NamespaceSandbox
from namespace_sandbox.providers.namespace_client import RUN_COMMAND_SYNC, NamespaceClient

ENDPOINT = "https://cmd.inst-1.example.test"


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


def _sandbox(**overrides) -> NamespaceSandbox:
    fields = {
        "instance_id": "inst-1",
        "token": "record-token",
        "command_service_endpoint": ENDPOINT,
    }
    fields.update(overrides)
    return NamespaceSandbox(**fields)


def _make_provider(*responses) -> tuple[NamespaceProvider, AsyncMock]:
    mock_http = AsyncMock()
    mock_http.request = AsyncMock(side_effect=list(responses))
    return NamespaceProvider(NamespaceClient(http_client=mock_http)), mock_http


def _sent_command(mock_http: AsyncMock) -> list[str]:
    return mock_http.request.call_args.kwargs["json"]["command"]["command"]


# ── Test: build_command ──────────────────────────────────────────


def test_plain_command_is_unchanged():
    assert build_command("ls -la") == "ls -la"


def test_env_precedes_cwd_precedes_command():
    composed = build_command("echo $FOO", cwd="/tmp", env={"FOO": "bar"})

    assert composed == "export FOO=bar && cd /tmp && echo $FOO"
    assert composed.index("FOO=bar") < composed.index("cd /tmp") < composed.index("echo")


def test_env_and_cwd_values_are_shell_escaped():
    composed = build_command(
        "pwd", cwd="/work dir", env={"GREETING": "hello world", "Q": "it's"}
    )

    assert f"GREETING={shlex.quote('hello world')}" in composed
    assert "Q=" + shlex.quote("it's") in composed
    assert f"cd {shlex.quote('/work dir')}" in composed


def test_invalid_env_name_is_rejected():
    with pytest.raises(CommandExecutionError, match="Invalid environment variable name"):
        build_command("true", env={"BAD;rm -rf /": "x"})


def test_background_wraps_detached_and_silenced():
    composed = build_command("sleep 60", background=True)

    assert composed == "nohup sh -c 'sleep 60' > /dev/null 2>&1 &"


def test_background_wraps_whole_chain():
    composed = build_command("./server", cwd="/app", env={"PORT": "8080"}, background=True)

    inner = "export PORT=8080 && cd /app && ./server"
    assert composed == f"nohup sh -c {shlex.quote(inner)} > /dev/null 2>&1 &"


def test_escape_shell_arg_matches_shlex():
    assert escape_shell_arg("a b") == "'a b'"
    assert escape_shell_arg("plain") == "plain"


# ── Test: decode_output ──────────────────────────────────────────


def test_decode_base64():
    assert decode_output("aGVsbG8=") == "hello"


def test_decode_line_wrapped_base64():
    wrapped = base64.encodebytes(b"hello world " * 10).decode()

    assert "\n" in wrapped
    assert decode_output(wrapped) == "hello world " * 10


def test_decode_falls_back_to_raw_value():
    assert decode_output("not base64!!") == "not base64!!"


def test_decode_non_utf8_payload_falls_back_to_raw_value():
    raw = base64.b64encode(b"\xff\xfe\xfd").decode()

    assert decode_output(raw) == raw


def test_decode_missing_is_empty():
    assert decode_output(None) == ""
    assert decode_output("") == ""


# ── Test: run_command ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_run_command_request_shape():
    provider, mock_http = _make_provider(
        httpx.Response(200, json={"stdout": _b64("hi\n"), "exitCode": 0})
    )

    await provider.run_command(_sandbox(target_container_name="worker"), "echo hi")

    call = mock_http.request.call_args
    assert call.args[1] == f"{ENDPOINT}{RUN_COMMAND_SYNC}"
    assert call.kwargs["headers"]["Authorization"] == "Bearer record-token"
    assert call.kwargs["json"] == {
        "instanceId": "inst-1",
        "targetContainerName": "worker",
        "command": {"command": ["sh", "-c", "echo hi"]},
    }


@pytest.mark.asyncio
async def test_run_command_applies_options():
    provider, mock_http = _make_provider(httpx.Response(200, json={}))

    await provider.run_command(
        _sandbox(),
        "make test",
        RunCommandOptions(cwd="/tmp", env={"FOO": "bar"}),
    )

    argv = _sent_command(mock_http)
    assert argv[:2] == ["sh", "-c"]
    assert argv[2] == "export FOO=bar && cd /tmp && make test"


@pytest.mark.asyncio
async def test_run_command_background():
    provider, mock_http = _make_provider(httpx.Response(200, json={}))

    await provider.run_command(_sandbox(), "sleep 60", RunCommandOptions(background=True))

    assert _sent_command(mock_http)[2].startswith("nohup ")
    assert _sent_command(mock_http)[2].endswith("> /dev/null 2>&1 &")


@pytest.mark.asyncio
async def test_run_command_decodes_output():
    provider, _ = _make_provider(
        httpx.Response(
            200,
            json={"stdout": "aGVsbG8=", "stderr": _b64("warn"), "exitCode": 3},
        )
    )

    result = await provider.run_command(_sandbox(), "whatever")

    assert result.stdout == "hello"
    assert result.stderr == "warn"
    assert result.exit_code == 3
    assert result.duration_ms >= 0


@pytest.mark.asyncio
async def test_run_command_raw_output_on_bad_base64():
    provider, _ = _make_provider(
        httpx.Response(200, json={"stdout": "plain text!", "stderr": "oops?"})
    )

    result = await provider.run_command(_sandbox(), "whatever")

    assert result.stdout == "plain text!"
    assert result.stderr == "oops?"


@pytest.mark.asyncio
async def test_run_command_missing_exit_code_is_zero():
    provider, _ = _make_provider(httpx.Response(200, json={"stdout": _b64("ok")}))

    result = await provider.run_command(_sandbox(), "true")

    assert result.exit_code == 0
    assert result.stderr == ""


@pytest.mark.asyncio
async def test_run_command_null_body_raises_command_execution_error():
    provider, _ = _make_provider(httpx.Response(200, content=b"null"))

    with pytest.raises(CommandExecutionError, match="unexpected response"):
        await provider.run_command(_sandbox(), "ls")


@pytest.mark.asyncio
async def test_run_command_non_numeric_exit_code_raises_command_execution_error():
    provider, _ = _make_provider(httpx.Response(200, json={"exitCode": "boom"}))

    with pytest.raises(CommandExecutionError, match="invalid exit code") as exc_info:
        await provider.run_command(_sandbox(), "ls")

    assert exc_info.value.instance_id == "inst-1"


@pytest.mark.asyncio
async def test_run_command_without_endpoint_is_unsupported():
    provider, mock_http = _make_provider()

    with pytest.raises(UnsupportedOperationError):
        await provider.run_command(_sandbox(command_service_endpoint=None), "ls")

    mock_http.request.assert_not_called()


@pytest.mark.asyncio
async def test_run_command_transport_failure_raises_command_execution_error():
    provider, _ = _make_provider(httpx.Response(502))

    with pytest.raises(CommandExecutionError) as exc_info:
        await provider.run_command(_sandbox(), "ls")

    assert "Namespace command execution failed" in str(exc_info.value)
    assert "502" in str(exc_info.value)
    assert exc_info.value.instance_id == "inst-1"


@pytest.mark.asyncio
async def test_run_command_api_error_raises_command_execution_error():
    provider, _ = _make_provider(httpx.Response(200, json={"error": "container not running"}))

    with pytest.raises(CommandExecutionError, match="container not running"):
        await provider.run_command(_sandbox(), "ls")
