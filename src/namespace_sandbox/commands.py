"""Shell command composition and output decoding for remote execution.

SECURITY: every user-supplied value (environment values, working
directory, the wrapped chain for background runs) is shell-escaped
with shlex.quote(). Environment variable names are validated instead
of quoted.
"""
from __future__ import annotations

import base64
import binascii
import re
import shlex
from typing import Mapping

from .errors import CommandExecutionError

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def escape_shell_arg(value: str) -> str:
    """Quote a value for safe interpolation into a POSIX shell command."""
    return shlex.quote(value)


def _env_assignments(env: Mapping[str, str]) -> str:
    parts: list[str] = []
    for key, value in env.items():
        if not _ENV_NAME_RE.match(key):
            raise CommandExecutionError(
                f"Invalid environment variable name: {key!r}",
                operation="run_command",
            )
        parts.append(f"{key}={escape_shell_arg(str(value))}")
    return " ".join(parts)


def build_command(
    command: str,
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    background: bool = False,
) -> str:
    """Compose the string passed to ``sh -c`` inside the container.

    Order is fixed: environment exports, then the directory change,
    then the command, chained with ``&&``. A background run wraps the
    whole chain in a detached ``nohup sh -c`` with output discarded.

    >>> build_command("ls", cwd="/tmp", env={"FOO": "bar"})
    'export FOO=bar && cd /tmp && ls'
    """
    parts: list[str] = []
    if env:
        parts.append(f"export {_env_assignments(env)}")
    if cwd:
        parts.append(f"cd {escape_shell_arg(cwd)}")
    parts.append(command)

    full_command = " && ".join(parts)

    if background:
        full_command = (
            f"nohup sh -c {escape_shell_arg(full_command)} > /dev/null 2>&1 &"
        )
    return full_command


def decode_output(data: str | None) -> str:
    """Decode a base64 stdout/stderr payload.

    Line breaks and other whitespace in the payload are ignored. Falls
    back to the raw value when it is not valid base64 or does not decode
    as UTF-8.
    """
    if not data:
        return ""
    try:
        return base64.b64decode("".join(data.split()), validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return data
