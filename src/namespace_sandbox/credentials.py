"""Bearer token resolution for the Namespace API.

Sources are tried in order and the first non-empty token wins:

1. ``NamespaceConfig.token``
2. the ``NSC_TOKEN`` environment variable
3. a JSON token file (``NamespaceConfig.token_file`` or ``NSC_TOKEN_FILE``)
   holding ``{"bearer_token": "..."}``, as written by ``nsc login``

Tokens are resolved on every call and never cached.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from .errors import ConfigurationError
from .settings import TOKEN_ENV_VAR, TOKEN_FILE_ENV_VAR, NamespaceConfig

logger = logging.getLogger(__name__)

TokenSource = Callable[[NamespaceConfig, Mapping[str, str]], str | None]


@dataclass(frozen=True, slots=True)
class Credentials:
    """Resolved credentials for a single call."""

    token: str = field(repr=False)


def load_token_from_file(path: str | os.PathLike[str]) -> str:
    """Read ``bearer_token`` from a JSON token file.

    Raises:
        ConfigurationError: If the file is unreadable, is not a JSON
            object, or has no ``bearer_token``.
    """
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read token file {path}: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"Token file {path} is not valid JSON: {e}") from e

    token = payload.get("bearer_token") if isinstance(payload, dict) else None
    if not token or not isinstance(token, str):
        raise ConfigurationError(f"Token file {path} does not contain a bearer_token")
    return token


# ── Resolver pipeline ────────────────────────────────────────────


def _token_from_config(config: NamespaceConfig, env: Mapping[str, str]) -> str | None:
    return config.token or None


def _token_from_env(config: NamespaceConfig, env: Mapping[str, str]) -> str | None:
    return env.get(TOKEN_ENV_VAR) or None


def _token_from_file(config: NamespaceConfig, env: Mapping[str, str]) -> str | None:
    token_file = config.token_file or env.get(TOKEN_FILE_ENV_VAR, "")
    if not token_file:
        return None
    return load_token_from_file(token_file)


TOKEN_SOURCES: tuple[tuple[str, TokenSource], ...] = (
    ("config", _token_from_config),
    ("env", _token_from_env),
    ("token_file", _token_from_file),
)


def resolve_credentials(
    config: NamespaceConfig,
    env: Mapping[str, str] | None = None,
) -> Credentials:
    """Resolve a bearer token from config, environment, or token file.

    Args:
        config: Provider configuration.
        env: Environment mapping. Defaults to ``os.environ``.

    Raises:
        ConfigurationError: If no source yields a token, or the token
            file is unusable.
    """
    if env is None:
        env = os.environ

    for source, resolve in TOKEN_SOURCES:
        token = resolve(config, env)
        if token:
            logger.debug("Namespace token resolved", extra={"token_source": source})
            return Credentials(token=token)

    raise ConfigurationError(
        "Missing Namespace token. Provide token in config, set "
        f"{TOKEN_ENV_VAR}, or set {TOKEN_FILE_ENV_VAR} environment variable "
        "(or provide token_file in config)."
    )
