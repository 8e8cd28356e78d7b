"""Async HTTP client for the Namespace Compute API.

The Compute and Command services speak the Connect protocol: every call
is a POST with a JSON body and a bearer token. Logical failures can
arrive inside 2xx responses as an ``error`` field, so both HTTP and
application errors are normalized here.

One attempt per call. No retry, no local timeout.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from ..errors import ApiError, TransportError
from ..settings import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

# ── Endpoints ────────────────────────────────────────────────────

_COMPUTE_SERVICE = "/namespace.cloud.compute.v1beta.ComputeService"
_COMMAND_SERVICE = "/namespace.cloud.compute.v1beta.CommandService"

CREATE_INSTANCE = f"{_COMPUTE_SERVICE}/CreateInstance"
DESCRIBE_INSTANCE = f"{_COMPUTE_SERVICE}/DescribeInstance"
LIST_INSTANCES = f"{_COMPUTE_SERVICE}/ListInstances"
DESTROY_INSTANCE = f"{_COMPUTE_SERVICE}/DestroyInstance"

RUN_COMMAND_SYNC = f"{_COMMAND_SERVICE}/RunCommandSync"


# ── Module-level shared client ───────────────────────────────────

_shared_async_client: httpx.AsyncClient | None = None


def _get_shared_async_client() -> httpx.AsyncClient:
    global _shared_async_client
    if _shared_async_client is None:
        _shared_async_client = httpx.AsyncClient()
    return _shared_async_client


def _reset_shared_async_client_for_tests() -> None:
    global _shared_async_client
    _shared_async_client = None


async def _close_shared_async_client() -> None:
    global _shared_async_client
    if _shared_async_client is not None:
        await _shared_async_client.aclose()
        _shared_async_client = None


# ── Client ───────────────────────────────────────────────────────


class NamespaceClient:
    """Async HTTP client for Namespace Compute and Command services.

    The token is passed per request: records carry the token they were
    created with, and command calls reuse it.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or _get_shared_async_client()

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def _headers(token: str, extra: Mapping[str, str] | None) -> dict[str, str]:
        # Caller headers are merged last and win on conflicts.
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
            **(extra or {}),
        }

    async def request(
        self,
        token: str,
        endpoint: str,
        body: Any | None = None,
        *,
        base_url: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST ``body`` to ``endpoint`` and return the decoded JSON payload.

        Args:
            token: Bearer token.
            endpoint: RPC path, e.g. ``CREATE_INSTANCE``.
            body: JSON-serializable request body (``{}`` when omitted).
            base_url: Override the client's base URL (command endpoints
                are per-instance).
            headers: Extra headers, merged over the defaults.

        Raises:
            TransportError: On a non-success HTTP status or when no
                response was received.
            ApiError: On a success status whose payload carries ``error``
                or is not a JSON object.
        """
        url = f"{(base_url or self._base_url).rstrip('/')}{endpoint}"

        try:
            resp = await self._client.request(
                "POST",
                url,
                headers=self._headers(token, headers),
                json=body if body is not None else {},
                timeout=None,
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Namespace request failed: %s",
                type(e).__name__,
                extra={"endpoint": endpoint},
            )
            raise TransportError(0, f"Connection failed: {e}") from e

        if not resp.is_success:
            logger.debug(
                "Namespace %s returned %d",
                endpoint,
                resp.status_code,
                extra={"endpoint": endpoint, "status_code": resp.status_code},
            )
            raise TransportError(resp.status_code, resp.reason_phrase)

        try:
            payload = resp.json()
        except ValueError as e:
            raise ApiError(f"invalid JSON response from {endpoint}") from e

        if not isinstance(payload, dict):
            raise ApiError(f"unexpected response from {endpoint}")
        if payload.get("error"):
            raise ApiError(payload["error"])

        return payload

    async def aclose(self) -> None:
        """Close the shared httpx client. Injected clients are left open."""
        if self._owns_client:
            await _close_shared_async_client()

    async def __aenter__(self) -> NamespaceClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
