"""
Server API client.

Thin async wrapper over the model server's HTTP API (show, blobs, create,
version). Every call opens its own httpx.AsyncClient built from the values
held by this object, so concurrent copies never share connection state.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterable, AsyncIterator

import httpx

from modelsync.api.config import api_path, make_timeout, normalize_base_url
from modelsync.exceptions import ServerUnavailableError, SourceUnreachableError
from modelsync.logging import get_logger

logger = get_logger(__name__)


class ServerAPI:
    """
    Client for one model server instance.

    Example:
        >>> api = ServerAPI("http://gpu-box:11434")
        >>> info = await api.show("llama3:8b")
        >>> response = await api.head_blob("sha256:...")
        >>> response.status_code
        404
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = 3600.0,
        probe_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize server client.

        Args:
            base_url: Server root, e.g. ``http://host:11434``.
            timeout: Deadline for transfer and create requests (0/None: none).
            probe_timeout: Deadline for metadata-only requests.
            transport: Custom httpx transport (tests use httpx.MockTransport).
        """
        self._base_url = normalize_base_url(base_url)
        self._timeout = timeout
        self._probe_timeout = probe_timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        """Get server base URL."""
        return self._base_url

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=make_timeout(timeout),
            transport=self._transport,
        )

    async def version(self) -> str:
        """
        Check that the server is up and return its version string.

        Raises:
            ServerUnavailableError: If the server is unreachable or errors.
        """
        try:
            async with self._client(self._probe_timeout) as client:
                response = await client.get(api_path("version"))
        except httpx.TransportError as e:
            raise ServerUnavailableError(self._base_url, cause=e) from e

        if not 100 <= response.status_code < 400:
            raise ServerUnavailableError(self._base_url, status_code=response.status_code)
        try:
            data = response.json()
        except ValueError as e:
            raise ServerUnavailableError(
                self._base_url, status_code=response.status_code, cause=e
            ) from e
        if not isinstance(data, dict):
            raise ServerUnavailableError(
                self._base_url,
                status_code=response.status_code,
                cause=ValueError(f"unexpected version reply: {response.text.strip()[:200]}"),
            )
        return str(data.get("version", ""))

    async def show(self, name: str) -> dict[str, Any]:
        """
        Fetch model metadata (modelfile, template, system, parameters).

        Raises:
            SourceUnreachableError: On network failure or non-2xx answer.
        """
        try:
            async with self._client(self._probe_timeout) as client:
                response = await client.post(api_path("show"), json={"name": name})
        except httpx.TransportError as e:
            raise SourceUnreachableError(
                f"Could not retrieve model '{name}' from {self._base_url}: {e}",
                cause=e,
            ) from e

        if not response.is_success:
            raise SourceUnreachableError(
                f"Could not retrieve model '{name}' from {self._base_url} "
                f"(HTTP status {response.status_code}): {response.text.strip()}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise SourceUnreachableError(
                f"Could not retrieve model '{name}' from {self._base_url} "
                f"(HTTP status {response.status_code}): reply is not JSON",
                status_code=response.status_code,
                cause=e,
            ) from e
        if not isinstance(data, dict):
            raise SourceUnreachableError(
                f"Could not retrieve model '{name}' from {self._base_url} "
                f"(HTTP status {response.status_code}): unexpected reply {response.text.strip()[:200]}",
                status_code=response.status_code,
            )
        return data

    async def head_blob(self, digest: str) -> httpx.Response:
        """Metadata-only existence check for a blob. Transport errors propagate."""
        async with self._client(self._probe_timeout) as client:
            return await client.head(api_path("blobs", digest))

    async def upload_blob(
        self,
        digest: str,
        content: AsyncIterable[bytes],
        size: int | None = None,
    ) -> httpx.Response:
        """
        Stream a blob body to the server.

        Sends Content-Length when the size is known, chunked otherwise.
        """
        headers = {"Content-Type": "application/octet-stream"}
        if size is not None:
            headers["Content-Length"] = str(size)
        async with self._client(self._timeout) as client:
            return await client.post(api_path("blobs", digest), content=content, headers=headers)

    @asynccontextmanager
    async def create(self, payload: dict[str, Any]) -> AsyncIterator[httpx.Response]:
        """Open the streamed create request; yields the unread response."""
        async with self._client(self._timeout) as client:
            async with client.stream("POST", api_path("create"), json=payload) as response:
                yield response

    def __repr__(self) -> str:
        return f"<ServerAPI base_url={self._base_url!r}>"


__all__ = ["ServerAPI"]
