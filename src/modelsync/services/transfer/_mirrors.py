"""
Public registry mirrors.

Remote sources do not serve blob bytes over the server API, so blobs are
fetched from the public registry instead. Several URL shapes and hosts are
tried in order; the first success wins.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Sequence

import httpx

from modelsync.api.config import REGISTRY_ACCEPT, make_timeout
from modelsync.exceptions import BlobUnavailableError, TransferError
from modelsync.logging import get_logger
from modelsync.models.blob import Digest
from modelsync.models.locator import ModelName
from modelsync.services.transfer._config import DEFAULT_REGISTRY_HOSTS, DEFAULT_TRANSFER_TIMEOUT

logger = get_logger(__name__)


@dataclass
class MirrorHit:
    """Open response from the mirror that has the blob."""

    url: str
    response: httpx.Response

    @property
    def size(self) -> int | None:
        length = self.response.headers.get("content-length")
        if length is None or not length.isdigit():
            return None
        return int(length)


class RegistryMirrors:
    """
    Ordered list of registry hosts serving blobs.

    Example:
        >>> mirrors = RegistryMirrors()
        >>> async with mirrors.open_blob(ModelName.parse("llama3"), digest) as hit:
        ...     async for chunk in hit.response.aiter_bytes():
        ...         ...
    """

    def __init__(
        self,
        hosts: Sequence[str] = DEFAULT_REGISTRY_HOSTS,
        timeout: float | None = DEFAULT_TRANSFER_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not hosts:
            raise ValueError("At least one registry host is required")
        self._hosts = list(hosts)
        self._timeout = timeout
        self._transport = transport

    @property
    def hosts(self) -> list[str]:
        return list(self._hosts)

    def candidate_urls(self, model: ModelName, digest: Digest) -> list[str]:
        """
        URLs to try, most specific first.

        Each path shape is tried on every host before falling back to the
        next shape: ``{namespace}/{model}``, the name as written, then the
        bare blob path.
        """
        paths = [f"v2/{model.registry_path}/blobs/{digest}"]
        if model.bare_name != model.registry_path:
            paths.append(f"v2/{model.bare_name}/blobs/{digest}")
        paths.append(f"v2/blobs/{digest}")
        return [f"https://{host}/{path}" for path in paths for host in self._hosts]

    @asynccontextmanager
    async def open_blob(self, model: ModelName, digest: Digest) -> AsyncIterator[MirrorHit]:
        """
        Open a streamed download from the first mirror that has the blob.

        The response body is unread when yielded and closed on exit.

        Raises:
            BlobUnavailableError: If mirrors answered but none had the blob.
            TransferError: If every mirror failed at the network level.
        """
        attempts: list[str] = []
        last_status: int | None = None
        last_error: httpx.TransportError | None = None

        async with httpx.AsyncClient(
            timeout=make_timeout(self._timeout),
            transport=self._transport,
            follow_redirects=True,
            headers={"Accept": REGISTRY_ACCEPT},
        ) as client:
            for url in self.candidate_urls(model, digest):
                attempts.append(url)
                logger.debug(f"Trying mirror {url}")
                try:
                    response = await client.send(client.build_request("GET", url), stream=True)
                except httpx.TransportError as e:
                    logger.debug(f"Mirror {url} failed: {e}")
                    last_error = e
                    continue

                if not response.is_success:
                    logger.debug(f"Mirror {url} answered HTTP {response.status_code}")
                    last_status = response.status_code
                    await response.aclose()
                    continue

                logger.info(f"Blob {digest.short} found at {url}")
                try:
                    yield MirrorHit(url=url, response=response)
                finally:
                    await response.aclose()
                return

        if last_status is not None:
            raise BlobUnavailableError(digest, attempts, status_code=last_status)
        raise TransferError(
            f"Network failure downloading blob {digest} from registry "
            f"(tried: {', '.join(attempts)}): {last_error}",
            digest=digest,
            cause=last_error,
        )

    def __repr__(self) -> str:
        return f"<RegistryMirrors hosts={self._hosts!r}>"


__all__ = ["MirrorHit", "RegistryMirrors"]
