"""
Existence probe: is a blob already at the destination?
"""

from __future__ import annotations

from enum import Enum

import httpx
from pydantic import BaseModel

from modelsync.api.client import ServerAPI
from modelsync.exceptions import ProbeError
from modelsync.logging import get_logger
from modelsync.models.blob import Digest
from modelsync.storage.local import LocalBlobStore

logger = get_logger(__name__)


class ProbeOutcome(str, Enum):
    EXISTS = "exists"
    NOT_FOUND = "not_found"
    ERROR = "error"


class ProbeResult(BaseModel):
    """Answer of a single existence check."""

    outcome: ProbeOutcome
    digest: Digest
    status_code: int | None = None
    transient: bool = False
    detail: str | None = None

    @property
    def exists(self) -> bool:
        return self.outcome == ProbeOutcome.EXISTS

    def raise_for_error(self) -> None:
        """Raise ProbeError if the probe did not give a definite answer."""
        if self.outcome == ProbeOutcome.ERROR:
            raise ProbeError(
                self.digest,
                status_code=self.status_code,
                transient=self.transient,
                detail=self.detail,
            )


class ExistenceProbe:
    """
    Single-shot existence check. Never retries; the caller decides.

    Remote destinations get one ``HEAD /api/blobs/{digest}``; local
    destinations are checked on disk.
    """

    async def probe(self, destination: ServerAPI | LocalBlobStore, digest: Digest) -> ProbeResult:
        if isinstance(destination, LocalBlobStore):
            return self.probe_local(destination, digest)
        return await self.probe_remote(destination, digest)

    async def probe_remote(self, api: ServerAPI, digest: Digest) -> ProbeResult:
        try:
            response = await api.head_blob(digest)
        except httpx.TransportError as e:
            logger.warning(f"Probe for {digest.short} on {api.base_url} failed: {e}")
            return ProbeResult(
                outcome=ProbeOutcome.ERROR,
                digest=digest,
                transient=True,
                detail=str(e) or type(e).__name__,
            )

        if response.status_code == 200:
            return ProbeResult(outcome=ProbeOutcome.EXISTS, digest=digest, status_code=200)
        if response.status_code == 404:
            return ProbeResult(outcome=ProbeOutcome.NOT_FOUND, digest=digest, status_code=404)
        return ProbeResult(
            outcome=ProbeOutcome.ERROR,
            digest=digest,
            status_code=response.status_code,
            detail=response.reason_phrase or None,
        )

    def probe_local(self, store: LocalBlobStore, digest: Digest) -> ProbeResult:
        outcome = ProbeOutcome.EXISTS if store.has_blob(digest) else ProbeOutcome.NOT_FOUND
        return ProbeResult(outcome=outcome, digest=digest)


__all__ = ["ExistenceProbe", "ProbeOutcome", "ProbeResult"]
