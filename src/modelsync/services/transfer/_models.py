"""
Models for transfer service.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from modelsync.exceptions import UnsupportedTopologyError
from modelsync.models.blob import Digest
from modelsync.models.locator import Locator
from modelsync.services.transfer._config import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_PROGRESS_INTERVAL,
    DEFAULT_TRANSFER_TIMEOUT,
)


class Topology(str, Enum):
    """Where the two endpoints of a blob transfer live."""

    LOCAL_TO_REMOTE = "local->remote"
    REMOTE_TO_LOCAL = "remote->local"
    REMOTE_TO_REMOTE = "remote->remote"

    @classmethod
    def between(cls, source: Locator, destination: Locator) -> Topology:
        """
        Raises:
            UnsupportedTopologyError: For a local source and local destination.
        """
        if source.is_remote and destination.is_remote:
            return cls.REMOTE_TO_REMOTE
        if source.is_remote:
            return cls.REMOTE_TO_LOCAL
        if destination.is_remote:
            return cls.LOCAL_TO_REMOTE
        raise UnsupportedTopologyError(
            "Copying between two local models is not supported; "
            "use the server's own copy command instead"
        )


class TransferOptions(BaseModel):
    """Per-copy transfer settings, passed explicitly to the engine."""

    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, ge=1)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    bandwidth_limit: int = Field(default=0, ge=0)
    transfer_timeout: float = Field(default=DEFAULT_TRANSFER_TIMEOUT, ge=0.0)
    probe_timeout: float = Field(default=DEFAULT_PROBE_TIMEOUT, gt=0.0)
    progress_interval: float = Field(default=DEFAULT_PROGRESS_INTERVAL, ge=0.0)


class BlobResult(BaseModel):
    """Outcome of one blob."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: str
    digest: Digest

    @property
    def ok(self) -> bool:
        return self.kind != "failed"

    @property
    def bytes_transferred(self) -> int:
        return 0


class Skipped(BlobResult):
    """Destination already had the blob; nothing was read from the source."""

    kind: Literal["skipped"] = "skipped"
    reason: str

    def __repr__(self) -> str:
        return f"Skipped({self.digest.short}: {self.reason})"


class Transferred(BlobResult):
    """Blob bytes were moved."""

    kind: Literal["transferred"] = "transferred"
    size: int
    duration: float
    source_url: str | None = None

    @property
    def bytes_transferred(self) -> int:
        return self.size

    @property
    def speed_mbps(self) -> float:
        """Transfer speed in MB/s."""
        if self.duration <= 0:
            return 0.0
        return (self.size / 1024 / 1024) / self.duration

    def __repr__(self) -> str:
        size_mb = self.size / 1024 / 1024
        return f"Transferred({self.digest.short}, {size_mb:.1f}MB, {self.duration:.1f}s)"


class Failed(BlobResult):
    """Blob could not be moved; the copy must abort."""

    kind: Literal["failed"] = "failed"
    cause: Exception

    @property
    def error(self) -> str:
        return str(self.cause)

    def __repr__(self) -> str:
        return f"Failed({self.digest.short}: {self.cause})"


__all__ = [
    "BlobResult",
    "Failed",
    "Skipped",
    "Topology",
    "TransferOptions",
    "Transferred",
]
