"""
Exceptions for modelsync.

All errors raised by the replication engine derive from ModelSyncError,
so callers (and the CLI) can catch a single type and exit non-zero.
"""

from __future__ import annotations

from typing import Sequence


class ModelSyncError(Exception):
    """Base exception for all modelsync errors."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self._original_cause = cause

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Probe Errors
# =============================================================================


class ProbeError(ModelSyncError):
    """Existence check on a destination did not produce an answer."""

    def __init__(
        self,
        digest: str,
        status_code: int | None = None,
        transient: bool = False,
        detail: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.digest = digest
        self.status_code = status_code
        self.transient = transient
        if transient:
            message = f"Network error while checking blob {digest} on destination"
        else:
            message = f"Unexpected HTTP status {status_code} while checking blob {digest} on destination"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, cause)


# =============================================================================
# Transfer Errors
# =============================================================================


class TransferError(ModelSyncError):
    """A blob could not be moved from source to destination."""

    def __init__(
        self,
        message: str,
        digest: str | None = None,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.digest = digest
        self.status_code = status_code
        super().__init__(message, cause)


class IncompatibleServerError(TransferError):
    """Destination rejected an upload with HTTP 400."""

    def __init__(self, digest: str) -> None:
        super().__init__(
            f"Upload of blob {digest} rejected (HTTP 400): invalid digest, "
            "incompatible server versions. Check both servers run the same version.",
            digest=digest,
            status_code=400,
        )


class BlobUnavailableError(TransferError):
    """No registry mirror could serve a blob."""

    def __init__(self, digest: str, attempts: Sequence[str], status_code: int | None = None) -> None:
        self.attempts = list(attempts)
        super().__init__(
            f"Blob {digest} is not available in public registry "
            f"(tried {len(self.attempts)} mirror URL(s)). The model was likely created "
            "locally; remote copies only work for models pulled from the registry.",
            digest=digest,
            status_code=status_code,
        )


class SourceUnreachableError(TransferError):
    """Source server could not provide model metadata."""


class ServerUnavailableError(ModelSyncError):
    """A server did not answer its version endpoint."""

    def __init__(
        self,
        server_url: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.server_url = server_url
        self.status_code = status_code
        if status_code is None:
            message = f"Could not connect to server {server_url}"
        elif status_code >= 500:
            message = f"Server {server_url} has thrown an internal error (HTTP status {status_code})"
        else:
            message = f"Server {server_url} answered with HTTP status {status_code}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, cause)


# =============================================================================
# Parse Errors
# =============================================================================


class ParseError(ModelSyncError):
    """Model definition could not be interpreted."""


class NoBlobsFound(ParseError):
    """Model definition references no blob digests."""

    def __init__(self, model: str | None = None) -> None:
        self.model = model
        if model:
            message = f"No blob references found in model definition of '{model}'"
        else:
            message = "No blob references found in model definition"
        super().__init__(message)


class ModelNotFoundError(ModelSyncError):
    """Local manifest for a model does not exist."""

    def __init__(self, name: str, tried: Sequence[str]) -> None:
        self.name = name
        self.tried = list(tried)
        super().__init__(f"Model '{name}' not found (tried: {', '.join(self.tried)})")


# =============================================================================
# Creation Errors
# =============================================================================


class CreationError(ModelSyncError):
    """Destination did not confirm model creation."""

    def __init__(
        self,
        model: str,
        status: str | None = None,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.model = model
        self.status = status
        self.status_code = status_code
        if status_code is not None:
            message = f"Could not create '{model}' on the destination (HTTP status {status_code})"
        else:
            message = f"Creation of '{model}' did not complete successfully (last status: {status or 'none'})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# =============================================================================
# Copy / State Errors
# =============================================================================


class UnsupportedTopologyError(ModelSyncError):
    """Source and destination combination is not handled."""


class CopyCancelledError(ModelSyncError):
    """Copy was cancelled before all blobs were transferred."""


class InvalidStateTransition(ModelSyncError):
    """Transfer task moved to a state not reachable from its current one."""

    def __init__(self, digest: str, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Blob {digest}: illegal transition {current} -> {target}")


class RelayClosedError(ModelSyncError):
    """Write or completion attempted on a relay pipe after completion."""


class RelayFaultError(ModelSyncError):
    """The other end of a relay pipe recorded a fault."""


__all__ = [
    "ModelSyncError",
    "ProbeError",
    "TransferError",
    "IncompatibleServerError",
    "BlobUnavailableError",
    "SourceUnreachableError",
    "ServerUnavailableError",
    "ParseError",
    "NoBlobsFound",
    "ModelNotFoundError",
    "CreationError",
    "UnsupportedTopologyError",
    "CopyCancelledError",
    "InvalidStateTransition",
    "RelayClosedError",
    "RelayFaultError",
]
