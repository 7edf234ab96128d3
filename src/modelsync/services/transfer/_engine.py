"""
Transfer engine: moves one blob from source to destination.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import aclosing

import httpx

from modelsync.api.client import ServerAPI
from modelsync.exceptions import (
    IncompatibleServerError,
    ModelSyncError,
    ProbeError,
    TransferError,
)
from modelsync.logging import get_logger
from modelsync.models.blob import Digest, TransferState, TransferTask
from modelsync.models.locator import Locator, ModelName
from modelsync.storage.local import LocalBlobStore
from modelsync.services.transfer._mirrors import RegistryMirrors
from modelsync.services.transfer._models import (
    BlobResult,
    Failed,
    Skipped,
    Topology,
    TransferOptions,
    Transferred,
)
from modelsync.services.transfer._pipe import BoundedRelayPipe, RelayFault
from modelsync.services.transfer._probe import ExistenceProbe
from modelsync.services.transfer._progress import ProgressFactory, ProgressReporter
from modelsync.services.transfer._throttle import ThrottledReader, iter_file

logger = get_logger(__name__)


class TransferEngine:
    """
    Moves blobs between a local store, remote servers and registry mirrors.

    For every task the destination is probed first; a blob that is already
    there is skipped without touching the source. Otherwise:

    - local -> remote: the blob file is streamed as the upload body.
    - remote -> local: the blob is downloaded from a registry mirror into
      ``<blob>.partial`` and renamed when complete.
    - remote -> remote: a registry download and a destination upload run
      concurrently, joined by a BoundedRelayPipe.

    Example:
        >>> engine = TransferEngine(TransferOptions(), store, RegistryMirrors())
        >>> result = await engine.transfer(task)
        >>> if not result.ok:
        ...     raise result.cause
    """

    def __init__(
        self,
        options: TransferOptions,
        store: LocalBlobStore,
        mirrors: RegistryMirrors,
        probe: ExistenceProbe | None = None,
        progress_factory: ProgressFactory | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._options = options
        self._store = store
        self._mirrors = mirrors
        self._probe = probe or ExistenceProbe()
        self._progress_factory = progress_factory
        self._transport = transport

    @property
    def options(self) -> TransferOptions:
        return self._options

    # =========================================================================
    # Public API
    # =========================================================================

    async def transfer(self, task: TransferTask) -> BlobResult:
        """
        Transfer one blob.

        Failures are returned as ``Failed`` with the cause attached;
        cancellation propagates.
        """
        topology = Topology.between(task.source, task.destination)
        digest = task.digest

        task.advance(TransferState.PROBING)
        probe = await self._probe.probe(self._endpoint(task.destination), digest)
        try:
            probe.raise_for_error()
        except ProbeError as e:
            return self._fail(task, e)

        if probe.exists:
            logger.info(f"Blob {digest.short} already exists on {task.destination}, skipping")
            task.advance(TransferState.SKIPPED)
            return Skipped(digest=digest, reason="already exists on destination")

        task.advance(TransferState.TRANSFERRING)
        logger.info(f"Transferring blob {digest} ({topology.value})")
        started = time.monotonic()
        try:
            if topology == Topology.LOCAL_TO_REMOTE:
                size, source_url = await self._local_to_remote(task)
            elif topology == Topology.REMOTE_TO_LOCAL:
                size, source_url = await self._remote_to_local(task)
            else:
                size, source_url = await self._remote_to_remote(task)
        except ModelSyncError as e:
            return self._fail(task, e)
        except httpx.TransportError as e:
            return self._fail(
                task,
                TransferError(f"Network error transferring blob {digest}: {e}", digest=digest, cause=e),
            )
        except OSError as e:
            return self._fail(
                task,
                TransferError(f"I/O error transferring blob {digest}: {e}", digest=digest, cause=e),
            )

        task.size = size
        task.advance(TransferState.COMPLETED)
        result = Transferred(
            digest=digest,
            size=size,
            duration=time.monotonic() - started,
            source_url=source_url,
        )
        logger.info(f"Blob {digest.short} done: {result.speed_mbps:.1f} MB/s")
        return result

    # =========================================================================
    # Topologies
    # =========================================================================

    async def _local_to_remote(self, task: TransferTask) -> tuple[int, str | None]:
        digest = task.digest
        api = self._api(task.destination)
        path = self._store.blob_path(digest)
        size = path.stat().st_size

        reporter = self._reporter(digest, size)
        chunks = ThrottledReader(
            iter_file(path, self._options.chunk_size),
            ceiling=self._options.bandwidth_limit,
        )
        async with aclosing(reporter.track(chunks)) as body:
            response = await api.upload_blob(digest, body, size=size)
        self._check_upload(response, digest)
        reporter.finish()
        return size, str(path)

    async def _remote_to_local(self, task: TransferTask) -> tuple[int, str | None]:
        digest = task.digest
        model = ModelName.parse(task.source.model)
        partial = self._store.partial_path(digest)
        partial.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with self._mirrors.open_blob(model, digest) as hit:
                reporter = self._reporter(digest, hit.size)
                chunks = ThrottledReader(
                    hit.response.aiter_bytes(self._options.chunk_size),
                    ceiling=self._options.bandwidth_limit,
                )
                with open(partial, "wb") as f:
                    async with aclosing(reporter.track(chunks)) as tracked:
                        async for chunk in tracked:
                            f.write(chunk)

                size = reporter.transferred
                if hit.size is not None and size != hit.size:
                    raise TransferError(
                        f"Download of blob {digest} ended after {size} of {hit.size} bytes",
                        digest=digest,
                    )
                partial.replace(self._store.blob_path(digest))
                reporter.finish()
                return size, hit.url
        finally:
            if partial.exists():
                partial.unlink()

    async def _remote_to_remote(self, task: TransferTask) -> tuple[int, str | None]:
        digest = task.digest
        model = ModelName.parse(task.source.model)
        api = self._api(task.destination)

        async with self._mirrors.open_blob(model, digest) as hit:
            size = hit.size
            pipe = BoundedRelayPipe(self._options.buffer_size)
            reporter = self._reporter(digest, size)
            logger.debug(f"Relaying {digest.short} through {pipe.capacity} byte buffer")

            async def download() -> None:
                try:
                    chunks = ThrottledReader(
                        hit.response.aiter_bytes(self._options.chunk_size),
                        ceiling=self._options.bandwidth_limit,
                    )
                    async for chunk in chunks:
                        await pipe.write(chunk)
                    await pipe.complete_writing()
                except BaseException as e:
                    await pipe.fail(e)
                    raise

            async def upload() -> None:
                try:
                    async with aclosing(reporter.track(pipe)) as body:
                        response = await api.upload_blob(digest, body, size=size)
                    self._check_upload(response, digest)
                except BaseException as e:
                    await pipe.fail(e)
                    raise

            await asyncio.gather(download(), upload(), return_exceptions=True)

            outcome = pipe.outcome
            if isinstance(outcome, RelayFault):
                raise outcome.error

            reporter.finish()
            logger.debug(f"Relay of {digest.short} peaked at {pipe.high_water_mark} bytes")
            return pipe.bytes_read, hit.url

    # =========================================================================
    # Helpers
    # =========================================================================

    def _api(self, locator: Locator) -> ServerAPI:
        return ServerAPI(
            locator.server_url,
            timeout=self._options.transfer_timeout,
            probe_timeout=self._options.probe_timeout,
            transport=self._transport,
        )

    def _endpoint(self, locator: Locator) -> ServerAPI | LocalBlobStore:
        if locator.is_remote:
            return self._api(locator)
        return self._store

    def _reporter(self, digest: Digest, total: int | None) -> ProgressReporter:
        callback = None
        if self._progress_factory is not None:
            callback = self._progress_factory(str(digest), total or 0)
        return ProgressReporter(callback, total, min_interval=self._options.progress_interval)

    def _check_upload(self, response: httpx.Response, digest: Digest) -> None:
        if response.status_code == 400:
            raise IncompatibleServerError(digest)
        if not response.is_success:
            raise TransferError(
                f"Upload of blob {digest} failed (HTTP status {response.status_code}): "
                f"{response.text.strip()}",
                digest=digest,
                status_code=response.status_code,
            )

    def _fail(self, task: TransferTask, error: ModelSyncError) -> Failed:
        logger.error(f"Blob {task.digest.short} failed: {error}")
        task.advance(TransferState.FAILED)
        return Failed(digest=task.digest, cause=error)


__all__ = ["TransferEngine"]
