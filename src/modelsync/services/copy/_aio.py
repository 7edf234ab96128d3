"""
Asynchronous copy service.

Copies one model between the local store and a remote server, or between
two remote servers:

1. Check that the servers involved are up
2. Read the model definition and the blobs it references
3. Transfer every blob the destination lacks, in catalog order
4. Recreate the model on the destination
"""

from __future__ import annotations

import asyncio
import time
from typing import Union

import httpx

from modelsync.api.client import ServerAPI
from modelsync.config import SyncSettings, get_settings
from modelsync.exceptions import CopyCancelledError, TransferError
from modelsync.logging import get_logger
from modelsync.models.blob import TransferTask
from modelsync.models.definition import ModelDefinition, parameters_from_show
from modelsync.models.locator import LocalLocator, Locator, RemoteLocator, parse_locator
from modelsync.services.copy._models import CopyReport
from modelsync.services.transfer import (
    BlobResult,
    DigestCatalog,
    Failed,
    ModelRecreator,
    ProgressFactory,
    RegistryMirrors,
    Topology,
    TransferEngine,
    TransferOptions,
)
from modelsync.services.transfer._recreate import StatusCallback
from modelsync.storage.local import LocalBlobStore

logger = get_logger(__name__)

Endpoint = Union[str, LocalLocator, RemoteLocator]


class AsyncCopyService:
    """
    Asynchronous model copy.

    Example:
        >>> service = AsyncCopyService()
        >>> report = await service.copy("llama3:8b", "http://gpu-box:11434/llama3:8b")
        >>> print(report)  # Shows summary
    """

    def __init__(
        self,
        settings: SyncSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        store: LocalBlobStore | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._store = store or LocalBlobStore(self._settings.models_dir)

    @property
    def settings(self) -> SyncSettings:
        return self._settings

    @property
    def store(self) -> LocalBlobStore:
        return self._store

    def transfer_options(self) -> TransferOptions:
        """Transfer options from current settings."""
        s = self._settings
        return TransferOptions(
            buffer_size=s.buffer_size,
            chunk_size=s.chunk_size,
            bandwidth_limit=s.bandwidth_limit,
            transfer_timeout=s.transfer_timeout,
            probe_timeout=s.probe_timeout,
            progress_interval=s.progress_interval,
        )

    async def copy(
        self,
        source: Endpoint,
        destination: Endpoint,
        cancel: asyncio.Event | None = None,
        progress_factory: ProgressFactory | None = None,
        on_status: StatusCallback | None = None,
    ) -> CopyReport:
        """
        Copy a model.

        Args:
            source: Local model name or ``http(s)://host:port/model[:tag]``.
            destination: Local model name or remote URL.
            cancel: Checked before each blob; set it to stop the copy.
            progress_factory: Builds a progress callback for each blob.
            on_status: Receives create status lines.

        Returns:
            CopyReport with per-blob results and creation status.

        Raises:
            UnsupportedTopologyError: Both endpoints are local.
            ServerUnavailableError: A server involved is not answering.
            CopyCancelledError: ``cancel`` was set before all blobs were done.
            TransferError: A blob could not be transferred.
            CreationError: The destination did not create the model.
        """
        src = self._locator(source)
        dst = self._locator(destination)
        topology = Topology.between(src, dst)
        started = time.monotonic()
        logger.info(f"Copying {src} to {dst} ({topology.value})")

        create_api = await self._check_servers(src, dst)
        catalog, definition = await self._read_definition(src)
        logger.info(f"{len(catalog)} blob(s) referenced by {src.model}")

        options = self.transfer_options()
        engine = TransferEngine(
            options,
            self._store,
            RegistryMirrors(
                self._settings.registry_hosts,
                timeout=options.transfer_timeout,
                transport=self._transport,
            ),
            progress_factory=progress_factory,
            transport=self._transport,
        )

        results: list[BlobResult] = []
        for role, digest in catalog:
            if cancel is not None and cancel.is_set():
                raise CopyCancelledError(
                    f"Copy of {src.model} cancelled after {len(results)} of {len(catalog)} blob(s)"
                )
            task = TransferTask(digest=digest, role=role, source=src, destination=dst)
            result = await engine.transfer(task)
            results.append(result)
            if isinstance(result, Failed):
                cause = result.cause
                if isinstance(cause, TransferError):
                    raise cause
                raise TransferError(
                    f"Blob {digest} failed: {cause}", digest=digest, cause=cause
                ) from cause

        creation = await ModelRecreator().recreate(create_api, dst.model, definition, on_status)

        report = CopyReport(
            source=str(src),
            destination=str(dst),
            model=dst.model,
            topology=topology,
            results=results,
            creation=creation,
            duration=time.monotonic() - started,
        )
        logger.info(repr(report))
        return report

    # =========================================================================
    # Internal
    # =========================================================================

    def _locator(self, endpoint: Endpoint) -> Locator:
        if isinstance(endpoint, str):
            return parse_locator(endpoint)
        return endpoint

    def _api(self, server_url: str) -> ServerAPI:
        return ServerAPI(
            server_url,
            timeout=self._settings.transfer_timeout,
            probe_timeout=self._settings.probe_timeout,
            transport=self._transport,
        )

    async def _check_servers(self, src: Locator, dst: Locator) -> ServerAPI:
        """Verify servers are up; return the API that will create the model."""
        if isinstance(src, RemoteLocator):
            version = await self._api(src.server_url).version()
            logger.debug(f"Source server {src.server_url} version {version}")

        if isinstance(dst, RemoteLocator):
            create_api = self._api(dst.server_url)
        else:
            # Blobs land in the local store; the local server registers the model
            create_api = self._api(self._settings.local_server_url)
        version = await create_api.version()
        logger.debug(f"Destination server {create_api.base_url} version {version}")
        return create_api

    async def _read_definition(self, src: Locator) -> tuple[DigestCatalog, ModelDefinition]:
        if isinstance(src, RemoteLocator):
            info = await self._api(src.server_url).show(src.model)
            catalog = DigestCatalog.from_modelfile(info.get("modelfile"), model=src.model)
            definition = ModelDefinition(
                files=catalog.assign_filenames(),
                template=info.get("template") or None,
                system=info.get("system") or None,
                parameters=parameters_from_show(info.get("parameters")),
            )
            return catalog, definition

        _, manifest = self._store.load_manifest(src.model)
        catalog = DigestCatalog.from_manifest(manifest, model=src.model)
        definition = self._store.read_definition(manifest, catalog.assign_filenames())
        return catalog, definition


__all__ = ["AsyncCopyService", "Endpoint"]
