"""
Synchronous copy service.

Wrapper around AsyncCopyService using asyncio.run().
"""

from __future__ import annotations

import asyncio

import httpx

from modelsync.config import SyncSettings
from modelsync.services.copy._aio import AsyncCopyService, Endpoint
from modelsync.services.copy._models import CopyReport
from modelsync.services.transfer import ProgressFactory
from modelsync.services.transfer._recreate import StatusCallback
from modelsync.storage.local import LocalBlobStore


class CopyService:
    """
    Synchronous model copy.

    Thin wrapper around AsyncCopyService.

    Example:
        >>> service = CopyService()
        >>> report = service.copy("llama3", "http://gpu-box:11434/llama3")
        >>> print(report)
    """

    def __init__(
        self,
        settings: SyncSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        store: LocalBlobStore | None = None,
    ) -> None:
        self._async_service = AsyncCopyService(settings=settings, transport=transport, store=store)

    @property
    def settings(self) -> SyncSettings:
        return self._async_service.settings

    def copy(
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
        """
        return asyncio.run(
            self._async_service.copy(
                source,
                destination,
                cancel=cancel,
                progress_factory=progress_factory,
                on_status=on_status,
            )
        )
