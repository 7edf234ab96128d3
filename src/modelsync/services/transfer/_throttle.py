"""
Bandwidth throttling for byte streams.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Iterator, Union

ByteSource = Union[AsyncIterable[bytes], Iterable[bytes]]


def iter_file(path: Path, chunk_size: int) -> Iterator[bytes]:
    """Yield a file's content in chunks."""
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                return
            yield chunk


class ThrottledReader:
    """
    Async iterator that caps throughput of a byte source.

    Keeps the cumulative rate (bytes since start / seconds since start) at or
    below ``ceiling`` by sleeping before handing out a chunk that would exceed
    it. A ceiling of 0 or None passes chunks through untouched.

    Example:
        >>> reader = ThrottledReader(iter_file(path, 80 * 1024), ceiling=10 * 1024 * 1024)
        >>> await api.upload_blob(digest, reader, size=path.stat().st_size)
    """

    def __init__(
        self,
        source: ByteSource,
        ceiling: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self._ceiling = ceiling or 0
        self._clock = clock
        self._sleep = sleep
        self._started: float | None = None
        self._bytes = 0
        self._slept = 0.0

    @property
    def bytes_read(self) -> int:
        return self._bytes

    @property
    def throttled_seconds(self) -> float:
        """Total time spent sleeping to respect the ceiling."""
        return self._slept

    async def _chunks(self) -> AsyncIterator[bytes]:
        if isinstance(self._source, AsyncIterable):
            async for chunk in self._source:
                yield chunk
        else:
            for chunk in self._source:
                yield chunk

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._chunks():
            if self._started is None:
                self._started = self._clock()
            self._bytes += len(chunk)
            if self._ceiling > 0:
                await self._throttle()
            yield chunk

    async def _throttle(self) -> None:
        elapsed = self._clock() - (self._started or 0.0)
        required = self._bytes / self._ceiling
        if required > elapsed:
            delay = required - elapsed
            self._slept += delay
            await self._sleep(delay)


__all__ = ["ThrottledReader", "iter_file"]
