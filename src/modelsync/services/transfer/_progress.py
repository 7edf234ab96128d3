"""
Progress reporting for blob transfers.
"""

from __future__ import annotations

import time
from typing import AsyncIterable, AsyncIterator, Callable, Protocol

# Callback(transferred, total, elapsed_seconds)
ProgressCallback = Callable[[int, int, float], None]


class ProgressFactory(Protocol):
    """Creates the callback for one blob (digest, total size)."""

    def __call__(self, digest: str, total: int) -> ProgressCallback | None: ...


class ProgressReporter:
    """
    Rate-limited progress callback driver.

    ``advance()`` is called per chunk; the callback fires at most once every
    ``min_interval`` seconds. ``finish()`` fires exactly one final call at
    100% no matter how the samples fell.
    """

    def __init__(
        self,
        callback: ProgressCallback | None,
        total: int | None,
        min_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._callback = callback
        self._total = total or 0
        self._min_interval = min_interval
        self._clock = clock
        self._started = clock()
        self._last_emit: float | None = None
        self._transferred = 0
        self._finished = False
        self._calls = 0

    @property
    def transferred(self) -> int:
        return self._transferred

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    @property
    def calls(self) -> int:
        """Number of callback invocations so far."""
        return self._calls

    def advance(self, n: int) -> None:
        self._transferred += n
        if self._callback is None or self._finished:
            return
        now = self._clock()
        if self._last_emit is not None and now - self._last_emit < self._min_interval:
            return
        self._last_emit = now
        self._emit(self._callback, self._transferred, self._total, now - self._started)

    def finish(self) -> None:
        """Report completion once; later calls do nothing."""
        if self._finished:
            return
        self._finished = True
        if self._callback is None:
            return
        total = self._total or self._transferred
        self._emit(self._callback, total, total, self.elapsed)

    def _emit(self, callback: ProgressCallback, transferred: int, total: int, elapsed: float) -> None:
        self._calls += 1
        callback(transferred, total, elapsed)

    async def track(self, source: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
        """Pass chunks through while counting them."""
        async for chunk in source:
            self.advance(len(chunk))
            yield chunk


__all__ = ["ProgressCallback", "ProgressFactory", "ProgressReporter"]
