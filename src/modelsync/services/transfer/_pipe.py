"""
Bounded relay pipe.

Connects one producer task (downloading) and one consumer task (uploading)
through a byte queue that never holds more than ``capacity`` bytes, so a
blob of any size streams through a fixed amount of memory.

Faults are recorded as a tagged outcome (RelayOk | RelayFault) inside the
pipe. Each end observes the other's fault on its next pending or later
operation as a RelayFaultError whose cause is the recorded error.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Union

from modelsync.exceptions import RelayClosedError, RelayFaultError


@dataclass(frozen=True)
class RelayOk:
    """No fault recorded."""


@dataclass(frozen=True)
class RelayFault:
    """First fault recorded by either end."""

    error: BaseException


RelayOutcome = Union[RelayOk, RelayFault]


class PipeState(str, Enum):
    """Pipe lifecycle: OPEN -> DRAINING -> CLOSED, or FAULTED from anywhere."""

    OPEN = "open"
    DRAINING = "draining"
    CLOSED = "closed"
    FAULTED = "faulted"


class BoundedRelayPipe:
    """
    Single-producer / single-consumer byte channel with a hard size bound.

    Example:
        >>> pipe = BoundedRelayPipe(capacity=64 * 1024 * 1024)
        >>>
        >>> async def produce():
        ...     try:
        ...         async for chunk in response.aiter_bytes():
        ...             await pipe.write(chunk)
        ...         await pipe.complete_writing()
        ...     except BaseException as e:
        ...         await pipe.fail(e)
        ...         raise
        >>>
        >>> async def consume():
        ...     async for chunk in pipe:
        ...         sink.write(chunk)
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"Pipe capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._chunks: deque[bytes] = deque()
        self._resident = 0
        self._completed = False
        self._fault: RelayFault | None = None
        self._cond = asyncio.Condition()

        # Metrics
        self._high_water_mark = 0
        self._bytes_written = 0
        self._bytes_read = 0

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def resident(self) -> int:
        """Bytes currently buffered."""
        return self._resident

    @property
    def high_water_mark(self) -> int:
        """Largest number of bytes ever buffered at once."""
        return self._high_water_mark

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    @property
    def bytes_read(self) -> int:
        return self._bytes_read

    @property
    def outcome(self) -> RelayOutcome:
        return self._fault if self._fault is not None else RelayOk()

    @property
    def state(self) -> PipeState:
        if self._fault is not None:
            return PipeState.FAULTED
        if not self._completed:
            return PipeState.OPEN
        if self._resident:
            return PipeState.DRAINING
        return PipeState.CLOSED

    # =========================================================================
    # Producer side
    # =========================================================================

    async def write(self, chunk: bytes) -> None:
        """
        Enqueue bytes, suspending while the buffer is full.

        Chunks larger than the free space are split, so the resident
        byte count never exceeds capacity.

        Raises:
            RelayFaultError: If a fault was recorded.
            RelayClosedError: If writing was already completed.
        """
        data = bytes(chunk)
        async with self._cond:
            self._raise_if_faulted()
            if self._completed:
                raise RelayClosedError("Write after complete_writing()")

            offset = 0
            while offset < len(data):
                await self._cond.wait_for(self._has_room)
                self._raise_if_faulted()

                size = min(self._capacity - self._resident, len(data) - offset)
                self._chunks.append(data[offset:offset + size])
                offset += size
                self._resident += size
                self._bytes_written += size
                self._high_water_mark = max(self._high_water_mark, self._resident)
                self._cond.notify_all()

    async def complete_writing(self) -> None:
        """
        Signal that no more bytes will be written. Call exactly once.

        Raises:
            RelayClosedError: On a second call.
        """
        async with self._cond:
            if self._completed:
                raise RelayClosedError("complete_writing() called twice")
            self._completed = True
            self._cond.notify_all()

    # =========================================================================
    # Consumer side
    # =========================================================================

    async def read(self, max_bytes: int | None = None) -> bytes:
        """
        Dequeue the next bytes, suspending while the buffer is empty.

        Returns:
            Up to ``max_bytes`` bytes, or ``b""`` once writing is complete
            and everything was drained.

        Raises:
            RelayFaultError: If a fault was recorded, even with bytes still buffered.
        """
        async with self._cond:
            await self._cond.wait_for(self._readable)
            self._raise_if_faulted()
            if not self._chunks:
                return b""

            chunk = self._chunks.popleft()
            if max_bytes is not None and 0 < max_bytes < len(chunk):
                self._chunks.appendleft(chunk[max_bytes:])
                chunk = chunk[:max_bytes]
            self._resident -= len(chunk)
            self._bytes_read += len(chunk)
            self._cond.notify_all()
            return chunk

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.read()
            if not chunk:
                return
            yield chunk

    # =========================================================================
    # Faults
    # =========================================================================

    async def fail(self, error: BaseException) -> bool:
        """
        Record a fault and wake both ends.

        Only the first fault is kept. Returns True if this call recorded it.
        """
        async with self._cond:
            if self._fault is not None:
                return False
            self._fault = RelayFault(error)
            self._cond.notify_all()
            return True

    def _has_room(self) -> bool:
        return self._fault is not None or self._resident < self._capacity

    def _readable(self) -> bool:
        return self._fault is not None or bool(self._chunks) or self._completed

    def _raise_if_faulted(self) -> None:
        if self._fault is not None:
            error = self._fault.error
            raise RelayFaultError(f"Relay aborted: {error}", cause=error) from error

    def __repr__(self) -> str:
        return (
            f"<BoundedRelayPipe {self.state.value} "
            f"{self._resident}/{self._capacity} bytes>"
        )


__all__ = [
    "BoundedRelayPipe",
    "PipeState",
    "RelayFault",
    "RelayOk",
    "RelayOutcome",
]
