"""
Blob identity and per-blob transfer task models.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, GetCoreSchemaHandler
from pydantic_core import core_schema

from modelsync.exceptions import InvalidStateTransition
from modelsync.models.locator import Locator

_DIGEST_RE = re.compile(r"^(?P<algo>[a-z0-9]+)[:-](?P<hex>[a-f0-9]{32,128})$")


class Digest(str):
    """
    Algorithm-tagged content hash, e.g. ``sha256:<hex>``.

    The only identity of a blob: equal digests mean identical content.
    Accepts both ``sha256:<hex>`` and the on-disk ``sha256-<hex>`` spelling.
    """

    __slots__ = ()

    def __new__(cls, value: str) -> Digest:
        match = _DIGEST_RE.match(value.strip().lstrip("@"))
        if match is None:
            raise ValueError(f"Invalid digest: {value!r}")
        return super().__new__(cls, f"{match['algo']}:{match['hex']}")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.str_schema(),
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @property
    def algorithm(self) -> str:
        return self.split(":", 1)[0]

    @property
    def hex(self) -> str:
        return self.split(":", 1)[1]

    @property
    def blob_filename(self) -> str:
        """File name used by the local blob store."""
        return f"{self.algorithm}-{self.hex}"

    @property
    def short(self) -> str:
        return f"{self.algorithm}:{self.hex[:12]}"


class BlobRole(str, Enum):
    """What a blob is used for inside a model."""

    MODEL = "model"
    ADAPTER = "adapter"
    PROJECTOR = "projector"


class TransferState(str, Enum):
    """Lifecycle of one TransferTask."""

    PENDING = "pending"
    PROBING = "probing"
    SKIPPED = "skipped"
    TRANSFERRING = "transferring"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[TransferState, frozenset[TransferState]] = {
    TransferState.PENDING: frozenset({TransferState.PROBING}),
    TransferState.PROBING: frozenset(
        {TransferState.SKIPPED, TransferState.TRANSFERRING, TransferState.FAILED}
    ),
    TransferState.TRANSFERRING: frozenset({TransferState.COMPLETED, TransferState.FAILED}),
    TransferState.SKIPPED: frozenset(),
    TransferState.COMPLETED: frozenset(),
    TransferState.FAILED: frozenset(),
}


class TransferTask(BaseModel):
    """One blob to move from source to destination."""

    digest: Digest
    role: BlobRole
    source: Locator
    destination: Locator
    size: int | None = None
    state: TransferState = TransferState.PENDING

    def advance(self, target: TransferState) -> None:
        """Move to target state, rejecting transitions the lifecycle forbids."""
        if target not in _TRANSITIONS[self.state]:
            raise InvalidStateTransition(self.digest, self.state.value, target.value)
        self.state = target

    @property
    def is_done(self) -> bool:
        return self.state in (TransferState.SKIPPED, TransferState.COMPLETED)

    def __repr__(self) -> str:
        return f"TransferTask({self.digest.short}, {self.role.value}, {self.state.value})"
