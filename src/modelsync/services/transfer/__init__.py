"""
Blob replication engine.

Moves content-addressed blobs between the local store, remote servers and
public registry mirrors, then recreates the model on the destination.

Features:
- Existence probe before every transfer (present blobs are never re-sent)
- Bounded relay pipe for remote-to-remote copies (fixed memory per blob)
- Bandwidth ceiling and rate-limited progress callbacks
- Fail-fast results (Skipped | Transferred | Failed) per blob
"""

from modelsync.services.transfer._catalog import DigestCatalog
from modelsync.services.transfer._engine import TransferEngine
from modelsync.services.transfer._mirrors import MirrorHit, RegistryMirrors
from modelsync.services.transfer._models import (
    BlobResult,
    Failed,
    Skipped,
    Topology,
    TransferOptions,
    Transferred,
)
from modelsync.services.transfer._pipe import (
    BoundedRelayPipe,
    PipeState,
    RelayFault,
    RelayOk,
    RelayOutcome,
)
from modelsync.services.transfer._probe import ExistenceProbe, ProbeOutcome, ProbeResult
from modelsync.services.transfer._progress import (
    ProgressCallback,
    ProgressFactory,
    ProgressReporter,
)
from modelsync.services.transfer._recreate import CreationResult, ModelRecreator
from modelsync.services.transfer._throttle import ThrottledReader, iter_file

__all__ = [
    "BlobResult",
    "BoundedRelayPipe",
    "CreationResult",
    "DigestCatalog",
    "ExistenceProbe",
    "Failed",
    "MirrorHit",
    "ModelRecreator",
    "PipeState",
    "ProbeOutcome",
    "ProbeResult",
    "ProgressCallback",
    "ProgressFactory",
    "ProgressReporter",
    "RegistryMirrors",
    "RelayFault",
    "RelayOk",
    "RelayOutcome",
    "Skipped",
    "ThrottledReader",
    "Topology",
    "TransferEngine",
    "TransferOptions",
    "Transferred",
    "iter_file",
]
