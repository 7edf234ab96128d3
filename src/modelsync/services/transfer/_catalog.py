"""
Digest catalog: which blobs a model definition references.
"""

from __future__ import annotations

import re
from typing import Iterable

from modelsync.exceptions import NoBlobsFound
from modelsync.logging import get_logger
from modelsync.models.blob import BlobRole, Digest
from modelsync.models.manifest import Manifest

logger = get_logger(__name__)

# FROM /root/.ollama/models/blobs/sha256-<hex>, FROM @sha256:<hex>, ...
_BLOB_REF_RE = re.compile(r"sha256[-:]([a-f0-9]{64})")

_INSTRUCTION_ROLES = {
    "FROM": BlobRole.MODEL,
    "ADAPTER": BlobRole.ADAPTER,
}

_FILENAME_STEMS = {
    BlobRole.MODEL: "model",
    BlobRole.ADAPTER: "adapter",
    BlobRole.PROJECTOR: "projector",
}


class DigestCatalog:
    """
    Ordered, de-duplicated list of (role, digest) pairs for one model.

    Example:
        >>> catalog = DigestCatalog.from_modelfile(show["modelfile"], model="llama3")
        >>> catalog.assign_filenames()
        {'model.gguf': 'sha256:...'}
    """

    def __init__(self, entries: Iterable[tuple[BlobRole, Digest]], model: str | None = None) -> None:
        seen: set[Digest] = set()
        self._entries: list[tuple[BlobRole, Digest]] = []
        for role, digest in entries:
            if digest in seen:
                continue
            seen.add(digest)
            self._entries.append((role, digest))
        if not self._entries:
            raise NoBlobsFound(model)

    @classmethod
    def from_modelfile(cls, text: str | None, model: str | None = None) -> DigestCatalog:
        """
        Extract blob references from ``FROM`` and ``ADAPTER`` lines.

        Comments and lines without a blob reference are skipped.

        Raises:
            NoBlobsFound: If no line references a blob.
        """
        entries: list[tuple[BlobRole, Digest]] = []
        for line in (text or "").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            parts = stripped.split(None, 1)
            if len(parts) != 2:
                continue
            instruction, argument = parts
            role = _INSTRUCTION_ROLES.get(instruction.upper())
            if role is None:
                continue
            match = _BLOB_REF_RE.search(argument)
            if match is None:
                logger.debug(f"Skipping {instruction} line without blob reference: {argument!r}")
                continue
            entries.append((role, Digest(f"sha256:{match.group(1)}")))
        return cls(entries, model=model)

    @classmethod
    def from_manifest(cls, manifest: Manifest, model: str | None = None) -> DigestCatalog:
        """
        Take weight-carrying layers (model, adapter, projector) from a manifest.

        Raises:
            NoBlobsFound: If the manifest has no such layer.
        """
        entries = [(layer.role, layer.digest) for layer in manifest.layers if layer.role is not None]
        return cls(entries, model=model)

    @property
    def entries(self) -> list[tuple[BlobRole, Digest]]:
        return list(self._entries)

    @property
    def digests(self) -> list[Digest]:
        return [digest for _, digest in self._entries]

    def assign_filenames(self) -> dict[str, Digest]:
        """
        Logical file names for the create request.

        Per role in catalog order: ``model.gguf``, ``model_1.gguf``, ...
        """
        counters: dict[BlobRole, int] = {}
        files: dict[str, Digest] = {}
        for role, digest in self._entries:
            index = counters.get(role, 0)
            counters[role] = index + 1
            stem = _FILENAME_STEMS[role]
            filename = f"{stem}.gguf" if index == 0 else f"{stem}_{index}.gguf"
            files[filename] = digest
        return files

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"<DigestCatalog {len(self._entries)} blob(s)>"


__all__ = ["DigestCatalog"]
