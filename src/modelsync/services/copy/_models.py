"""
Models for copy service.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from modelsync.services.transfer import BlobResult, CreationResult, Topology


class CopyReport(BaseModel):
    """Result of a completed model copy."""

    source: str
    destination: str
    model: str
    topology: Topology
    results: list[BlobResult] = Field(default_factory=list)
    creation: CreationResult | None = None
    duration: float = 0.0

    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.results if r.kind == "skipped")

    @property
    def transferred_count(self) -> int:
        return sum(1 for r in self.results if r.kind == "transferred")

    @property
    def bytes_transferred(self) -> int:
        return sum(r.bytes_transferred for r in self.results)

    @property
    def speed_mbps(self) -> float:
        """Average speed over the whole copy in MB/s."""
        if self.duration <= 0:
            return 0.0
        return (self.bytes_transferred / 1024 / 1024) / self.duration

    def summary(self) -> str:
        """Human-readable summary."""
        size_mb = self.bytes_transferred / 1024 / 1024
        lines = [
            f"Model: {self.model} ({self.topology.value})",
            f"Blobs: {len(self.results)} "
            f"({self.transferred_count} transferred, {self.skipped_count} skipped)",
            f"Size: {size_mb:.1f} MB ({self.bytes_transferred:,} bytes)",
            f"Total: {self.duration:.1f}s @ {self.speed_mbps:.1f} MB/s",
        ]
        if self.creation is not None and self.creation.status:
            lines.append(f"Create: {self.creation.status}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CopyReport({self.model}, {self.transferred_count} transferred, "
            f"{self.skipped_count} skipped, {self.duration:.1f}s)"
        )

    def __str__(self) -> str:
        return self.summary()


__all__ = ["CopyReport"]
