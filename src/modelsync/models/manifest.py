"""
Local manifest documents.

A manifest lists the layers (blobs) of one model tag with their media type,
digest and size.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from modelsync.models.blob import BlobRole, Digest

MEDIA_TYPE_PREFIX = "application/vnd.ollama.image."

_ROLE_SUFFIXES = {
    "model": BlobRole.MODEL,
    "adapter": BlobRole.ADAPTER,
    "projector": BlobRole.PROJECTOR,
}


class Layer(BaseModel):
    """One manifest layer."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    media_type: str = Field(alias="mediaType")
    digest: Digest
    size: int = 0

    @property
    def kind(self) -> str:
        """Media type suffix, e.g. ``model`` or ``template``."""
        if self.media_type.startswith(MEDIA_TYPE_PREFIX):
            return self.media_type[len(MEDIA_TYPE_PREFIX):]
        return ""

    @property
    def role(self) -> BlobRole | None:
        """Blob role for weight-carrying layers, None for metadata layers."""
        for suffix, role in _ROLE_SUFFIXES.items():
            if self.kind.startswith(suffix):
                return role
        return None


class Manifest(BaseModel):
    """Model manifest (docker distribution v2 shape)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    schema_version: int = Field(default=2, alias="schemaVersion")
    media_type: str = Field(default="", alias="mediaType")
    config: Layer | None = None
    layers: list[Layer] = Field(default_factory=list)

    def layers_of_kind(self, kind: str) -> list[Layer]:
        return [layer for layer in self.layers if layer.kind == kind]

    @property
    def total_size(self) -> int:
        return sum(layer.size for layer in self.layers)


__all__ = ["Layer", "MEDIA_TYPE_PREFIX", "Manifest"]
