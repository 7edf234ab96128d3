"""
Local blob store.

Layout of the server's model directory:

    <models_dir>/blobs/sha256-<hex>                         immutable blob files
    <models_dir>/manifests/<host>/<namespace>/<model>/<tag>  manifest documents
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from modelsync.exceptions import ModelNotFoundError, ParseError
from modelsync.logging import get_logger
from modelsync.models.blob import Digest
from modelsync.models.definition import ModelDefinition, parameters_from_show
from modelsync.models.locator import DEFAULT_HOST, ModelName
from modelsync.models.manifest import Layer, Manifest

logger = get_logger(__name__)

PARTIAL_SUFFIX = ".partial"
HUB_PREFIX = "hub"


class LocalBlobStore:
    """Read and write access to a local model directory."""

    def __init__(self, models_dir: Path | str) -> None:
        self._root = Path(models_dir).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def blobs_dir(self) -> Path:
        return self._root / "blobs"

    @property
    def manifests_dir(self) -> Path:
        return self._root / "manifests"

    # =========================================================================
    # Blobs
    # =========================================================================

    def blob_path(self, digest: Digest) -> Path:
        return self.blobs_dir / digest.blob_filename

    def partial_path(self, digest: Digest) -> Path:
        """Where an in-progress download is written before it is renamed."""
        return self.blobs_dir / f"{digest.blob_filename}{PARTIAL_SUFFIX}"

    def has_blob(self, digest: Digest) -> bool:
        return self.blob_path(digest).is_file()

    def blob_size(self, digest: Digest) -> int:
        return self.blob_path(digest).stat().st_size

    def read_layer_text(self, layer: Layer) -> str:
        """Read a small metadata layer (template, system, params) as text."""
        return self.blob_path(layer.digest).read_text(encoding="utf-8")

    # =========================================================================
    # Manifests
    # =========================================================================

    def manifest_path(self, name: ModelName) -> Path:
        """
        Manifest file of a model.

        ``hub/<model>`` names live directly under ``manifests/hub``, not under
        the default registry host.
        """
        if name.host == DEFAULT_HOST and name.namespace == HUB_PREFIX:
            return self.manifests_dir / HUB_PREFIX / name.model / name.tag
        return self.manifests_dir / name.host / name.namespace / name.model / name.tag

    def load_manifest(self, name: str) -> tuple[ModelName, Manifest]:
        """
        Load the manifest of a local model.

        Untagged names resolve to the ``latest`` tag.

        Raises:
            ModelNotFoundError: If no manifest file exists.
            ParseError: If the manifest is not valid JSON of the expected shape.
        """
        parsed = ModelName.parse(name)
        path = self.manifest_path(parsed)
        if not path.is_file():
            tried = [name] if parsed.explicit_tag else [name, f"{name}:{parsed.tag}"]
            raise ModelNotFoundError(name, tried)

        logger.debug(f"Reading manifest {path}")
        try:
            manifest = Manifest.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (ValueError, ValidationError) as e:
            raise ParseError(f"Invalid manifest for '{name}' at {path}: {e}", cause=e) from e
        return parsed, manifest

    def read_definition(self, manifest: Manifest, files: dict[str, Digest]) -> ModelDefinition:
        """
        Build a model definition from a manifest's metadata layers.

        ``files`` is the filename mapping of the weight layers; template,
        system and params are read from their layer blobs.
        """
        template = system = None
        parameters: list[tuple[str, str]] = []
        for layer in manifest.layers:
            if layer.kind == "template":
                template = self.read_layer_text(layer)
            elif layer.kind == "system":
                system = self.read_layer_text(layer)
            elif layer.kind == "params":
                try:
                    raw = json.loads(self.read_layer_text(layer))
                except ValueError as e:
                    raise ParseError(f"Invalid params layer {layer.digest}: {e}", cause=e) from e
                parameters.extend(parameters_from_show(raw))
        return ModelDefinition(files=files, template=template, system=system, parameters=parameters)

    def __repr__(self) -> str:
        return f"<LocalBlobStore root={str(self._root)!r}>"


__all__ = ["LocalBlobStore", "PARTIAL_SUFFIX"]
