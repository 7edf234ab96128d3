"""
Model names and copy endpoints.

A copy endpoint is either a model in the local store or a model on a remote
server, written as ``http(s)://host:port/[namespace/]model[:tag]``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, Field

DEFAULT_HOST = "registry.ollama.ai"
DEFAULT_NAMESPACE = "library"
DEFAULT_TAG = "latest"


class ModelName(BaseModel):
    """Parsed ``[host/][namespace/]model[:tag]`` reference."""

    host: str = DEFAULT_HOST
    namespace: str = DEFAULT_NAMESPACE
    model: str
    tag: str = DEFAULT_TAG
    explicit_tag: bool = False
    explicit_namespace: bool = False

    @classmethod
    def parse(cls, name: str) -> ModelName:
        """
        Parse a model reference.

        Examples:
            >>> ModelName.parse("llama3").registry_path
            'library/llama3'
            >>> ModelName.parse("user/mymodel:q4").tag
            'q4'
        """
        text = name.strip().strip("/")
        if not text:
            raise ValueError("Model name must not be empty")

        tag = DEFAULT_TAG
        explicit_tag = False
        head, _, last = text.rpartition("/")
        if ":" in last:
            last, tag = last.split(":", 1)
            explicit_tag = True
            if not last or not tag:
                raise ValueError(f"Invalid model name: {name!r}")

        parts = [p for p in head.split("/") if p] + [last]
        if len(parts) == 1:
            return cls(model=parts[0], tag=tag, explicit_tag=explicit_tag)
        if len(parts) == 2:
            return cls(
                namespace=parts[0],
                model=parts[1],
                tag=tag,
                explicit_tag=explicit_tag,
                explicit_namespace=True,
            )
        if len(parts) == 3:
            return cls(
                host=parts[0],
                namespace=parts[1],
                model=parts[2],
                tag=tag,
                explicit_tag=explicit_tag,
                explicit_namespace=True,
            )
        raise ValueError(f"Invalid model name: {name!r}")

    @property
    def registry_path(self) -> str:
        """``namespace/model`` as used in registry URLs."""
        return f"{self.namespace}/{self.model}"

    @property
    def bare_name(self) -> str:
        """Name without tag, as the user wrote it."""
        if self.explicit_namespace:
            if self.host != DEFAULT_HOST:
                return f"{self.host}/{self.namespace}/{self.model}"
            return f"{self.namespace}/{self.model}"
        return self.model

    def with_tag(self, tag: str) -> ModelName:
        return self.model_copy(update={"tag": tag, "explicit_tag": True})

    def __str__(self) -> str:
        return f"{self.bare_name}:{self.tag}"


class LocalLocator(BaseModel):
    """Model in the local blob store."""

    kind: Literal["local"] = "local"
    model: str

    @property
    def is_remote(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"local '{self.model}'"


class RemoteLocator(BaseModel):
    """Model on a remote server."""

    kind: Literal["remote"] = "remote"
    server_url: str
    model: str

    @property
    def is_remote(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"'{self.model}' on {self.server_url}"


Locator = Annotated[Union[LocalLocator, RemoteLocator], Field(discriminator="kind")]


def parse_locator(text: str) -> Locator:
    """
    Turn a command-line endpoint into a locator.

    Raises:
        ValueError: If a URL carries no model name.
    """
    if not text.startswith(("http://", "https://")):
        return LocalLocator(model=text)

    parts = urlsplit(text)
    if not parts.hostname:
        raise ValueError(f"Invalid server URL: {text!r}")
    port = parts.port or (443 if parts.scheme == "https" else 80)
    model = parts.path.strip("/")
    if not model:
        raise ValueError(
            "Model name must be specified in the URL (e.g., http://server:port/modelname:tag)"
        )
    return RemoteLocator(server_url=f"{parts.scheme}://{parts.hostname}:{port}", model=model)


__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_NAMESPACE",
    "DEFAULT_TAG",
    "LocalLocator",
    "Locator",
    "ModelName",
    "RemoteLocator",
    "parse_locator",
]
