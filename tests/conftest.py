"""
Pytest configuration and fixtures for modelsync tests.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from urllib.parse import unquote

import httpx
import pytest

from modelsync.config import reset_settings
from modelsync.models.blob import Digest
from modelsync.storage.local import LocalBlobStore

REGISTRY_HOSTS = ("registry.ollama.ai", "registry.ollama.com")


def digest_of(data: bytes) -> Digest:
    return Digest(f"sha256:{hashlib.sha256(data).hexdigest()}")


class FakeServer:
    """In-memory model server speaking the /api endpoints."""

    def __init__(self) -> None:
        self.version = "0.5.7"
        self.version_text: str | None = None
        self.blobs: dict[str, bytes] = {}
        self.show: dict | None = None
        self.head_status: int | None = None
        self.upload_status: int | None = None
        self.create_status_code = 200
        self.create_lines: list[dict] = [
            {"status": "using existing layers"},
            {"status": "writing manifest"},
            {"status": "success"},
        ]
        self.created: list[dict] = []
        self.uploads: list[tuple[str, int]] = []
        self.heads: list[str] = []
        self.down = False

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = unquote(request.url.path)

        if request.method == "GET" and path == "/api/version":
            if self.version_text is not None:
                return httpx.Response(200, text=self.version_text)
            return httpx.Response(200, json={"version": self.version})

        if request.method == "POST" and path == "/api/show":
            if self.show is None:
                return httpx.Response(404, json={"error": "model not found"})
            return httpx.Response(200, json=self.show)

        if path.startswith("/api/blobs/"):
            digest = path[len("/api/blobs/"):]
            if request.method == "HEAD":
                self.heads.append(digest)
                if self.head_status is not None:
                    return httpx.Response(self.head_status)
                return httpx.Response(200 if digest in self.blobs else 404)
            if request.method == "POST":
                if self.upload_status is not None:
                    return httpx.Response(self.upload_status, text="rejected")
                self.blobs[digest] = request.content
                self.uploads.append((digest, len(request.content)))
                return httpx.Response(201)

        if request.method == "POST" and path == "/api/create":
            self.created.append(json.loads(request.content))
            body = "\n".join(json.dumps(line) for line in self.create_lines) + "\n"
            return httpx.Response(self.create_status_code, text=body)

        return httpx.Response(404, text="404 page not found")


class FakeNetwork:
    """Routes requests to fake servers (by host:port) and registry mirrors."""

    def __init__(self) -> None:
        self.servers: dict[str, FakeServer] = {}
        self.registry_blobs: dict[str, bytes] = {}
        self.registry_requests: list[str] = []

    def server(self, netloc: str) -> FakeServer:
        return self.servers.setdefault(netloc, FakeServer())

    def handler(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host in REGISTRY_HOSTS:
            return self._registry(request)

        server = self.servers.get(f"{host}:{request.url.port}")
        if server is None or server.down:
            raise httpx.ConnectError("Connection refused", request=request)
        return server.handle(request)

    def _registry(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.registry_requests.append(url)
        digest = unquote(request.url.path).rsplit("/", 1)[-1]
        data = self.registry_blobs.get(digest)
        if data is None:
            return httpx.Response(404, json={"errors": [{"code": "BLOB_UNKNOWN"}]})
        return httpx.Response(200, content=data, headers={"Content-Length": str(len(data))})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def clean_settings():
    """Drop the settings singleton around each test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def network() -> FakeNetwork:
    """Fake servers and registry mirrors."""
    return FakeNetwork()


@pytest.fixture
def store(tmp_path: Path) -> LocalBlobStore:
    """Empty local models directory."""
    (tmp_path / "blobs").mkdir()
    (tmp_path / "manifests").mkdir()
    return LocalBlobStore(tmp_path)


@pytest.fixture
def blob_a() -> bytes:
    return b"A" * (1024 * 1024)


@pytest.fixture
def blob_b() -> bytes:
    return bytes(range(256)) * (10 * 1024 * 1024 // 256)


@pytest.fixture
def digest_a(blob_a: bytes) -> Digest:
    return digest_of(blob_a)


@pytest.fixture
def digest_b(blob_b: bytes) -> Digest:
    return digest_of(blob_b)
