"""Tests for TransferEngine."""

import asyncio

import httpx
import pytest

from modelsync.exceptions import (
    BlobUnavailableError,
    IncompatibleServerError,
    ProbeError,
    TransferError,
    UnsupportedTopologyError,
)
from modelsync.models import BlobRole, LocalLocator, RemoteLocator, TransferState, TransferTask
from modelsync.services.transfer import (
    Failed,
    ProgressReporter,
    RegistryMirrors,
    Skipped,
    TransferEngine,
    TransferOptions,
    Transferred,
)

SOURCE = RemoteLocator(server_url="http://source:11434", model="m:latest")
DEST = RemoteLocator(server_url="http://dest:11434", model="m:latest")
LOCAL = LocalLocator(model="m:latest")


def make_engine(store, transport, progress_factory=None, **options):
    return TransferEngine(
        TransferOptions(**options),
        store,
        RegistryMirrors(transport=transport),
        progress_factory=progress_factory,
        transport=transport,
    )


def make_task(digest, source, destination):
    return TransferTask(digest=digest, role=BlobRole.MODEL, source=source, destination=destination)


class TestSkip:
    """Tests for blobs already on the destination."""

    @pytest.mark.asyncio
    async def test_skip_remote_without_reading_source(self, store, network, digest_a, blob_a):
        dest = network.server("dest:11434")
        dest.blobs[digest_a] = blob_a
        engine = make_engine(store, network.transport)
        task = make_task(digest_a, LOCAL, DEST)

        # The local blob file does not exist; reading it would fail
        result = await engine.transfer(task)

        assert isinstance(result, Skipped)
        assert result.ok
        assert result.bytes_transferred == 0
        assert task.state == TransferState.SKIPPED
        assert dest.uploads == []

    @pytest.mark.asyncio
    async def test_skip_local_without_contacting_registry(self, store, network, digest_a):
        store.blob_path(digest_a).write_bytes(b"present")
        engine = make_engine(store, network.transport)

        result = await engine.transfer(make_task(digest_a, SOURCE, LOCAL))

        assert isinstance(result, Skipped)
        assert network.registry_requests == []


class TestLocalToRemote:
    """Tests for uploads from the local store."""

    @pytest.mark.asyncio
    async def test_upload(self, store, network, digest_b, blob_b):
        store.blob_path(digest_b).write_bytes(blob_b)
        dest = network.server("dest:11434")
        engine = make_engine(store, network.transport)
        task = make_task(digest_b, LOCAL, DEST)

        result = await engine.transfer(task)

        assert isinstance(result, Transferred)
        assert result.size == len(blob_b)
        assert dest.blobs[digest_b] == blob_b
        assert task.state == TransferState.COMPLETED
        assert task.size == len(blob_b)

    @pytest.mark.asyncio
    async def test_missing_local_blob_fails(self, store, network, digest_b):
        network.server("dest:11434")
        engine = make_engine(store, network.transport)

        result = await engine.transfer(make_task(digest_b, LOCAL, DEST))

        assert isinstance(result, Failed)
        assert isinstance(result.cause, TransferError)

    @pytest.mark.asyncio
    async def test_upload_400_is_incompatible_server(self, store, network, digest_a, blob_a):
        store.blob_path(digest_a).write_bytes(blob_a)
        network.server("dest:11434").upload_status = 400
        engine = make_engine(store, network.transport)
        task = make_task(digest_a, LOCAL, DEST)

        result = await engine.transfer(task)

        assert isinstance(result, Failed)
        assert isinstance(result.cause, IncompatibleServerError)
        assert "incompatible server versions" in result.error
        assert task.state == TransferState.FAILED

    @pytest.mark.asyncio
    async def test_upload_500_carries_status(self, store, network, digest_a, blob_a):
        store.blob_path(digest_a).write_bytes(blob_a)
        network.server("dest:11434").upload_status = 500
        engine = make_engine(store, network.transport)

        result = await engine.transfer(make_task(digest_a, LOCAL, DEST))

        assert isinstance(result.cause, TransferError)
        assert result.cause.status_code == 500
        assert "500" in result.error

    @pytest.mark.asyncio
    async def test_progress_final_call(self, store, network, digest_a, blob_a):
        store.blob_path(digest_a).write_bytes(blob_a)
        network.server("dest:11434")
        calls = []

        def factory(digest, total):
            assert digest == digest_a
            return lambda transferred, size, elapsed: calls.append((transferred, size))

        engine = make_engine(store, network.transport, progress_factory=factory)
        await engine.transfer(make_task(digest_a, LOCAL, DEST))

        assert calls[-1] == (len(blob_a), len(blob_a))


class StopsReadingTransport(httpx.AsyncBaseTransport):
    """Server that rejects an upload after reading its first chunk."""

    async def handle_async_request(self, request):
        if request.method == "HEAD":
            return httpx.Response(404)
        async for _ in request.stream:
            break
        return httpx.Response(500, text="disk full")


class TestUploadBody:
    """Tests for the upload body when the server stops reading."""

    @pytest.mark.asyncio
    async def test_body_closed_after_rejection(self, store, digest_b, blob_b, monkeypatch):
        store.blob_path(digest_b).write_bytes(blob_b)
        closed = []
        track = ProgressReporter.track

        async def recording_track(self, source):
            try:
                async for chunk in track(self, source):
                    yield chunk
            finally:
                closed.append(True)

        monkeypatch.setattr(ProgressReporter, "track", recording_track)
        engine = make_engine(store, StopsReadingTransport())

        result = await engine.transfer(make_task(digest_b, LOCAL, DEST))

        assert isinstance(result, Failed)
        assert result.cause.status_code == 500
        assert closed == [True]


class TestProbeFailure:
    """Tests for probe errors."""

    @pytest.mark.asyncio
    async def test_probe_error_fails_task(self, store, network, digest_a):
        network.server("dest:11434").head_status = 503
        engine = make_engine(store, network.transport)
        task = make_task(digest_a, SOURCE, DEST)

        result = await engine.transfer(task)

        assert isinstance(result, Failed)
        assert isinstance(result.cause, ProbeError)
        assert result.cause.status_code == 503
        assert task.state == TransferState.FAILED
        assert network.registry_requests == []


class TestRemoteToLocal:
    """Tests for downloads into the local store."""

    @pytest.mark.asyncio
    async def test_download(self, store, network, digest_b, blob_b):
        network.registry_blobs[digest_b] = blob_b
        engine = make_engine(store, network.transport)

        result = await engine.transfer(make_task(digest_b, SOURCE, LOCAL))

        assert isinstance(result, Transferred)
        assert result.size == len(blob_b)
        assert result.source_url.startswith("https://registry.ollama.ai/v2/library/m/blobs/")
        assert store.blob_path(digest_b).read_bytes() == blob_b
        assert not store.partial_path(digest_b).exists()

    @pytest.mark.asyncio
    async def test_unavailable_blob_leaves_nothing(self, store, network, digest_b):
        engine = make_engine(store, network.transport)

        result = await engine.transfer(make_task(digest_b, SOURCE, LOCAL))

        assert isinstance(result, Failed)
        assert isinstance(result.cause, BlobUnavailableError)
        assert not store.has_blob(digest_b)
        assert not store.partial_path(digest_b).exists()

    @pytest.mark.asyncio
    async def test_cancel_removes_partial(self, store, digest_b):
        stalled = asyncio.Event()

        async def body():
            yield b"x" * 1000
            stalled.set()
            await asyncio.Event().wait()

        def handler(request):
            return httpx.Response(200, content=body())

        engine = make_engine(store, httpx.MockTransport(handler))
        running = asyncio.create_task(engine.transfer(make_task(digest_b, SOURCE, LOCAL)))

        await asyncio.wait_for(stalled.wait(), timeout=2.0)
        assert store.partial_path(digest_b).exists()

        running.cancel()
        with pytest.raises(asyncio.CancelledError):
            await running

        assert not store.partial_path(digest_b).exists()
        assert not store.has_blob(digest_b)


class TestRemoteToRemote:
    """Tests for relayed copies."""

    @pytest.mark.asyncio
    async def test_relay_through_small_buffer(self, store, network, digest_b, blob_b):
        network.registry_blobs[digest_b] = blob_b
        dest = network.server("dest:11434")
        engine = make_engine(store, network.transport, buffer_size=64 * 1024)

        result = await engine.transfer(make_task(digest_b, SOURCE, DEST))

        assert isinstance(result, Transferred)
        assert result.size == len(blob_b)
        assert dest.blobs[digest_b] == blob_b
        assert dest.uploads == [(digest_b, len(blob_b))]

    @pytest.mark.asyncio
    async def test_relay_upload_rejected(self, store, network, digest_b, blob_b):
        network.registry_blobs[digest_b] = blob_b
        network.server("dest:11434").upload_status = 400
        engine = make_engine(store, network.transport, buffer_size=64 * 1024)

        result = await engine.transfer(make_task(digest_b, SOURCE, DEST))

        assert isinstance(result, Failed)
        assert isinstance(result.cause, IncompatibleServerError)

    @pytest.mark.asyncio
    async def test_relay_unavailable_blob(self, store, network, digest_b):
        dest = network.server("dest:11434")
        engine = make_engine(store, network.transport)

        result = await engine.transfer(make_task(digest_b, SOURCE, DEST))

        assert isinstance(result.cause, BlobUnavailableError)
        assert "not available in public registry" in result.error
        assert dest.uploads == []


class TestTopology:
    """Tests for unsupported endpoint pairs."""

    @pytest.mark.asyncio
    async def test_local_to_local_rejected(self, store, network, digest_a):
        engine = make_engine(store, network.transport)

        with pytest.raises(UnsupportedTopologyError):
            await engine.transfer(make_task(digest_a, LOCAL, LocalLocator(model="other")))
