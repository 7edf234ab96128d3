"""Tests for ExistenceProbe."""

from urllib.parse import unquote

import httpx
import pytest

from modelsync.api import ServerAPI
from modelsync.exceptions import ProbeError
from modelsync.models import Digest
from modelsync.services.transfer import ExistenceProbe, ProbeOutcome

DIGEST = Digest("sha256:" + "e" * 64)


def api_answering(status=None, error=None):
    """ServerAPI whose blob HEAD answers with a fixed status or error."""
    calls = []

    def handler(request):
        calls.append(request)
        if error is not None:
            raise error("simulated", request=request)
        return httpx.Response(status)

    api = ServerAPI("http://dest:11434", transport=httpx.MockTransport(handler))
    return api, calls


class TestProbeRemote:
    """Tests for remote destinations."""

    @pytest.mark.asyncio
    async def test_exists(self):
        api, calls = api_answering(200)

        result = await ExistenceProbe().probe(api, DIGEST)

        assert result.outcome == ProbeOutcome.EXISTS
        assert result.exists
        assert len(calls) == 1
        assert calls[0].method == "HEAD"
        assert unquote(calls[0].url.path) == f"/api/blobs/{DIGEST}"

    @pytest.mark.asyncio
    async def test_not_found(self):
        api, _ = api_answering(404)

        result = await ExistenceProbe().probe(api, DIGEST)

        assert result.outcome == ProbeOutcome.NOT_FOUND
        assert not result.exists
        result.raise_for_error()

    @pytest.mark.asyncio
    async def test_unexpected_status_is_permanent_error(self):
        api, calls = api_answering(500)

        result = await ExistenceProbe().probe(api, DIGEST)

        assert result.outcome == ProbeOutcome.ERROR
        assert result.status_code == 500
        assert not result.transient
        assert len(calls) == 1  # never retried

        with pytest.raises(ProbeError) as exc_info:
            result.raise_for_error()
        assert exc_info.value.status_code == 500
        assert DIGEST in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error_is_transient(self):
        api, calls = api_answering(error=httpx.ConnectError)

        result = await ExistenceProbe().probe(api, DIGEST)

        assert result.outcome == ProbeOutcome.ERROR
        assert result.transient
        assert result.status_code is None
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self):
        api, _ = api_answering(error=httpx.ReadTimeout)

        result = await ExistenceProbe().probe(api, DIGEST)

        assert result.transient


class TestProbeLocal:
    """Tests for local destinations."""

    @pytest.mark.asyncio
    async def test_local_exists(self, store):
        store.blob_path(DIGEST).write_bytes(b"x")

        result = await ExistenceProbe().probe(store, DIGEST)

        assert result.outcome == ProbeOutcome.EXISTS

    @pytest.mark.asyncio
    async def test_local_missing(self, store):
        result = await ExistenceProbe().probe(store, DIGEST)

        assert result.outcome == ProbeOutcome.NOT_FOUND

    @pytest.mark.asyncio
    async def test_partial_file_does_not_count(self, store):
        store.partial_path(DIGEST).write_bytes(b"x")

        result = await ExistenceProbe().probe(store, DIGEST)

        assert result.outcome == ProbeOutcome.NOT_FOUND
