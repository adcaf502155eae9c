"""Tests for atomic registry replacement."""

import json

import httpx
import pytest

from giggler.core.errors import MetadataError, NetworkError
from giggler.core.registry_update import update_registry, write_atomic
from giggler.core.resilience import ExponentialBackoff

REGISTRY = {"foo": {"url": "https://x/foo-1.0.tar.gz", "sha256": "a" * 64, "desc": "Foo", "homepage": None}}


def _serving(body: bytes, status: int = 200):
    calls = []

    def handler(request):
        calls.append(str(request.url))
        return httpx.Response(status, content=body)

    return httpx.MockTransport(handler), calls


@pytest.fixture
def no_wait():
    return ExponentialBackoff(base_delay=0.0, max_delay=0.0, max_retries=2)


class TestUpdateRegistry:
    @pytest.mark.asyncio
    async def test_writes_registry(self, config):
        transport, calls = _serving(json.dumps(REGISTRY).encode())

        total = await update_registry(config, transport=transport)

        assert total == 1
        assert json.loads(config.registry_path.read_text()) == REGISTRY
        assert calls == [config.registry_url]

    @pytest.mark.asyncio
    async def test_replaces_existing_registry(self, config, write_registry):
        write_registry({"old": {"url": "https://x/old.tar.gz"}})
        transport, _ = _serving(json.dumps(REGISTRY).encode())

        await update_registry(config, transport=transport)

        assert list(json.loads(config.registry_path.read_text())) == ["foo"]

    @pytest.mark.asyncio
    async def test_invalid_json_keeps_old_registry(self, config, write_registry):
        write_registry({"old": {"url": "https://x/old.tar.gz"}})
        transport, _ = _serving(b"<html>not json</html>")

        with pytest.raises(MetadataError):
            await update_registry(config, transport=transport)

        assert "old" in json.loads(config.registry_path.read_text())

    @pytest.mark.asyncio
    async def test_invalid_entries_rejected(self, config):
        transport, _ = _serving(json.dumps({"foo": {"sha256": "a"}}).encode())
        with pytest.raises(MetadataError):
            await update_registry(config, transport=transport)
        assert not config.registry_path.exists()

    @pytest.mark.asyncio
    async def test_http_error(self, config, no_wait):
        transport, _ = _serving(b"", status=500)
        with pytest.raises(NetworkError, match="500"):
            await update_registry(config, backoff=no_wait, transport=transport)

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, config, no_wait):
        attempts = []

        def flaky(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("temporary failure", request=request)
            return httpx.Response(200, json=REGISTRY)

        total = await update_registry(config, backoff=no_wait, transport=httpx.MockTransport(flaky))

        assert total == 1
        assert len(attempts) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("retry_after", ["0", "Wed, 21 Oct 2015 07:28:00 GMT", "later"])
    async def test_rate_limit_honours_retry_after(self, config, no_wait, retry_after):
        attempts = []

        def limited(request):
            attempts.append(request)
            if len(attempts) == 1:
                return httpx.Response(429, headers={"Retry-After": retry_after})
            return httpx.Response(200, json=REGISTRY)

        total = await update_registry(config, backoff=no_wait, transport=httpx.MockTransport(limited))

        assert total == 1
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, config, no_wait):
        attempts = []

        def down(request):
            attempts.append(request)
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(NetworkError):
            await update_registry(config, backoff=no_wait, transport=httpx.MockTransport(down))

        assert len(attempts) == 3


class TestWriteAtomic:
    @pytest.mark.asyncio
    async def test_leaves_no_temp_files(self, tmp_path):
        target = tmp_path / "registry.json"
        await write_atomic(target, "{}")
        await write_atomic(target, '{"a": 1}')
        assert [p.name for p in tmp_path.iterdir()] == ["registry.json"]
        assert target.read_text() == '{"a": 1}'
