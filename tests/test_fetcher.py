"""Tests for the streaming HTTP fetcher."""

import httpx
import pytest

from giggler.core.cancel import CancellationToken
from giggler.core.errors import FilesystemError, InstallCancelledError, NetworkError
from giggler.core.fetcher import HttpFetcher


class TestHttpFetcher:
    @pytest.mark.asyncio
    async def test_streams_body_to_disk(self, tmp_path, fake_host):
        body = bytes(range(256)) * 1024
        fake_host.serve("/foo-1.0.tar.gz", body)
        progress = []
        fetcher = HttpFetcher(
            chunk_size=4096,
            transport=fake_host.transport,
            on_progress=lambda received, total: progress.append(received),
        )
        dest = tmp_path / "foo-1.0.tar.gz"

        written = await fetcher.fetch("https://x/foo-1.0.tar.gz", dest)

        assert written == len(body)
        assert dest.read_bytes() == body
        assert len(progress) > 1
        assert progress[-1] == len(body)

    @pytest.mark.asyncio
    async def test_http_error_status(self, tmp_path, fake_host):
        fetcher = HttpFetcher(transport=fake_host.transport)
        dest = tmp_path / "missing.tar.gz"

        with pytest.raises(NetworkError):
            await fetcher.fetch("https://x/missing.tar.gz", dest)

        assert not dest.exists()

    @pytest.mark.asyncio
    async def test_transport_failure(self, tmp_path):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = HttpFetcher(transport=httpx.MockTransport(refuse))
        with pytest.raises(NetworkError, match="connection refused"):
            await fetcher.fetch("https://x/foo.tar.gz", tmp_path / "foo.tar.gz")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        ["https://x/" + "a" * 70_000 + ".tar.gz", "https://x/foo\x07.tar.gz"],
        ids=["too-long", "control-char"],
    )
    async def test_malformed_url(self, tmp_path, fake_host, url):
        fetcher = HttpFetcher(transport=fake_host.transport)
        dest = tmp_path / "foo.tar.gz"

        with pytest.raises(NetworkError):
            await fetcher.fetch(url, dest)

        assert not dest.exists()
        assert fake_host.requests == []

    @pytest.mark.asyncio
    async def test_uncreatable_destination(self, tmp_path, fake_host):
        fake_host.serve("/foo.tar.gz", b"data")
        fetcher = HttpFetcher(transport=fake_host.transport)

        with pytest.raises(FilesystemError):
            await fetcher.fetch("https://x/foo.tar.gz", tmp_path / "no" / "such" / "dir" / "foo.tar.gz")

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, tmp_path, fake_host):
        fake_host.serve("/foo.tar.gz", b"data")
        token = CancellationToken()
        token.cancel()
        fetcher = HttpFetcher(transport=fake_host.transport)
        dest = tmp_path / "foo.tar.gz"

        with pytest.raises(InstallCancelledError):
            await fetcher.fetch("https://x/foo.tar.gz", dest, cancel=token)

        assert not dest.exists()
        assert fake_host.requests == []

    @pytest.mark.asyncio
    async def test_cancelled_mid_transfer(self, tmp_path, fake_host):
        fake_host.serve("/big.tar.gz", b"\0" * 100_000)
        token = CancellationToken()

        def cancel_after_first_chunk(received, total):
            token.cancel()

        fetcher = HttpFetcher(
            chunk_size=1024, transport=fake_host.transport, on_progress=cancel_after_first_chunk
        )
        dest = tmp_path / "big.tar.gz"

        with pytest.raises(InstallCancelledError):
            await fetcher.fetch("https://x/big.tar.gz", dest, cancel=token)

        assert not dest.exists()
