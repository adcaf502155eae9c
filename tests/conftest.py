"""Shared fixtures: isolated prefixes, archive builders and a fake HTTP host."""

import hashlib
import io
import json
import tarfile
from pathlib import Path

import httpx
import pytest

from giggler.core.config import GigglerConfig


def _build_tarball(path: Path, files: dict[str, bytes], compression: str = "gz", mode: int = 0o644) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, f"w:{compression}") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = mode
            tar.addfile(info, io.BytesIO(data))
    return path


class FakeHost:
    """Serves fixed bodies by URL path and records every request."""

    def __init__(self):
        self.routes: dict[str, bytes] = {}
        self.requests: list[str] = []

    def serve(self, url_path: str, body: bytes) -> None:
        self.routes[url_path] = body

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        body = self.routes.get(request.url.path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def config(tmp_path):
    return GigglerConfig(prefix=tmp_path / "prefix")


@pytest.fixture
def build_tarball():
    return _build_tarball


@pytest.fixture
def fake_host():
    return FakeHost()


@pytest.fixture
def write_registry(config):
    def _write(entries: dict) -> Path:
        config.registry_path.parent.mkdir(parents=True, exist_ok=True)
        config.registry_path.write_text(json.dumps(entries))
        return config.registry_path

    return _write


@pytest.fixture
def sha256():
    return lambda data: hashlib.sha256(data).hexdigest()
