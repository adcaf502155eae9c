"""
Streaming archive download.

Responses are written chunk by chunk, so memory use stays constant
regardless of archive size. A single attempt is made; retry policy belongs
to the caller.
"""

import logging
from collections.abc import Callable
from pathlib import Path

import aiofiles
import httpx

from giggler.core.cancel import CancellationToken
from giggler.core.errors import FilesystemError, NetworkError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int | None], None]


class HttpFetcher:
    """Downloads a URL to a local path over httpx."""

    def __init__(
        self,
        timeout: float = 30.0,
        connect_timeout: float = 60.0,
        chunk_size: int = 64 * 1024,
        transport: httpx.AsyncBaseTransport | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self.chunk_size = chunk_size
        self.transport = transport
        self.on_progress = on_progress

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self.transport
        )

    async def fetch(
        self, url: str, dest_path: Path, cancel: CancellationToken | None = None
    ) -> int:
        """
        Stream a remote resource to dest_path.

        Args:
            url: Remote location of the resource.
            dest_path: Local file to create or overwrite.
            cancel: Optional token checked between chunks.

        Returns:
            Number of bytes written.

        Raises:
            NetworkError: Malformed URL, transport failure or non-success HTTP status.
            FilesystemError: dest_path cannot be created or written.
            InstallCancelledError: The token was cancelled mid-transfer.
        """
        logger.info(f"Downloading {url}")
        received = 0
        try:
            if cancel is not None:
                cancel.raise_if_cancelled(f"Download of {url}")
            async with self._client() as client:
                async with client.stream("GET", url) as resp:
                    resp.raise_for_status()
                    total = _content_length(resp)
                    async with aiofiles.open(dest_path, "wb") as f:
                        async for chunk in resp.aiter_bytes(self.chunk_size):
                            if cancel is not None:
                                cancel.raise_if_cancelled(f"Download of {url}")
                            await f.write(chunk)
                            received += len(chunk)
                            if self.on_progress:
                                self.on_progress(received, total)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            _discard(dest_path)
            raise NetworkError(f"Failed to download {url}: {e}") from e
        except OSError as e:
            _discard(dest_path)
            raise FilesystemError(f"Cannot write {dest_path}: {e}") from e
        except BaseException:
            _discard(dest_path)
            raise

        logger.debug(f"Downloaded {received} bytes to {dest_path}")
        return received


def _content_length(resp: httpx.Response) -> int | None:
    value = resp.headers.get("Content-Length")
    return int(value) if value and value.isdigit() else None


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove partial download {path}: {e}")
