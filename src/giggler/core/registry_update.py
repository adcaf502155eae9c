"""
Registry update — fetch the remote registry and replace the local copy.

The new document is validated, written to a temporary file beside the
registry and renamed over it, so readers never observe a half-written
registry and a bad download leaves the old one in place.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

import aiofiles
import httpx

from giggler.core.config import GigglerConfig
from giggler.core.errors import FilesystemError, MetadataError, NetworkError
from giggler.core.resilience import ExponentialBackoff
from giggler.sources.registry import validate_registry

logger = logging.getLogger(__name__)


async def _request(
    client: httpx.AsyncClient, url: str, backoff: ExponentialBackoff, attempt: int = 0
) -> httpx.Response:
    """GET with exponential backoff on timeouts, connection errors and 429s."""
    try:
        resp = await client.get(url)
    except (httpx.TimeoutException, httpx.ConnectError) as e:
        if backoff.should_retry(attempt):
            delay = backoff.calculate_delay(attempt)
            logger.warning(f"Registry fetch failed ({type(e).__name__}), retry {attempt + 1} after {delay:.1f}s")
            await asyncio.sleep(delay)
            return await _request(client, url, backoff, attempt + 1)
        raise NetworkError(f"Failed to fetch registry from {url}: {e}") from e
    except httpx.HTTPError as e:
        raise NetworkError(f"Failed to fetch registry from {url}: {e}") from e

    if resp.status_code == 429 and backoff.should_retry(attempt):
        retry_after = backoff.retry_after_delay(resp.headers.get("Retry-After"), attempt)
        logger.warning(f"Rate limited by registry host. Waiting {retry_after:.1f}s...")
        await asyncio.sleep(retry_after)
        return await _request(client, url, backoff, attempt + 1)

    if resp.status_code != 200:
        raise NetworkError(f"Registry fetch from {url} returned HTTP {resp.status_code}")
    return resp


async def write_atomic(path: Path, content: str) -> None:
    """Write content to a temp file in path's directory, then rename over path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    os.close(fd)
    try:
        async with aiofiles.open(tmp_name, "w") as f:
            await f.write(content)
            await f.flush()
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


async def update_registry(
    config: GigglerConfig,
    backoff: ExponentialBackoff | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """
    Replace the local registry with the remote one.

    Returns:
        Number of packages in the new registry.

    Raises:
        NetworkError: The registry could not be downloaded.
        MetadataError: The downloaded document is not a valid registry.
        FilesystemError: The registry file could not be written.
    """
    backoff = backoff or ExponentialBackoff(base_delay=1.0, max_delay=30.0, max_retries=3)
    timeout = httpx.Timeout(config.http_timeout, connect=config.connect_timeout)

    logger.info(f"Updating registry from {config.registry_url}")
    async with httpx.AsyncClient(
        timeout=timeout, follow_redirects=True, transport=transport
    ) as client:
        resp = await _request(client, config.registry_url, backoff)

    try:
        data = resp.json()
    except ValueError as e:
        raise MetadataError(f"Registry from {config.registry_url} is not valid JSON: {e}") from e
    validate_registry(data)

    try:
        await write_atomic(config.registry_path, json.dumps(data, indent=2))
    except OSError as e:
        raise FilesystemError(f"Cannot write registry {config.registry_path}: {e}") from e

    logger.info(f"Registry updated: {len(data)} packages")
    return len(data)
