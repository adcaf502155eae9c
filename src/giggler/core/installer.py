"""
Package Installer — the install pipeline state machine.

Sequences metadata resolution, download, checksum verification, archive
extraction and optional install steps for one package:

    PENDING -> RESOLVING -> DOWNLOADING -> VERIFYING -> EXTRACTING
            -> INSTALLING -> INSTALLED

Any stage may move to FAILED. Failures before INSTALLING remove the install
directory so a retry starts clean; a failing install procedure leaves the
tree in place since partial native builds are expensive to redo. A package
without a checksum goes straight from DOWNLOADING to EXTRACTING.

Blocking stages run in worker threads. When the install task is cancelled,
the worker is told to stop and awaited before the stage cleans up, so no
thread writes into the install directory after rollback or after the
package lock is released.
"""

import asyncio
import logging
import shutil
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from giggler.core.cancel import CancellationToken
from giggler.core.config import GigglerConfig, validate_package_name
from giggler.core.errors import FilesystemError, GigglerError, InstallProcedureError, MetadataError
from giggler.core.extractor import extract
from giggler.core.fetcher import HttpFetcher
from giggler.core.locking import PackageLock
from giggler.core.receipt import InstallReceipt, write_receipt
from giggler.core.verifier import verify
from giggler.models.package import (
    InstallResult,
    InstallState,
    PackageDescriptor,
)
from giggler.sources.base import MetadataSource

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[str, InstallState], None]

T = TypeVar("T")


class PackageInstaller:
    """
    Drives one package from name to installed tree.

    Features:
    - Per-package advisory lock held for the whole run
    - Idempotent: a populated install directory short-circuits the pipeline
    - Typed failures tagged with the stage they occurred in
    - Stage-specific rollback of the install directory
    """

    def __init__(
        self,
        config: GigglerConfig,
        resolver: MetadataSource,
        fetcher: HttpFetcher | None = None,
        on_transition: TransitionCallback | None = None,
    ):
        self.config = config
        self.resolver = resolver
        self.fetcher = fetcher or HttpFetcher(
            timeout=config.http_timeout,
            connect_timeout=config.connect_timeout,
            chunk_size=config.chunk_size,
        )
        self.on_transition = on_transition
        self.state = InstallState.PENDING

    # ──────────────────────────────────────────────
    # State Tracking
    # ──────────────────────────────────────────────

    def _transition(self, name: str, state: InstallState) -> None:
        logger.info(f"[{name}] {self.state.value} -> {state.value}")
        self.state = state
        if self.on_transition:
            self.on_transition(name, state)

    @contextmanager
    def _stage(self, name: str, state: InstallState, rollback: Path | None = None) -> Iterator[None]:
        """
        Run one pipeline stage.

        Errors are mapped to the taxonomy, tagged with the stage and
        re-raised after the rollback directory (if any) is removed.
        """
        self._transition(name, state)
        try:
            yield
        except GigglerError as e:
            e.stage = state
            self._fail(name, e, rollback)
            raise
        except OSError as e:
            error = FilesystemError(str(e), stage=state)
            self._fail(name, error, rollback)
            raise error from e
        except BaseException:
            # Task cancellation: same cleanup, original exception propagates
            self._rollback(rollback)
            self._transition(name, InstallState.FAILED)
            raise

    def _fail(self, name: str, error: GigglerError, rollback: Path | None) -> None:
        logger.error(f"[{name}] {error.describe()}")
        self._rollback(rollback)
        self._transition(name, InstallState.FAILED)

    def _rollback(self, install_dir: Path | None) -> None:
        if install_dir is None or not install_dir.exists():
            return
        logger.info(f"Removing {install_dir}")
        shutil.rmtree(install_dir, ignore_errors=True)
        if install_dir.exists():
            logger.warning(f"Could not fully remove {install_dir}")

    # ──────────────────────────────────────────────
    # Main Run
    # ──────────────────────────────────────────────

    async def install(self, name: str, cancel: CancellationToken | None = None) -> InstallResult:
        """
        Install a package by name.

        Args:
            name: Package name as known to the metadata sources.
            cancel: Optional token that aborts download or extraction.

        Returns:
            InstallResult with absolute install and source directories.

        Raises:
            GigglerError: A typed failure whose ``stage`` names where it occurred.
        """
        self.state = InstallState.PENDING
        lock: PackageLock | None = None
        try:
            # --- 1. LOCK & RESOLVE ---
            with self._stage(name, InstallState.RESOLVING):
                validate_package_name(name)
                lock = PackageLock(name, self.config.lock_path(name))
                lock.acquire()
                descriptor = self.resolver.resolve(name)

            return await self._run(descriptor, cancel)
        finally:
            if lock is not None:
                lock.release()

    async def _run(
        self, descriptor: PackageDescriptor, cancel: CancellationToken | None
    ) -> InstallResult:
        name = descriptor.name
        install_dir = self.config.install_dir(name).absolute()
        source_dir = self.config.source_dir(name).absolute()

        # --- 2. IDEMPOTENCY CHECK ---
        if _is_populated(install_dir):
            logger.info(f"{name} already installed at {install_dir}")
            self._transition(name, InstallState.INSTALLED)
            return InstallResult(
                name=name,
                state=InstallState.INSTALLED,
                install_dir=install_dir,
                source_dir=source_dir,
                already_installed=True,
            )

        # Cancelled by the caller's token or by cancellation of this task
        token = CancellationToken(parent=cancel)

        # --- 3. DOWNLOAD ---
        with self._stage(name, InstallState.DOWNLOADING, rollback=install_dir):
            archive_path = install_dir / _archive_filename(descriptor)
            install_dir.mkdir(parents=True, exist_ok=True)
            await self.fetcher.fetch(descriptor.source_url, archive_path, token)

        # --- 4. VERIFY ---
        if descriptor.expected_digest is None:
            verification = verify(archive_path, None)
        else:
            with self._stage(name, InstallState.VERIFYING, rollback=install_dir):
                verification = await _in_worker(
                    token, verify, archive_path, descriptor.expected_digest
                )

        # --- 5. EXTRACT ---
        with self._stage(name, InstallState.EXTRACTING, rollback=install_dir):
            files = await _in_worker(token, extract, archive_path, source_dir, token)

        # --- 6. INSTALL STEPS ---
        with self._stage(name, InstallState.INSTALLING):
            await self._run_install_procedure(descriptor, source_dir, token)
            await write_receipt(install_dir, InstallReceipt.create(descriptor, verification, files))

        # --- 7. DONE ---
        self._transition(name, InstallState.INSTALLED)
        logger.info(f"{name} installed successfully to {install_dir}")
        return InstallResult(
            name=name,
            state=InstallState.INSTALLED,
            install_dir=install_dir,
            source_dir=source_dir,
            verification=verification,
        )

    async def _run_install_procedure(
        self, descriptor: PackageDescriptor, source_dir: Path, token: CancellationToken
    ) -> None:
        if descriptor.install_procedure is None:
            return

        logger.info(f"Running install steps for {descriptor.name}")
        try:
            await _in_worker(token, descriptor.install_procedure, source_dir)
        except Exception as e:
            raise InstallProcedureError(
                f"Install steps for '{descriptor.name}' failed: {e}"
            ) from e


async def _in_worker(token: CancellationToken, func: Callable[..., T], *args) -> T:
    """
    Run func in a worker thread.

    If the awaiting task is cancelled, the token is cancelled and the worker
    is awaited to completion before CancelledError propagates.
    """
    future = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        token.cancel()
        while not future.done():
            try:
                await asyncio.wait({future})
            except asyncio.CancelledError:
                continue
        if not future.cancelled():
            future.exception()
        raise


def _archive_filename(descriptor: PackageDescriptor) -> str:
    """Staging filename for the archive, from the last URL path segment."""
    url = descriptor.source_url
    if not isinstance(url, str):
        raise MetadataError(
            f"Source URL for '{descriptor.name}' must be a string, got {type(url).__name__}"
        )
    try:
        filename = descriptor.archive_filename
    except ValueError as e:
        raise MetadataError(f"Malformed source URL {url!r}: {e}") from e
    if filename in ("", ".", ".."):
        raise MetadataError(f"Source URL {url!r} does not name an archive file")
    return filename


def _is_populated(path: Path) -> bool:
    return path.is_dir() and any(path.iterdir())
