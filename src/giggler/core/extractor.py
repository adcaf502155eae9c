"""
Archive Extractor — suffix-dispatched tarball extraction.

Entries are read sequentially from a compressed stream and recreated under
the destination directory. Links and entries that would land outside the
destination are rejected before they touch the filesystem.
"""

import gzip
import logging
import lzma
import shutil
import tarfile
import zlib
from pathlib import Path, PurePosixPath

from giggler.core.cancel import CancellationToken
from giggler.core.errors import (
    CorruptArchiveError,
    FilesystemError,
    UnsafeArchiveError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

# Suffix -> tarfile stream mode, checked in order
ARCHIVE_STRATEGIES = [
    (".tar.gz", "r|gz"),
    (".tgz", "r|gz"),
    (".tar.xz", "r|xz"),
]

_PERMISSION_MASK = 0o777
_DECODE_ERRORS = (tarfile.TarError, EOFError, lzma.LZMAError, zlib.error, gzip.BadGzipFile)


def stream_mode_for(archive_path: Path) -> str:
    """Select the tarfile stream mode from the archive's filename suffix."""
    filename = archive_path.name.lower()
    for suffix, mode in ARCHIVE_STRATEGIES:
        if filename.endswith(suffix):
            return mode
    raise UnsupportedFormatError(f"Unsupported archive format: {archive_path.name}")


def extract(
    archive_path: Path, dest_dir: Path, cancel: CancellationToken | None = None
) -> list[Path]:
    """
    Extract a .tar.gz, .tgz or .tar.xz archive into dest_dir.

    Args:
        archive_path: Archive to read.
        dest_dir: Destination, created with parents if absent.
        cancel: Optional token checked between entries.

    Returns:
        Relative paths of the regular files written, in archive order.

    Raises:
        UnsupportedFormatError: Unknown suffix. Nothing has been created.
        CorruptArchiveError: The stream cannot be decompressed or parsed.
        UnsafeArchiveError: A link or path-traversal entry was found.
        FilesystemError: Destination cannot be written.
    """
    mode = stream_mode_for(archive_path)
    logger.info(f"Extracting {archive_path.name} to {dest_dir}")

    written: list[Path] = []
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        root = dest_dir.resolve()
        with open(archive_path, "rb") as fileobj:
            with tarfile.open(fileobj=fileobj, mode=mode) as tar:
                for member in tar:
                    if cancel is not None:
                        cancel.raise_if_cancelled(f"Extraction of {archive_path.name}")
                    relative = _extract_member(tar, member, root)
                    if relative is not None:
                        written.append(relative)
    except _DECODE_ERRORS as e:
        raise CorruptArchiveError(f"Cannot read archive {archive_path.name}: {e}") from e
    except OSError as e:
        raise FilesystemError(f"Extraction into {dest_dir} failed: {e}") from e

    logger.debug(f"Extracted {len(written)} files from {archive_path.name}")
    return written


def _safe_target(root: Path, member: tarfile.TarInfo) -> Path:
    """Resolve an entry's destination, rejecting anything outside root."""
    if member.issym() or member.islnk():
        raise UnsafeArchiveError(f"Link entries are not allowed: {member.name}")

    name = PurePosixPath(member.name)
    if name.is_absolute():
        raise UnsafeArchiveError(f"Absolute path in archive: {member.name}")

    target = (root / name).resolve()
    if target != root and not target.is_relative_to(root):
        raise UnsafeArchiveError(f"Entry escapes destination: {member.name}")
    return target


def _extract_member(tar: tarfile.TarFile, member: tarfile.TarInfo, root: Path) -> Path | None:
    target = _safe_target(root, member)

    if member.isdir():
        target.mkdir(parents=True, exist_ok=True)
        return None

    if not member.isfile():
        logger.warning(f"Skipping special entry {member.name}")
        return None

    target.parent.mkdir(parents=True, exist_ok=True)
    if target.is_file():
        target.unlink()

    source = tar.extractfile(member)
    with open(target, "wb") as out:
        shutil.copyfileobj(source, out)
    target.chmod(member.mode & _PERMISSION_MASK | 0o200)

    return target.relative_to(root)
