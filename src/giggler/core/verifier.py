"""
Checksum verification for downloaded archives.

A mismatch deletes the file before raising so a corrupt archive is never
left on disk.
"""

import hashlib
import logging
from pathlib import Path

from giggler.core.errors import FilesystemError, IntegrityError
from giggler.models.package import VerificationStatus

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def sha256_of_file(path: Path, chunk_size: int = CHUNK_SIZE) -> str:
    """Compute the hex SHA-256 digest of a file, reading it in chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def verify(file_path: Path, expected_digest: str | None) -> VerificationStatus:
    """
    Verify a file against an expected SHA-256 digest.

    Args:
        file_path: File to check.
        expected_digest: Hex digest (any case), or None to skip verification.

    Returns:
        VerificationStatus.SKIPPED when no digest is given, VERIFIED on match.

    Raises:
        IntegrityError: The digest does not match. The file has been deleted.
    """
    if expected_digest is None:
        logger.info(f"No checksum for {file_path.name}, verification skipped")
        return VerificationStatus.SKIPPED

    try:
        actual = sha256_of_file(file_path)
    except OSError as e:
        raise FilesystemError(f"Cannot read {file_path}: {e}") from e

    expected = expected_digest.strip().lower()
    if actual != expected:
        file_path.unlink(missing_ok=True)
        raise IntegrityError(
            f"SHA256 mismatch for {file_path.name}: expected {expected}, got {actual}",
            expected=expected,
            actual=actual,
        )

    logger.info(f"SHA256 checksum verified for {file_path.name}")
    return VerificationStatus.VERIFIED
