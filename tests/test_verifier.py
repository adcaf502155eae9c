"""Tests for SHA-256 archive verification."""

import pytest

from giggler.core.errors import IntegrityError
from giggler.core.verifier import sha256_of_file, verify
from giggler.models.package import VerificationStatus


@pytest.fixture
def archive(tmp_path):
    path = tmp_path / "foo-1.0.tar.gz"
    path.write_bytes(b"archive bytes" * 1000)
    return path


class TestVerify:
    def test_matching_digest(self, archive, sha256):
        digest = sha256(archive.read_bytes())
        assert verify(archive, digest) is VerificationStatus.VERIFIED
        assert archive.exists()

    def test_digest_comparison_ignores_case(self, archive, sha256):
        digest = sha256(archive.read_bytes()).upper()
        assert verify(archive, digest) is VerificationStatus.VERIFIED

    def test_missing_digest_is_skipped(self, tmp_path):
        # The file is never read when there is nothing to compare against
        status = verify(tmp_path / "does-not-exist.tar.gz", None)
        assert status is VerificationStatus.SKIPPED
        assert status is not VerificationStatus.VERIFIED

    def test_mismatch_deletes_file(self, archive):
        with pytest.raises(IntegrityError) as excinfo:
            verify(archive, "0" * 64)

        assert not archive.exists()
        assert excinfo.value.expected == "0" * 64
        assert len(excinfo.value.actual) == 64

    def test_sha256_of_file_small_chunks(self, archive, sha256):
        assert sha256_of_file(archive, chunk_size=7) == sha256(archive.read_bytes())
