"""Tests for the cancellation token."""

import pytest

from giggler.core.cancel import CancellationToken
from giggler.core.errors import InstallCancelledError


class TestCancellationToken:
    def test_starts_uncancelled(self):
        token = CancellationToken()
        assert token.cancelled is False
        token.raise_if_cancelled("Extraction")

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(InstallCancelledError, match="Extraction cancelled"):
            token.raise_if_cancelled("Extraction")

    def test_child_follows_parent(self):
        parent = CancellationToken()
        child = CancellationToken(parent=parent)
        parent.cancel()
        assert child.cancelled is True

    def test_parent_ignores_child(self):
        parent = CancellationToken()
        child = CancellationToken(parent=parent)
        child.cancel()
        assert child.cancelled is True
        assert parent.cancelled is False
