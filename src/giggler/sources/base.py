"""
MetadataSource Protocol — Base interface for all metadata backends.
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

from giggler.core.errors import MetadataError
from giggler.models.package import PackageDescriptor

_SHA256_HEX = re.compile(r"[0-9a-fA-F]{64}")

OPTIONAL_TEXT_FIELDS = ("desc", "homepage")


@runtime_checkable
class MetadataSource(Protocol):
    """
    Protocol that all metadata sources must implement.

    Sources turn a package name into a PackageDescriptor by reading
    already-persisted definitions. They never touch the network.
    """

    def resolve(self, name: str) -> PackageDescriptor:
        """Return the descriptor for name or raise NotFoundError."""
        ...


def check_entry(label: str, entry) -> None:
    """
    Validate the fields shared by registry entries and formula definitions.

    ``url`` must be a non-empty string; ``sha256`` must be absent, empty or
    a 64-character hex digest; ``desc`` and ``homepage`` must be strings
    when present.
    """
    if not isinstance(entry, dict):
        raise MetadataError(f"{label} must be a mapping of fields")

    url = entry.get("url")
    if not url:
        raise MetadataError(f"{label} has no url")
    if not isinstance(url, str):
        raise MetadataError(f"{label} url must be a string, got {type(url).__name__}")

    digest = entry.get("sha256")
    if digest and not (isinstance(digest, str) and _SHA256_HEX.fullmatch(digest.strip())):
        raise MetadataError(f"{label} sha256 must be a 64-character hex digest, got {digest!r}")

    for key in OPTIONAL_TEXT_FIELDS:
        value = entry.get(key)
        if value is not None and not isinstance(value, str):
            raise MetadataError(f"{label} {key} must be a string, got {type(value).__name__}")
