"""
Package Model — descriptors and install outcomes.

Defines the metadata contract shared by every metadata source (formula
definitions and the flat JSON registry) and the result types reported by
the install pipeline.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse


InstallProcedure = Callable[[Path], None]


class InstallState(Enum):
    """Stages of a single install invocation."""

    PENDING = "pending"
    RESOLVING = "resolving"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    EXTRACTING = "extracting"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"


class VerificationStatus(Enum):
    """Outcome of checksum verification."""

    VERIFIED = "verified"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PackageDescriptor:
    """
    Metadata describing how to obtain and install one package.

    Registry-sourced descriptors never carry an install procedure; formula
    definitions may. Descriptors are never mutated during an install.
    """

    name: str
    source_url: str
    expected_digest: str | None = None
    description: str | None = None
    homepage_url: str | None = None
    install_procedure: InstallProcedure | None = None

    @property
    def archive_filename(self) -> str:
        """Filename of the archive, taken from the last URL path segment."""
        return PurePosixPath(urlparse(self.source_url).path).name

    def to_registry_entry(self) -> dict:
        """Serialize to the registry's JSON entry shape."""
        return {
            "url": self.source_url,
            "sha256": self.expected_digest,
            "desc": self.description,
            "homepage": self.homepage_url,
        }

    @classmethod
    def from_registry_entry(cls, name: str, entry: dict) -> "PackageDescriptor":
        """Deserialize from a registry entry."""
        return cls(
            name=name,
            source_url=entry["url"],
            expected_digest=entry.get("sha256") or None,
            description=entry.get("desc"),
            homepage_url=entry.get("homepage"),
        )


@dataclass
class InstallResult:
    """Successful outcome of an install invocation."""

    name: str
    state: InstallState
    install_dir: Path
    source_dir: Path
    verification: VerificationStatus | None = None  # None when already installed
    already_installed: bool = False
