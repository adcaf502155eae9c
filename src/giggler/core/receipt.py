"""
Install receipts.

A small JSON manifest written into the install directory once an install
completes. Directory presence stays the source of truth for "installed";
the receipt records what was installed and from where.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

import aiofiles

from giggler.models.package import PackageDescriptor, VerificationStatus

logger = logging.getLogger(__name__)

RECEIPT_FILENAME = "INSTALL_RECEIPT.json"


@dataclass
class InstallReceipt:
    """Record of a completed install."""

    name: str
    source_url: str
    sha256: str | None
    verification: VerificationStatus
    installed_at: float
    files: list[str] = field(default_factory=list)

    @staticmethod
    def create(
        descriptor: PackageDescriptor, verification: VerificationStatus, files: list[Path]
    ) -> "InstallReceipt":
        """Create a receipt stamped with the current time."""
        return InstallReceipt(
            name=descriptor.name,
            source_url=descriptor.source_url,
            sha256=descriptor.expected_digest,
            verification=verification,
            installed_at=time.time(),
            files=[p.as_posix() for p in files],
        )

    def to_dict(self) -> dict:
        """Serialize to JSON-compatible dict (handling enums)."""
        data = asdict(self)
        data["verification"] = self.verification.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "InstallReceipt":
        return cls(
            name=data["name"],
            source_url=data["source_url"],
            sha256=data.get("sha256"),
            verification=VerificationStatus(data["verification"]),
            installed_at=data["installed_at"],
            files=data.get("files", []),
        )


async def write_receipt(install_dir: Path, receipt: InstallReceipt) -> Path:
    """Write the receipt into install_dir."""
    path = install_dir / RECEIPT_FILENAME
    async with aiofiles.open(path, "w") as f:
        await f.write(json.dumps(receipt.to_dict(), indent=2))
    logger.debug(f"Wrote receipt {path}")
    return path


def read_receipt(install_dir: Path) -> InstallReceipt | None:
    """Load a receipt, or None if absent or unreadable."""
    path = install_dir / RECEIPT_FILENAME
    if not path.exists():
        return None

    try:
        with open(path) as f:
            return InstallReceipt.from_dict(json.load(f))
    except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
        logger.warning(f"Failed to load receipt {path}: {e}")
        return None
