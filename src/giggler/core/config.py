"""
Configuration for a Giggler installation.

All filesystem locations derive from a single prefix so tests and callers
can point the whole pipeline at an isolated directory.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from giggler.core.errors import NotFoundError

DEFAULT_PREFIX = Path("/opt/giggler")
DEFAULT_REGISTRY_URL = "https://raw.githubusercontent.com/giggler/giggler-registry/main/registry.json"

CELLAR_DIRNAME = "Cellar"
SOURCE_DIRNAME = "src"
REGISTRY_FILENAME = "registry.json"
FORMULA_DIRNAME = "Formula"


def validate_package_name(name: str) -> None:
    """Reject names that cannot be a single directory inside the Cellar."""
    if not name or name in (".", "..") or "/" in name or "\\" in name or name.startswith("."):
        raise NotFoundError(f"Invalid package name: {name!r}")


@dataclass
class GigglerConfig:
    """Paths and network settings passed explicitly into every component."""

    prefix: Path = field(default_factory=lambda: DEFAULT_PREFIX)
    registry_url: str = DEFAULT_REGISTRY_URL
    http_timeout: float = 30.0
    connect_timeout: float = 60.0
    chunk_size: int = 64 * 1024

    def __post_init__(self):
        self.prefix = Path(self.prefix)

    @classmethod
    def from_env(cls) -> "GigglerConfig":
        """Build a config from GIGGLER_* environment variables."""
        config = cls()
        if prefix := os.environ.get("GIGGLER_PREFIX"):
            config.prefix = Path(prefix)
        if url := os.environ.get("GIGGLER_REGISTRY_URL"):
            config.registry_url = url
        if timeout := os.environ.get("GIGGLER_HTTP_TIMEOUT"):
            config.http_timeout = float(timeout)
        return config

    @property
    def cellar(self) -> Path:
        return self.prefix / CELLAR_DIRNAME

    @property
    def registry_path(self) -> Path:
        return self.prefix / REGISTRY_FILENAME

    @property
    def formula_dir(self) -> Path:
        return self.prefix / FORMULA_DIRNAME

    def install_dir(self, name: str) -> Path:
        return self.cellar / name

    def source_dir(self, name: str) -> Path:
        return self.install_dir(name) / SOURCE_DIRNAME

    def lock_path(self, name: str) -> Path:
        """Lock file beside the install directory so it survives rollback."""
        return self.cellar / f".{name}.lock"
