"""
Registry Source — flat JSON package index.

The registry file maps package names to entries of the form:

    {"url": "...", "sha256": "...", "desc": "...", "homepage": "..."}

It is replaced wholesale by ``giggler update``; this module only reads it.
"""

import json
import logging
from pathlib import Path

from giggler.core.errors import MetadataError, NotFoundError, RegistryMissingError
from giggler.models.package import PackageDescriptor
from giggler.sources.base import check_entry

logger = logging.getLogger(__name__)


class RegistrySource:
    """Resolves package names against the on-disk registry file."""

    def __init__(self, registry_path: Path):
        self.registry_path = registry_path
        self._entries: dict[str, dict] | None = None

    def load(self) -> dict[str, dict]:
        """Read and validate the registry file, caching the result."""
        if self._entries is not None:
            return self._entries

        if not self.registry_path.exists():
            raise RegistryMissingError(
                f"Registry not found at {self.registry_path}. Run `giggler update` first."
            )

        try:
            with open(self.registry_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise MetadataError(f"Registry {self.registry_path} is not valid JSON: {e}") from e
        except OSError as e:
            raise MetadataError(f"Cannot read registry {self.registry_path}: {e}") from e

        validate_registry(data)
        self._entries = data
        logger.debug(f"Loaded {len(data)} registry entries from {self.registry_path}")
        return data

    def resolve(self, name: str) -> PackageDescriptor:
        entry = self.load().get(name)
        if entry is None:
            raise NotFoundError(f"Package '{name}' not found in registry")
        return PackageDescriptor.from_registry_entry(name, entry)

    def names(self) -> list[str]:
        return sorted(self.load())

    def search(self, term: str) -> list[str]:
        """Names containing term as a substring."""
        return [name for name in self.names() if term in name]


def validate_registry(data) -> None:
    """Check the registry shape: a JSON object of well-formed entries."""
    if not isinstance(data, dict):
        raise MetadataError("Registry must be a JSON object mapping names to entries")
    for name, entry in data.items():
        check_entry(f"Registry entry '{name}'", entry)
