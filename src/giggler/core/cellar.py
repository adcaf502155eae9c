"""Queries and removal over the Cellar (one directory per installed package)."""

import logging
import shutil

from giggler.core.config import GigglerConfig, validate_package_name
from giggler.core.errors import FilesystemError, NotFoundError
from giggler.core.locking import PackageLock
from giggler.core.receipt import InstallReceipt, read_receipt

logger = logging.getLogger(__name__)


class Cellar:
    """View of the installed packages under a prefix."""

    def __init__(self, config: GigglerConfig):
        self.config = config

    def installed(self) -> list[str]:
        """Sorted names of installed packages (dot-files and lock files excluded)."""
        if not self.config.cellar.is_dir():
            return []
        return sorted(
            p.name for p in self.config.cellar.iterdir() if p.is_dir() and not p.name.startswith(".")
        )

    def is_installed(self, name: str) -> bool:
        path = self.config.install_dir(name)
        return path.is_dir() and any(path.iterdir())

    def receipt(self, name: str) -> InstallReceipt | None:
        return read_receipt(self.config.install_dir(name))

    def remove(self, name: str) -> None:
        """Delete an installed package, holding its lock while doing so."""
        validate_package_name(name)
        path = self.config.install_dir(name)
        with PackageLock(name, self.config.lock_path(name)):
            if not path.is_dir():
                raise NotFoundError(f"Package not installed: {name}")
            try:
                shutil.rmtree(path)
            except OSError as e:
                raise FilesystemError(f"Cannot remove {path}: {e}") from e
        logger.info(f"Removed {name}")
