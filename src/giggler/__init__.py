"""
Giggler - Minimal source package installer.

Resolves package metadata from formula definitions or a flat JSON registry,
then downloads, verifies, extracts and installs source archives into a
Cellar under a configurable prefix.
"""

__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy import for heavy dependencies."""
    if name == "PackageInstaller":
        from giggler.core.installer import PackageInstaller

        return PackageInstaller
    if name == "PackageDescriptor":
        from giggler.models.package import PackageDescriptor

        return PackageDescriptor
    if name == "GigglerConfig":
        from giggler.core.config import GigglerConfig

        return GigglerConfig
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["PackageInstaller", "PackageDescriptor", "GigglerConfig", "__version__"]
