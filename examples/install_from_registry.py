"""
Example: Refresh the registry and install a package into a scratch prefix.

Usage:
    python examples/install_from_registry.py zlib
"""

import asyncio
import sys
from pathlib import Path

from giggler import GigglerConfig, PackageInstaller
from giggler.core.registry_update import update_registry
from giggler.sources import build_resolver


async def main(name: str):
    # Keep everything under a local prefix instead of /opt/giggler
    config = GigglerConfig(prefix=Path("./giggler_prefix").absolute())

    await update_registry(config)

    installer = PackageInstaller(config, build_resolver(config))
    result = await installer.install(name)

    print(f"\n✅ {name} ({result.verification.value if result.verification else 'already installed'})")
    print(f"   Sources: {result.source_dir}")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "zlib"))
