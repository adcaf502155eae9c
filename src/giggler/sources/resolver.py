"""
Metadata Resolver — chains metadata sources.

Sources are tried in order; the first one that knows the package wins.
"""

import logging

from giggler.core.errors import NotFoundError
from giggler.models.package import PackageDescriptor
from giggler.sources.base import MetadataSource

logger = logging.getLogger(__name__)


class MetadataResolver:
    """Resolve a name against one or more MetadataSource backends."""

    def __init__(self, sources: list[MetadataSource]):
        if not sources:
            raise ValueError("MetadataResolver needs at least one source")
        self.sources = sources

    def resolve(self, name: str) -> PackageDescriptor:
        """
        Return the first descriptor found for name.

        With a single source its own NotFoundError subclass propagates
        unchanged; with several, a miss everywhere raises NotFoundError.
        """
        if len(self.sources) == 1:
            return self.sources[0].resolve(name)

        misses = []
        for source in self.sources:
            try:
                descriptor = source.resolve(name)
            except NotFoundError as e:
                logger.debug(f"{type(source).__name__}: {e}")
                misses.append(f"{type(source).__name__}: {e}")
                continue
            logger.debug(f"Resolved '{name}' via {type(source).__name__}")
            return descriptor

        raise NotFoundError(f"Package '{name}' not found ({'; '.join(misses)})")
