"""Metadata sources for package descriptors."""

from giggler.core.config import GigglerConfig
from giggler.sources.base import MetadataSource
from giggler.sources.formula import FormulaCatalog, FormulaSource, ShellSteps, formula_identifier
from giggler.sources.registry import RegistrySource
from giggler.sources.resolver import MetadataResolver


def build_resolver(config: GigglerConfig) -> MetadataResolver:
    """Factory: formula definitions take precedence over the registry."""
    catalog = FormulaCatalog.from_directory(config.formula_dir)
    sources: list[MetadataSource] = []
    if len(catalog):
        sources.append(FormulaSource(catalog))
    sources.append(RegistrySource(config.registry_path))
    return MetadataResolver(sources)


__all__ = [
    "MetadataSource",
    "FormulaCatalog",
    "FormulaSource",
    "ShellSteps",
    "formula_identifier",
    "RegistrySource",
    "MetadataResolver",
    "build_resolver",
]
