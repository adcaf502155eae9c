"""
Formula Definitions — structured per-package build recipes.

A package name maps to a formula identifier through a fixed
transliteration (``python@2`` -> ``PythonAT2``). Identifiers are looked up
in a static catalog of constructors, populated in code or loaded from YAML
files in the formula directory.
"""

import logging
import re
import shlex
import subprocess
from collections.abc import Callable
from functools import partial
from pathlib import Path

import yaml

from giggler.core.errors import DefinitionNotFoundError, MetadataError
from giggler.models.package import PackageDescriptor
from giggler.sources.base import check_entry

logger = logging.getLogger(__name__)

FormulaFactory = Callable[[str], PackageDescriptor]

VERSION_MARKER = "@"
VERSION_TOKEN = "AT"

_WORD_BOUNDARY = re.compile(r"[-_.]+")
_NON_ALNUM = re.compile(r"[^0-9A-Za-z]")


def formula_identifier(name: str) -> str:
    """
    Transliterate a package name into a formula identifier.

    The base name is split on ``-``, ``_`` and ``.``, each word is
    capitalized and the words are joined. A ``@`` version marker becomes the
    literal token ``AT`` followed by the version, with every non-alphanumeric
    character replaced by ``_``.

    'python@2'    -> 'PythonAT2'
    'gnu-sed'     -> 'GnuSed'
    'openssl@1.1' -> 'OpensslAT1_1'
    """
    base, marker, version = name.partition(VERSION_MARKER)
    identifier = "".join(word.capitalize() for word in _WORD_BOUNDARY.split(base) if word)
    if marker:
        identifier += VERSION_TOKEN + _NON_ALNUM.sub("_", version)
    return identifier


class ShellSteps:
    """
    Install procedure made of shell-style commands.

    Each command is split with shlex and run without a shell, in the
    extracted source directory. ``{prefix}`` expands to the package's
    install directory and ``{source}`` to the source directory.
    """

    def __init__(self, commands: list[str]):
        self.commands = list(commands)

    def __call__(self, workdir: Path) -> None:
        substitutions = {"prefix": str(workdir.parent), "source": str(workdir)}
        for command in self.commands:
            argv = shlex.split(command.format(**substitutions))
            logger.info(f"Running: {' '.join(argv)}")
            subprocess.run(argv, cwd=workdir, check=True)

    def __repr__(self) -> str:
        return f"ShellSteps({self.commands!r})"


def _descriptor_from_definition(definition: dict, name: str) -> PackageDescriptor:
    commands = definition.get("install") or []
    if isinstance(commands, str):
        commands = [commands]
    return PackageDescriptor(
        name=name,
        source_url=definition["url"],
        expected_digest=definition.get("sha256") or None,
        description=definition.get("desc"),
        homepage_url=definition.get("homepage"),
        install_procedure=ShellSteps(commands) if commands else None,
    )


class FormulaCatalog:
    """Static mapping from formula identifier to descriptor constructor."""

    def __init__(self):
        self._factories: dict[str, FormulaFactory] = {}

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    def identifiers(self) -> list[str]:
        return sorted(self._factories)

    def get(self, identifier: str) -> FormulaFactory:
        return self._factories[identifier]

    def register(self, identifier: str, factory: FormulaFactory) -> None:
        """Register a constructor; identifiers must be unique."""
        if identifier in self._factories:
            raise MetadataError(f"Duplicate formula definition: {identifier}")
        self._factories[identifier] = factory

    def load_file(self, path: Path) -> None:
        """Register every definition in a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise MetadataError(f"Cannot load formula file {path}: {e}") from e

        if not isinstance(data, dict):
            raise MetadataError(f"Formula file {path} must map identifiers to definitions")

        for identifier, definition in data.items():
            label = f"Formula {identifier} in {path}"
            check_entry(label, definition)
            commands = definition.get("install")
            if commands is not None and not isinstance(commands, str) and not (
                isinstance(commands, list) and all(isinstance(c, str) for c in commands)
            ):
                raise MetadataError(f"{label} install must be a command or a list of commands")
            self.register(str(identifier), partial(_descriptor_from_definition, definition))
        logger.debug(f"Loaded {len(data)} formulas from {path}")

    @classmethod
    def from_directory(cls, formula_dir: Path) -> "FormulaCatalog":
        """Load all *.yml and *.yaml files in formula_dir."""
        catalog = cls()
        if not formula_dir.is_dir():
            return catalog
        for path in sorted(formula_dir.iterdir()):
            if path.suffix in (".yml", ".yaml"):
                catalog.load_file(path)
        return catalog


class FormulaSource:
    """Resolves package names against a FormulaCatalog."""

    def __init__(self, catalog: FormulaCatalog):
        self.catalog = catalog

    def resolve(self, name: str) -> PackageDescriptor:
        identifier = formula_identifier(name)
        if not identifier.isidentifier():
            raise DefinitionNotFoundError(
                f"Package name {name!r} maps to invalid formula identifier {identifier!r}"
            )
        if identifier not in self.catalog:
            raise DefinitionNotFoundError(f"No formula definition {identifier} for '{name}'")

        logger.debug(f"Resolved '{name}' to formula {identifier}")
        return self.catalog.get(identifier)(name)
