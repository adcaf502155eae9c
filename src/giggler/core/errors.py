"""
Error taxonomy for the install pipeline.

Every failure surfaced to callers is a GigglerError subclass. The installer
tags errors with the stage they occurred in; the CLI maps them to distinct
exit codes.
"""

from giggler.models.package import InstallState


class GigglerError(Exception):
    """Base class for all pipeline failures."""

    exit_code = 1

    def __init__(self, message: str, stage: InstallState | None = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    @property
    def kind(self) -> str:
        return type(self).__name__

    def describe(self) -> str:
        """One-line description naming the failure kind and stage."""
        if self.stage is not None:
            return f"Error during {self.stage.value}: {self.kind}: {self.message}"
        return f"Error: {self.kind}: {self.message}"


class NotFoundError(GigglerError):
    """No metadata exists for the requested package."""

    exit_code = 2


class DefinitionNotFoundError(NotFoundError):
    """The formula identifier derived from a name has no definition."""

    exit_code = 3


class RegistryMissingError(NotFoundError):
    """The registry file has not been fetched yet."""

    exit_code = 4


class MetadataError(GigglerError):
    """A formula definition or registry file is malformed."""

    exit_code = 5


class NetworkError(GigglerError):
    """Transport failure while fetching a remote resource."""

    exit_code = 10


class FilesystemError(GigglerError):
    """Permission, space or path failure on local disk."""

    exit_code = 11


class IntegrityError(GigglerError):
    """Downloaded content does not match the expected digest."""

    exit_code = 12

    def __init__(self, message: str, expected: str = "", actual: str = "", stage=None):
        super().__init__(message, stage)
        self.expected = expected
        self.actual = actual


class UnsupportedFormatError(GigglerError):
    """Archive suffix has no extraction strategy."""

    exit_code = 13


class CorruptArchiveError(UnsupportedFormatError):
    """Archive suffix is supported but its content cannot be decoded."""

    exit_code = 18


class UnsafeArchiveError(GigglerError):
    """Archive contains a symlink or an entry escaping the destination."""

    exit_code = 14


class InstallProcedureError(GigglerError):
    """A package's install steps failed."""

    exit_code = 15


class AlreadyInProgressError(GigglerError):
    """Another process holds the lock for this package."""

    exit_code = 16


class InstallCancelledError(GigglerError):
    """The caller cancelled a blocking operation."""

    exit_code = 17
