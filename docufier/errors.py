"""Exception hierarchy shared by the manifest, archive and packaging layers."""

from __future__ import annotations


class DocufierError(Exception):
    """Base class for every failure reported by the package lifecycle."""


class InputError(DocufierError, ValueError):
    """Raised for caller-correctable problems with sources, packages or manifests."""


class ManifestNotFoundError(InputError):
    """Raised when a directory has no manifest document."""


class ManifestFormatError(DocufierError, ValueError):
    """Raised when the manifest document is not a parseable JSON object."""


class ManifestValidationError(InputError):
    """Raised when a manifest is missing required fields or holds bad values."""


class EntryFileError(InputError):
    """Raised when the manifest's entry file is absent from the payload."""


class PackageIOError(DocufierError, OSError):
    """Raised for filesystem or archive stream failures.

    The original exception is always chained as ``__cause__``.
    """
