"""Exception types raised by the cabinet store."""

from __future__ import annotations


class CabinetError(Exception):
    """Base class for every error raised by cabinet."""


class IndexWriteError(CabinetError, OSError):
    """A record's metadata index could not be written."""


class ManifestWriteError(CabinetError, OSError):
    """The manifest registry could not be persisted."""


class InvalidNameError(CabinetError, ValueError):
    """A category, record or file name is not storable."""


class NotFoundError(CabinetError, FileNotFoundError):
    """A category, record or file does not exist on disk."""


class AlreadyExistsError(CabinetError, FileExistsError):
    """The destination of a create/rename/move is already taken."""
