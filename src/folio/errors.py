"""Error taxonomy. Each class carries the HTTP status the servers answer with."""

from __future__ import annotations


class FolioError(Exception):
    """Base class for failures surfaced to admin clients."""

    status = 500


class NotFoundError(FolioError):
    status = 404


class ForbiddenError(FolioError):
    status = 403


class WriteError(FolioError):
    status = 500


class UploadError(FolioError):
    status = 400


class ValidationError(FolioError):
    status = 400


class CorruptIndexError(FolioError):
    """posts.json exists but is not a valid index document."""

    status = 500


class NotifyFailure(FolioError):
    """A version-control step failed. Never escapes Notifier.notify()."""
