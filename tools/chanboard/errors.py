"""Error taxonomy shared by the store, repository and media pipeline."""

from __future__ import annotations


class BoardError(Exception):
    """Base class for every error raised by chanboard."""


class RequestRejected(BoardError):
    """The request itself is invalid.  Shown to the user, never logged as a fault."""


class ValidationError(RequestRejected):
    """Required text is empty or too long."""


class NotFound(RequestRejected):
    """The requested thread does not exist."""


class UnsupportedMediaType(RequestRejected):
    """The attachment's declared type is not an accepted image or video."""


class InvalidMedia(RequestRejected):
    """The attachment's content could not be decoded."""


class InternalError(BoardError):
    """Storage failure.  Logged, reported to the user without detail."""


class StoreError(InternalError):
    """The key-value store failed to read or write."""


class IoError(InternalError):
    """Writing an upload to the filesystem failed."""
