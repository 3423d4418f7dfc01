"""Custom exceptions for generation pipeline operations."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classification of a failed backend request.

    The retry engine picks its strategy from this tag, never from the
    exception message.
    """

    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    MALFORMED = "malformed"
    UNAVAILABLE = "unavailable"


class FauxFoundryError(Exception):
    """Base class for all faux-foundry errors."""

    pass


class SpecError(FauxFoundryError):
    def __init__(self, message: str | None = None):
        self.message = (
            f"Invalid specification: {message}" if message else "Invalid specification"
        )
        super().__init__(self.message)


class BatchSourceError(FauxFoundryError):
    """Raised by a :class:`BatchSource` when a batch request fails."""

    def __init__(self, kind: ErrorKind, message: str | None = None):
        self.kind = kind
        self.message = message or f"Batch request failed ({kind.value})"
        super().__init__(self.message)


class SinkError(FauxFoundryError):
    """Raised when a record cannot be persisted. Always fatal to a run."""

    def __init__(self, message: str | None = None):
        self.message = f"Write failed: {message}" if message else "Write failed"
        super().__init__(self.message)


class UnsupportedProviderError(ValueError):
    """Raised when an unknown batch source provider is requested."""

    pass
