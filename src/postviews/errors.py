from abc import ABC


class ViewCounterError(ABC, Exception):
    """Base class for view counter errors.

    Callers on the render path catch these and degrade instead of
    surfacing them, so messages must not carry request or viewer data.
    """


class InvalidIdentifierError(ViewCounterError, ValueError):
    """Raised when a content identifier is empty or malformed."""

    def __init__(self, message: str = "Invalid content identifier") -> None:
        super().__init__(message)


class StoreUnavailableError(ViewCounterError):
    """Raised when the counter store cannot be reached or a write failed."""

    def __init__(self, message: str = "Counter store unavailable") -> None:
        super().__init__(message)


class TransientStoreError(StoreUnavailableError):
    """Raised for store failures that happened before anything was written, so a retry cannot double count."""
