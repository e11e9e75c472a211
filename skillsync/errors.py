"""Exception hierarchy for the synchronization engine."""

from __future__ import annotations

from typing import Sequence


class SyncError(RuntimeError):
    """Base class for every error raised by skillsync."""


class InvalidSourceFormat(SyncError, ValueError):
    """Raised when a locator string matches none of the supported grammars."""


class RetrievalError(SyncError):
    """Raised when a source tree cannot be retrieved."""

    def __init__(self, message: str, url: str, transport: str | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.transport = transport


class RetrievalTimeout(RetrievalError):
    """The clone exceeded its wall-clock budget."""


class RetrievalAuthFailure(RetrievalError):
    """The remote rejected our credentials (or hid the repository from us)."""


class RetrievalOtherFailure(RetrievalError):
    """Network, missing repository, malformed URL or missing local path."""


class UnsafeCleanupError(SyncError):
    """Raised when asked to delete a directory outside the system temp root."""


class UnitNotFound(SyncError):
    """Discovery succeeded but no unit matched the requested name."""

    def __init__(self, message: str, discovered: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.discovered = list(discovered)


class ApplyFailure(SyncError):
    """Writing one or more install targets failed."""

    def __init__(self, message: str, written: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.written = list(written)


__all__ = [
    "ApplyFailure",
    "InvalidSourceFormat",
    "RetrievalAuthFailure",
    "RetrievalError",
    "RetrievalOtherFailure",
    "RetrievalTimeout",
    "SyncError",
    "UnitNotFound",
    "UnsafeCleanupError",
]
