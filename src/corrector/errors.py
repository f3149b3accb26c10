"""Exception hierarchy shared by the correction pipeline."""
from __future__ import annotations


class CorrectorError(RuntimeError):
    """Base class for every error raised by the correction service."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class ClientInputError(CorrectorError):
    """Raised when an uploaded document is missing or has the wrong media type."""


class ExtractionError(CorrectorError):
    """Raised when plain text cannot be extracted from an uploaded document."""


class EngineError(CorrectorError):
    """Base exception for correction engine issues."""


class EngineUnavailableError(EngineError):
    """Raised when the engine backend cannot be initialised."""


class EngineTransientError(EngineError):
    """A failed engine attempt that is worth retrying."""


class EngineTimeoutError(EngineTransientError):
    """Raised when a single engine attempt exceeds its deadline."""


class EngineResponseError(EngineTransientError):
    """Raised when the engine returns empty or malformed content."""


class CorrectionRejectedError(EngineTransientError):
    """Raised when a well-formed engine response violates correction constraints.

    ``feedback`` describes the violated constraint so the next attempt can be
    instructed accordingly.
    """

    def __init__(self, message: str, *, feedback: str) -> None:
        super().__init__(message)
        self.feedback = feedback


class PersistenceError(CorrectorError):
    """Raised when a result store cannot write a correction record."""


__all__ = [
    "ClientInputError",
    "CorrectionRejectedError",
    "CorrectorError",
    "EngineError",
    "EngineResponseError",
    "EngineTimeoutError",
    "EngineTransientError",
    "EngineUnavailableError",
    "ExtractionError",
    "PersistenceError",
]
