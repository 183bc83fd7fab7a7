"""Failure taxonomy for data sources.

Sources raise these at their own boundary so the adapter can classify a
failure by type. Common built-in exceptions are mapped onto the same kinds,
so a source that simply lets an ``OSError`` or ``AttributeError`` escape is
still classified correctly.
"""

from enum import Enum

from pydantic import ValidationError


class ErrorKind(str, Enum):
    API_CHANGED = "api_changed"
    UNAVAILABLE = "unavailable"
    UNEXPECTED = "unexpected"


class SourceError(Exception):
    """Base class for failures raised by a data source."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class SourceUnavailableError(SourceError):
    """A dependency, file, command or permission the source needs is missing."""

    kind = ErrorKind.UNAVAILABLE


class SourceApiChangedError(SourceError):
    """The upstream interface no longer has the shape the source expects."""

    kind = ErrorKind.API_CHANGED


_API_CHANGED_TYPES: tuple[type[BaseException], ...] = (
    AttributeError,
    KeyError,
    TypeError,
    ValidationError,
)

_UNAVAILABLE_TYPES: tuple[type[BaseException], ...] = (
    FileNotFoundError,
    NotADirectoryError,
    PermissionError,
    ModuleNotFoundError,
)


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception raised by a source onto exactly one ErrorKind."""
    if isinstance(exc, SourceError):
        return exc.kind
    if isinstance(exc, _UNAVAILABLE_TYPES):
        return ErrorKind.UNAVAILABLE
    if isinstance(exc, _API_CHANGED_TYPES):
        return ErrorKind.API_CHANGED
    return ErrorKind.UNEXPECTED


def summarize_error(message: str, limit: int = 120) -> str:
    """Truncate long error text for display."""
    if len(message) > limit:
        return message[: limit - 3] + "..."
    return message
