"""Exception hierarchy shared by the filtering engine and its collaborators."""

from __future__ import annotations


class SamSiftError(Exception):
    """Base class for every error that aborts a filtering run."""


class ConfigurationError(SamSiftError):
    """Missing, extra, or malformed parameters for the selected filter."""


class LoadError(SamSiftError):
    """An auxiliary input (read list, interval list, predicate) could not be loaded."""


class RuntimeEvaluationError(SamSiftError):
    """A user-supplied predicate raised while evaluating a record."""

    def __init__(self, read_name: str, cause: BaseException) -> None:
        self.read_name = read_name
        self.cause = cause
        super().__init__(
            f"Predicate failed on read '{read_name}': {type(cause).__name__}: {cause}",
        )


class AlignmentIOError(SamSiftError, OSError):
    """The alignment source or sink could not be opened, read, or written."""
