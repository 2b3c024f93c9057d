"""Exceptions raised while reading RAMAS Metapop .mp files."""

from pathlib import Path


class MpError(Exception):
    """Base class for fatal .mp parsing errors."""

    def __init__(self, message: str, filepath: Path | str | None = None):
        self.filepath = Path(filepath) if filepath is not None else None
        super().__init__(message)


class UsageError(MpError):
    """The input path does not exist."""


class StructuralError(MpError):
    """A required marker is missing or section dimensions do not agree."""


class ParseError(MpError):
    """A token expected to be numeric is not."""

    def __init__(
        self,
        message: str,
        filepath: Path | str | None = None,
        line_number: int | None = None,
        token: str | None = None,
    ):
        self.line_number = line_number
        self.token = token
        super().__init__(message, filepath)


class FormatAnomalyWarning(UserWarning):
    """Recoverable layout anomaly, e.g. a population row with extra fields."""
