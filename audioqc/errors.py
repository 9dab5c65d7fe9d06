"""
Exception types raised by the analysis engine.

Every per-file failure derives from AudioQCError so the batch boundary can
turn it into an ``error`` result without catching unrelated bugs by name.
"""
from __future__ import annotations


class AudioQCError(Exception):
    """Base exception for all engine errors."""


class FormatError(AudioQCError):
    """
    Raised when a container header cannot be parsed.

    Covers truncated headers, unrecognized container signatures and codec
    tags the reader does not support. `truncated` is set when the bytes ran
    out before the header was complete, so a longer read may succeed.
    """

    def __init__(self, message: str, *, filename: str | None = None, truncated: bool = False):
        super().__init__(message)
        self.filename = filename
        self.truncated = truncated

    def __str__(self):
        if self.filename:
            return f"{self.filename}: {super().__str__()}"
        return super().__str__()


class DecodeError(AudioQCError):
    """Raised when the decode facility fails to produce PCM samples."""

    def __init__(self, message: str, *, backend: str | None = None):
        super().__init__(message)
        self.backend = backend


class AnalysisError(AudioQCError):
    """
    Raised when level analysis cannot run on the given buffer.

    Attributes:
        analysis_type: Metric family that failed (e.g. 'clipping').
        original_error: Underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        analysis_type: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.analysis_type = analysis_type
        self.original_error = original_error

    def __str__(self):
        if self.analysis_type:
            return f"{self.analysis_type}: {super().__str__()}"
        return super().__str__()


class CriteriaError(AudioQCError, ValueError):
    """Raised when a criteria definition is malformed."""

    def __init__(self, message: str, validation_errors: list[str] | None = None):
        super().__init__(message)
        self.validation_errors = validation_errors or []

    def __str__(self):
        if self.validation_errors:
            return f"{super().__str__()}: {'; '.join(self.validation_errors)}"
        return super().__str__()
