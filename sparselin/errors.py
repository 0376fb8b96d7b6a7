"""Exception types raised while reading data and training models."""

from __future__ import annotations

from typing import Optional


class SparselinError(Exception):
    """Base class for all errors raised by the package."""


class InvalidDataError(SparselinError):
    """Malformed training or evaluation data."""

    def __init__(self, message: str, line: Optional[str] = None, lineno: Optional[int] = None) -> None:
        self.message = message
        self.line = line
        self.lineno = lineno
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.lineno is None:
            return self.message
        return f"{self.message} (line {self.lineno}: {self.line!r})"


class InvalidAlgorithmError(SparselinError):
    def __init__(self, algorithm: str) -> None:
        self.algorithm = algorithm
        super().__init__(f"unknown training algorithm specified: {algorithm}")


class InvalidTaskError(SparselinError):
    def __init__(self, task: str) -> None:
        self.task = task
        super().__init__(f"unknown task type specified: {task}")


class InvalidParameterError(SparselinError):
    """An unknown trainer parameter or a value that cannot be converted."""


class DegenerateInstanceError(SparselinError):
    """An instance that cannot be used for training (no candidates or no true candidate)."""


class InvalidModelError(SparselinError):
    """A model file that cannot be parsed."""
