"""Exceptions raised by the sparse text encoding stack."""

from __future__ import annotations

from pathlib import Path


class VectorDBTextError(Exception):
    """Base class for every error raised by ``vectordb_text``."""


class ConfigurationError(VectorDBTextError, ValueError):
    """Raised when tokenizer or encoder configuration is invalid.

    Covers missing dictionary or stop-word files, unknown hash functions,
    unknown preset languages and out-of-range BM25 parameters. Always raised
    by the call that introduced the bad value.
    """


class NotFittedError(VectorDBTextError, RuntimeError):
    """Raised when encoding is attempted before corpus statistics exist."""

    def __init__(self, message: str = "BM25 must be fit before encoding documents") -> None:
        super().__init__(message)


class PersistenceError(VectorDBTextError, RuntimeError):
    """Raised when a parameter file cannot be read, decoded or written."""

    def __init__(self, message: str, *, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"{message}: {self.path}")


class InputValidationError(VectorDBTextError, ValueError):
    """Raised for degenerate inputs such as fitting an empty corpus."""
