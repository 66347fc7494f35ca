"""Errors raised by the Makefile model and the backup rotation."""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class MakefileError(RuntimeError):
    """Base class for Makefile loading, lookup and backup failures."""

    def __init__(self, message: str, path: Optional[Path] = None, entry: Optional[str] = None):
        self.path = Path(path) if path is not None else None
        self.entry = entry
        if path is not None:
            message = f"{message} ({self.path})"
        super().__init__(message)


class EmptyFileError(MakefileError):
    pass


class UnsupportedLineEndingError(MakefileError):
    pass


class EntryNotFoundError(MakefileError):
    pass


class ValueNotFoundError(MakefileError):
    pass


class BackupError(MakefileError):
    pass


__all__ = [
    "MakefileError",
    "EmptyFileError",
    "UnsupportedLineEndingError",
    "EntryNotFoundError",
    "ValueNotFoundError",
    "BackupError",
]
