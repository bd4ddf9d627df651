from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class StorageError(RuntimeError):
    """Raised when reading or writing local state in SQLite fails."""


class DecodeError(RuntimeError):
    """Raised when input bytes are not a recognizable image."""


class InvalidFilter(ValueError):
    """Raised when a filter id is not one of the supported filters."""


class DraftClosedError(RuntimeError):
    """Raised when an operation targets an editor draft that was discarded."""


class WriteError(RuntimeError):
    """Raised when creating a post or mutating its likes fails."""


class StreamError(RuntimeError):
    """Raised (or delivered) when the live post subscription breaks."""
