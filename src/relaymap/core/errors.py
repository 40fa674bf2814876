"""Message map domain exceptions."""

from __future__ import annotations


class RelayMapError(Exception):
    """Base for message map errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class RelayMapConfigurationError(RelayMapError):
    """Config validation or load failure."""


class InvalidMappingError(RelayMapError, ValueError):
    """Insert called with an empty bridge name or message ID."""


class SnapshotWriteError(RelayMapError):
    """Snapshot file could not be rewritten."""
