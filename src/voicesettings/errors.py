"""Exception classes for settings loading and validation.

This module defines a hierarchy of exception classes for the error
conditions the settings store can surface to its callers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class SettingsError(Exception):
    """Base error for anything the settings store raises.

    Carries the file involved, when known, and the underlying exception
    so callers can log a useful message without unwrapping the chain.
    """

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            path: Config file the error relates to
            original_error: The original exception that was caught
        """
        super().__init__(f"{message} ({path})" if path else message)
        self.message: str = message
        self.path: Optional[Path] = path
        self.original_error: Optional[BaseException] = original_error


class StorageError(SettingsError):
    """Raised when the config file or template cannot be read or copied."""

    pass


class SettingsFileNotFoundError(StorageError):
    """Raised when an explicitly requested config file does not exist."""

    pass


class DecodeError(SettingsError):
    """Raised when config.json is not a well-formed JSON object."""

    pass


class InvalidSettingsError(SettingsError):
    """Raised when decoded values do not fit the settings schema."""

    pass


class MissingFieldError(SettingsError):
    """Raised when a mandatory setting is missing or blank."""

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        """Initialize with the missing field.

        Args:
            field: JSON name of the missing setting
            message: Optional override for the default message
        """
        super().__init__(message or f"Failed to obtain {field}")
        self.field = field
