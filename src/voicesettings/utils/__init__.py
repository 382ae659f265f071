"""Common utility functions and helpers for the voicesettings package."""

from voicesettings.utils.file import copy_atomic, ensure_directory_exists

__all__ = [
    "copy_atomic",
    "ensure_directory_exists",
]
