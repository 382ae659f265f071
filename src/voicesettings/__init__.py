"""Hot-reloading, validated settings for the voice assistant client."""

from voicesettings.errors import (
    DecodeError,
    InvalidSettingsError,
    MissingFieldError,
    SettingsError,
    SettingsFileNotFoundError,
    StorageError,
)
from voicesettings.settings import LoadedSettings, ModelVersion, Settings, SettingsLoader
from voicesettings.store import SettingsStore
from voicesettings.validation import ValidationOutcome, validate
from voicesettings.watch import ChangeNotifier, FileChanged

__all__ = [
    "ChangeNotifier",
    "DecodeError",
    "FileChanged",
    "InvalidSettingsError",
    "LoadedSettings",
    "MissingFieldError",
    "ModelVersion",
    "Settings",
    "SettingsError",
    "SettingsFileNotFoundError",
    "SettingsLoader",
    "SettingsStore",
    "StorageError",
    "ValidationOutcome",
    "validate",
]
