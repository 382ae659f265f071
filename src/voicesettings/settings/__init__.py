"""Settings model and loading.

This package provides:
- Settings: Immutable snapshot of config.json
- SettingsLoader: Locates, bootstraps and decodes config.json
"""

from voicesettings.settings.loader import LoadedSettings, SettingsLoader, resolve_config_dir
from voicesettings.settings.user import ModelVersion, Settings

__all__ = [
    "LoadedSettings",
    "ModelVersion",
    "Settings",
    "SettingsLoader",
    "resolve_config_dir",
]
