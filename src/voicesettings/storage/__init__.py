"""Storage backends used by the loader and the change notifier."""

from voicesettings.storage.local import LocalStorage
from voicesettings.storage.protocols import MockStorage, Storage, WatchHandle

__all__ = ["LocalStorage", "MockStorage", "Storage", "WatchHandle"]
