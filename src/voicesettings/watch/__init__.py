"""Config file change detection."""

from voicesettings.watch.notifier import ChangeChannel, ChangeNotifier, FileChanged

__all__ = ["ChangeChannel", "ChangeNotifier", "FileChanged"]
