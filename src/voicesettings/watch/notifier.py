"""Debounced change detection for the config file.

Two independent raw signals report changes: a watch on the file itself and
a query over its directory. Either can misfire, repeat, or arrive out of
order, so both feed a shared modification-time guard and only a strictly
newer timestamp produces a ``FileChanged`` on the output channel.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from voicesettings.errors import StorageError
from voicesettings.storage.protocols import Storage, WatchHandle

logger: Final = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileChanged:
    """The backing file changed; new values are not loaded yet."""

    path: Path
    modified: int


ChangeChannel = queue.Queue  # of FileChanged, or None to stop a consumer


class ChangeNotifier:
    """Change-watch binding for one loaded settings snapshot.

    Holds the file and directory the snapshot came from, the last seen
    modification time, and the two raw watch registrations. ``close`` must
    be called when the snapshot is superseded.
    """

    def __init__(self, storage: Storage, path: Path, channel: ChangeChannel):
        self.storage = storage
        self.path = path
        self.directory = path.parent
        self.channel = channel
        self.last_seen: int = storage.get_last_modified(path)
        self._lock = threading.Lock()
        self._handles: list[WatchHandle] = []
        self._closed = False

    def start(self) -> ChangeNotifier:
        """Register both raw signals. Returns self for chaining."""
        pattern = f"*{self.path.suffix}" if self.path.suffix else self.path.name
        try:
            self._handles.append(
                self.storage.watch(self.path, lambda: self.on_raw_signal("watch"))
            )
            self._handles.append(
                self.storage.query_directory(
                    self.directory, pattern, lambda: self.on_raw_signal("query")
                )
            )
        except StorageError:
            self.close()
            raise
        logger.debug("Watching %s (last modified %d)", self.path, self.last_seen)
        return self

    def on_raw_signal(self, source: str = "raw") -> bool:
        """Handle one raw notification.

        Args:
            source: Which producer fired, for logging

        Returns:
            True if a FileChanged was emitted
        """
        if self._closed:
            return False
        try:
            modified = self.storage.get_last_modified(self.path)
        except StorageError as exc:
            # Editors that save by rename leave a short gap with no file
            logger.debug("Dropping %s signal for %s: %s", source, self.path, exc)
            return False

        with self._lock:
            if modified <= self.last_seen:
                logger.debug("Dropping duplicate %s signal for %s", source, self.path)
                return False
            self.last_seen = modified

        logger.info("Config file changed: %s", self.path)
        self.channel.put(FileChanged(self.path, modified))
        return True

    def close(self) -> None:
        """Deregister both watches. Further raw signals are ignored."""
        self._closed = True
        handles, self._handles = self._handles, []
        for handle in handles:
            handle.stop()

    @property
    def closed(self) -> bool:
        return self._closed
