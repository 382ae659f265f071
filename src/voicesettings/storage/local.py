"""Local file system storage backed by watchdog observers."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Final

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    PatternMatchingEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from voicesettings.constants import DEFAULT_POLL_INTERVAL, POLL_INTERVAL_ENV
from voicesettings.errors import SettingsFileNotFoundError, StorageError
from voicesettings.storage.protocols import ChangeCallback
from voicesettings.utils.file import copy_atomic, ensure_directory_exists

logger: Final = logging.getLogger(__name__)


def _poll_interval() -> float:
    raw = os.environ.get(POLL_INTERVAL_ENV)
    if not raw:
        return DEFAULT_POLL_INTERVAL
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r, expected seconds", POLL_INTERVAL_ENV, raw)
        return DEFAULT_POLL_INTERVAL
    return value if value > 0 else DEFAULT_POLL_INTERVAL


class _SingleFileHandler(FileSystemEventHandler):
    """Forward events that touch one specific file."""

    def __init__(self, path: Path, callback: ChangeCallback):
        super().__init__()
        self._path = os.path.normcase(os.path.abspath(path))
        self._callback = callback

    def _matches(self, raw: bytes | str) -> bool:
        if not raw:
            return False
        name = os.fsdecode(raw)
        return os.path.normcase(os.path.abspath(name)) == self._path

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ("modified", "created", "moved"):
            return
        if self._matches(event.src_path) or self._matches(getattr(event, "dest_path", "")):
            self._callback()


class _PatternHandler(PatternMatchingEventHandler):
    """Forward any event for files matching the query pattern."""

    def __init__(self, pattern: str, callback: ChangeCallback):
        super().__init__(patterns=[pattern], ignore_directories=True)
        self._callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._callback()


class ObserverHandle:
    """Owns a started watchdog observer; ``stop`` tears it down."""

    def __init__(self, observer: BaseObserver):
        self._observer = observer
        self._lock = threading.Lock()
        self._stopped = False

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self._observer.stop()
        # Stopping from inside a callback runs on the observer's own thread
        if threading.current_thread() is not self._observer:
            self._observer.join(timeout=2.0)


class LocalStorage:
    """Storage implementation for the local file system.

    ``watch`` uses the platform's native observer (inotify, FSEvents,
    ReadDirectoryChangesW). ``query_directory`` uses a polling observer,
    which keeps working where native events are dropped or unavailable.
    """

    def __init__(self, poll_interval: float | None = None):
        self.poll_interval = poll_interval or _poll_interval()

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def ensure_directory(self, directory: Path) -> None:
        try:
            ensure_directory_exists(directory)
        except OSError as exc:
            raise StorageError("Unable to create config directory", directory, exc) from exc

    def open_bytes(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise SettingsFileNotFoundError("Config file not found", path, exc) from exc
        except OSError as exc:
            raise StorageError("Unable to read config file", path, exc) from exc

    def copy(self, src: Path, dest_dir: Path, dest_name: str) -> Path:
        dest = dest_dir / dest_name
        if dest.exists():
            logger.debug("Skipping copy, %s already exists", dest)
            return dest
        try:
            copy_atomic(src, dest)
        except OSError as exc:
            raise StorageError(f"Unable to copy {src}", dest, exc) from exc
        logger.info("Copied %s to %s", src, dest)
        return dest

    def get_last_modified(self, path: Path) -> int:
        try:
            return path.stat().st_mtime_ns
        except OSError as exc:
            raise StorageError("Unable to stat config file", path, exc) from exc

    def watch(self, path: Path, callback: ChangeCallback) -> ObserverHandle:
        observer = Observer()
        observer.schedule(_SingleFileHandler(path, callback), str(path.parent), recursive=False)
        return self._start(observer, f"watch {path}")

    def query_directory(
        self, directory: Path, pattern: str, callback: ChangeCallback
    ) -> ObserverHandle:
        observer = PollingObserver(timeout=self.poll_interval)
        observer.schedule(_PatternHandler(pattern, callback), str(directory), recursive=False)
        return self._start(observer, f"query {directory}/{pattern}")

    @staticmethod
    def _start(observer: BaseObserver, label: str) -> ObserverHandle:
        observer.daemon = True
        try:
            observer.start()
        except OSError as exc:
            raise StorageError(f"Unable to start {label}", original_error=exc) from exc
        logger.debug("Started %s", label)
        return ObserverHandle(observer)
