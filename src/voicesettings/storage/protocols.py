# src/voicesettings/storage/protocols.py
from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

from voicesettings.errors import SettingsFileNotFoundError, StorageError

ChangeCallback = Callable[[], None]


@runtime_checkable
class WatchHandle(Protocol):
    """Registration returned by a watch; stopping it ends the callbacks."""

    def stop(self) -> None:
        """Deregister the watch. Safe to call more than once."""
        ...


@runtime_checkable
class Storage(Protocol):
    """Protocol defining the file system operations the settings core needs.

    This protocol abstracts the platform storage so the loader and the
    change notifier can be exercised without touching a real disk or
    waiting on real file system events.
    """

    def exists(self, path: Path) -> bool:
        """Return True if a file exists at path."""
        ...

    def ensure_directory(self, directory: Path) -> None:
        """Create directory (and parents) if it is missing."""
        ...

    def open_bytes(self, path: Path) -> bytes:
        """Read the complete content of a file.

        Args:
            path: File to read

        Returns:
            File content

        Raises:
            SettingsFileNotFoundError: If the file does not exist
            StorageError: If the file cannot be read
        """
        ...

    def copy(self, src: Path, dest_dir: Path, dest_name: str) -> Path:
        """Copy src into dest_dir under dest_name unless it is already there.

        Args:
            src: File to copy
            dest_dir: Target directory
            dest_name: Target file name

        Returns:
            Path of the destination file
        """
        ...

    def get_last_modified(self, path: Path) -> int:
        """Return the modification time of path in nanoseconds."""
        ...

    def watch(self, path: Path, callback: ChangeCallback) -> WatchHandle:
        """Call callback whenever the file at path is reported as changed."""
        ...

    def query_directory(
        self, directory: Path, pattern: str, callback: ChangeCallback
    ) -> WatchHandle:
        """Call callback whenever files in directory matching pattern change."""
        ...


class _MockWatch:
    def __init__(self, registry: list[_MockWatch], target: Path, callback: ChangeCallback):
        self._registry = registry
        self.target = target
        self.callback = callback
        self.active = True

    def stop(self) -> None:
        self.active = False
        if self in self._registry:
            self._registry.remove(self)


class MockStorage:
    """In-memory implementation of Storage for testing.

    Modification times are plain integers under the caller's control, and
    watch callbacks only fire when the test triggers them.
    """

    def __init__(self, files: dict[Path, bytes] | None = None):
        self.files: dict[Path, bytes] = {}
        self.mtimes: dict[Path, int] = {}
        self.directories: set[Path] = set()
        self.watches: list[_MockWatch] = []
        self.queries: list[_MockWatch] = []
        self.read_calls: list[Path] = []
        self.copy_calls: list[dict[str, object]] = []
        for path, content in (files or {}).items():
            self.write(path, content)

    def write(self, path: Path, content: bytes | str, mtime: int | None = None) -> None:
        """Store content at path and bump (or set) its modification time."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.files[path] = content
        self.directories.add(path.parent)
        self.mtimes[path] = mtime if mtime is not None else self.mtimes.get(path, 0) + 1

    def touch(self, path: Path, mtime: int) -> None:
        """Set the modification time without changing content."""
        self.mtimes[path] = mtime

    def exists(self, path: Path) -> bool:
        return path in self.files

    def ensure_directory(self, directory: Path) -> None:
        self.directories.add(directory)

    def open_bytes(self, path: Path) -> bytes:
        self.read_calls.append(path)
        if path not in self.files:
            raise SettingsFileNotFoundError("Config file not found", path=path)
        return self.files[path]

    def copy(self, src: Path, dest_dir: Path, dest_name: str) -> Path:
        dest = dest_dir / dest_name
        self.copy_calls.append({"src": src, "dest": dest})
        if dest not in self.files:
            self.write(dest, self.open_bytes(src))
        return dest

    def get_last_modified(self, path: Path) -> int:
        if path not in self.mtimes:
            raise StorageError("Cannot stat file", path=path)
        return self.mtimes[path]

    def watch(self, path: Path, callback: ChangeCallback) -> WatchHandle:
        handle = _MockWatch(self.watches, path, callback)
        self.watches.append(handle)
        return handle

    def query_directory(
        self, directory: Path, pattern: str, callback: ChangeCallback
    ) -> WatchHandle:
        handle = _MockWatch(self.queries, directory, callback)
        self.queries.append(handle)
        return handle

    def fire_watch(self, path: Path) -> None:
        """Simulate the file watch reporting a change to path."""
        for handle in list(self.watches):
            if handle.active and handle.target == path:
                handle.callback()

    def fire_query(self, directory: Path) -> None:
        """Simulate the directory query reporting changed contents."""
        for handle in list(self.queries):
            if handle.active and handle.target == directory:
                handle.callback()


def create_mock_storage(files: dict[Path, bytes] | None = None) -> MockStorage:
    """Create and return an in-memory storage for testing."""
    return MockStorage(files)
