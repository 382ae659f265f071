"""Process-wide owner of the current Settings snapshot."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Final

from voicesettings.errors import SettingsError
from voicesettings.settings.loader import LoadedSettings, SettingsLoader
from voicesettings.settings.user import Settings
from voicesettings.watch.notifier import ChangeChannel, FileChanged

logger: Final = logging.getLogger(__name__)

FileChangedCallback = Callable[[FileChanged], None]


class SettingsStore:
    """Holds exactly one current Settings snapshot and replaces it on reload.

    ``current()`` builds the snapshot on first use and after every
    ``reload()``; between reloads it returns the same object. Construction
    runs on a dedicated load thread while the caller blocks on the result,
    so ``current()`` behaves synchronously but must not be called from a
    FileChanged observer that the load itself is waiting on.

    A consumer thread drains the change channel. For each FileChanged it
    notifies subscribers first and then, with ``auto_reload``, calls
    ``reload()``. Subscribers learn that the file changed, not that new
    values are ready; the new values are read on the next ``current()``.

    Examples:
        with SettingsStore() as store:
            store.subscribe(lambda event: print("changed", event.path))
            region = store.current().azure_region
    """

    def __init__(
        self,
        loader: SettingsLoader | None = None,
        source: Path | None = None,
        auto_reload: bool = True,
    ):
        """Initialize the store. Nothing is read until ``current()``.

        Args:
            loader: Loader to build snapshots with (default: SettingsLoader())
            source: Load this file instead of the config directory's config.json
            auto_reload: Reload when the backing file changes
        """
        self.channel: ChangeChannel = queue.Queue()
        self.loader = loader or SettingsLoader()
        self.loader.channel = self.channel
        self.source = source
        self.auto_reload = auto_reload

        self._state_lock = threading.Lock()
        self._load_lock = threading.Lock()
        self._epoch = 0
        self._snapshot: LoadedSettings | None = None
        self._published: LoadedSettings | None = None
        self._observers: list[FileChangedCallback] = []
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="settings-load")
        self._consumer: threading.Thread | None = None
        self._closed = False

    # ---- snapshot access ----
    def current(self) -> Settings:
        """Return the current snapshot, loading it if needed.

        Raises:
            SettingsError: If loading fails, nothing is cached in that case;
                also raised once the store is closed
        """
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot.settings

        with self._load_lock:
            while True:
                with self._state_lock:
                    if self._closed:
                        raise SettingsError("Settings store is closed")
                    snapshot, epoch = self._snapshot, self._epoch
                if snapshot is not None:
                    return snapshot.settings

                try:
                    future = self._executor.submit(self._construct)
                except RuntimeError as exc:
                    # close() shut the executor down after the check above
                    raise SettingsError("Settings store is closed", original_error=exc) from exc
                loaded = future.result()

                with self._state_lock:
                    closed = self._closed
                    if not closed and self._epoch == epoch:
                        previous, self._published = self._published, loaded
                        self._snapshot = loaded
                        break
                loaded.close()
                if closed:
                    raise SettingsError("Settings store is closed")
                # reload() ran while loading; that snapshot may predate the change
                logger.debug("Discarding snapshot from superseded epoch %d", epoch)

        if previous is not None:
            previous.close()
        return loaded.settings

    def reload(self) -> None:
        """Invalidate the snapshot; the next ``current()`` loads a new one."""
        with self._state_lock:
            self._epoch += 1
            self._snapshot = None
        logger.info("Settings reload requested")

    @property
    def source_file(self) -> Path:
        """File the current snapshot was decoded from."""
        self.current()
        published = self._published
        return published.path if published is not None else self.loader.config_file

    def _construct(self) -> LoadedSettings:
        self._ensure_consumer()
        if self.source is not None:
            return self.loader.load_from(self.source)
        return self.loader.load()

    # ---- change notifications ----
    def subscribe(self, callback: FileChangedCallback) -> Callable[[], None]:
        """Register an observer for FileChanged events.

        Args:
            callback: Called on the consumer thread for each change

        Returns:
            Callable that removes the observer
        """
        with self._state_lock:
            self._observers.append(callback)

        def _unsubscribe() -> None:
            with self._state_lock:
                if callback in self._observers:
                    self._observers.remove(callback)

        return _unsubscribe

    def handle_change(self, event: FileChanged) -> None:
        """React to one FileChanged: notify observers, then reload."""
        with self._state_lock:
            observers = list(self._observers)
        for callback in observers:
            try:
                callback(event)
            except Exception:
                logger.exception("FileChanged observer %r failed", callback)
        if self.auto_reload:
            self.reload()

    def _ensure_consumer(self) -> None:
        with self._state_lock:
            if self._consumer is not None or self._closed:
                return
            self._consumer = threading.Thread(
                target=self._consume, name="settings-changes", daemon=True
            )
            self._consumer.start()

    def _consume(self) -> None:
        while True:
            event = self.channel.get()
            if event is None:
                break
            self.handle_change(event)

    # ---- lifecycle ----
    def close(self) -> None:
        """Stop watching the file and shut down the worker threads."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            published, self._published = self._published, None
            self._snapshot = None
            consumer = self._consumer
        if published is not None:
            published.close()
        self.channel.put(None)
        if consumer is not None and consumer is not threading.current_thread():
            consumer.join(timeout=2.0)
        self._executor.shutdown(wait=False)

    def __enter__(self) -> SettingsStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
