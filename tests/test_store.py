import json
import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from voicesettings.errors import DecodeError, SettingsError
from voicesettings.settings.loader import SettingsLoader
from voicesettings.storage.protocols import MockStorage
from voicesettings.store import SettingsStore
from voicesettings.watch.notifier import FileChanged

from conftest import CONFIG

HOME = Path("/home/app")
CONFIG_PATH = HOME / "config.json"


class CountingLoader(SettingsLoader):
    """Loader that counts loads and can be held mid-load."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.loads = 0
        self.gate: threading.Event | None = None

    def load_from(self, path):
        self.loads += 1
        if self.gate is not None:
            self.gate.wait(5)
        return super().load_from(path)


def write_config(storage: MockStorage, **overrides: object) -> None:
    values = dict(CONFIG)
    values.update(overrides)
    storage.write(CONFIG_PATH, json.dumps(values))


@pytest.fixture
def loader(storage: MockStorage) -> CountingLoader:
    write_config(storage)
    return CountingLoader(HOME, storage=storage)


@pytest.fixture
def store(loader: CountingLoader):
    with SettingsStore(loader) as s:
        yield s


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_nothing_loaded_until_first_access(store: SettingsStore, loader: CountingLoader) -> None:
    assert loader.loads == 0
    assert store.current().azure_region == "westus"
    assert loader.loads == 1


def test_current_returns_same_instance(store: SettingsStore, loader: CountingLoader) -> None:
    first = store.current()
    assert store.current() is first
    assert loader.loads == 1


def test_reload_decodes_again(
    store: SettingsStore, loader: CountingLoader, storage: MockStorage
) -> None:
    first = store.current()
    write_config(storage, azureRegion="eastus")

    store.reload()
    second = store.current()

    assert second is not first
    assert second.azure_region == "eastus"
    assert loader.loads == 2


def test_reload_does_no_io(store: SettingsStore, loader: CountingLoader) -> None:
    store.current()
    store.reload()
    store.reload()
    assert loader.loads == 1


def test_superseded_notifier_closed(store: SettingsStore, storage: MockStorage) -> None:
    store.current()
    assert len(storage.watches) == 1
    store.reload()
    store.current()
    assert len(storage.watches) == 1
    assert len(storage.queries) == 1


def test_concurrent_first_access_loads_once(store: SettingsStore, loader: CountingLoader) -> None:
    loader.gate = threading.Event()
    results = []

    def read() -> None:
        results.append(store.current())

    threads = [threading.Thread(target=read) for _ in range(8)]
    for t in threads:
        t.start()
    time.sleep(0.05)
    loader.gate.set()
    for t in threads:
        t.join(5)

    assert loader.loads == 1
    assert len(results) == 8
    assert all(r is results[0] for r in results)


def test_reload_during_load_is_not_lost(
    store: SettingsStore, loader: CountingLoader, storage: MockStorage
) -> None:
    loader.gate = threading.Event()
    reader = threading.Thread(target=store.current)
    reader.start()
    assert wait_for(lambda: loader.loads == 1)

    # File changes and reload() returns while the first load is still running
    write_config(storage, azureRegion="northeurope")
    store.reload()
    loader.gate.set()
    reader.join(5)

    assert store.current().azure_region == "northeurope"


def test_load_failure_propagates(store: SettingsStore, storage: MockStorage) -> None:
    storage.write(CONFIG_PATH, "{ broken")
    with pytest.raises(DecodeError):
        store.current()
    # No fallback snapshot is cached; fixing the file is enough
    write_config(storage)
    assert store.current().azure_region == "westus"


def test_source_file(store: SettingsStore) -> None:
    assert store.source_file == CONFIG_PATH


def test_explicit_source(storage: MockStorage) -> None:
    other = Path("/profiles/alt.json")
    storage.write(other, '{"azureRegion": "eastus2"}')
    with SettingsStore(SettingsLoader(HOME, storage=storage), source=other) as store:
        assert store.current().azure_region == "eastus2"
    assert not storage.exists(CONFIG_PATH)


class TestFileChanges:
    def test_change_notifies_then_reloads(
        self, store: SettingsStore, storage: MockStorage, loader: CountingLoader
    ) -> None:
        first = store.current()
        events: list[FileChanged] = []
        store.subscribe(events.append)

        write_config(storage, azureRegion="eastus")
        storage.fire_watch(CONFIG_PATH)

        assert wait_for(lambda: len(events) == 1)
        assert events[0].path == CONFIG_PATH
        assert wait_for(lambda: store.current() is not first)
        assert store.current().azure_region == "eastus"

    def test_duplicate_signals_notify_once(self, store: SettingsStore, storage: MockStorage) -> None:
        store.current()
        callback = MagicMock()
        store.subscribe(callback)

        storage.touch(CONFIG_PATH, 1000)
        storage.fire_watch(CONFIG_PATH)
        storage.fire_query(HOME)

        assert wait_for(lambda: callback.call_count == 1)
        time.sleep(0.05)
        assert callback.call_count == 1

    def test_observer_error_does_not_stop_reload(self, store: SettingsStore) -> None:
        first = store.current()
        store.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        good = MagicMock()
        store.subscribe(good)

        store.handle_change(FileChanged(CONFIG_PATH, 5))

        good.assert_called_once()
        assert store.current() is not first

    def test_unsubscribe(self, store: SettingsStore) -> None:
        callback = MagicMock()
        unsubscribe = store.subscribe(callback)
        unsubscribe()
        store.handle_change(FileChanged(CONFIG_PATH, 5))
        callback.assert_not_called()

    def test_auto_reload_off(self, storage: MockStorage) -> None:
        write_config(storage)
        with SettingsStore(SettingsLoader(HOME, storage=storage), auto_reload=False) as store:
            first = store.current()
            store.handle_change(FileChanged(CONFIG_PATH, 5))
            assert store.current() is first


def test_close_stops_watching(loader: CountingLoader, storage: MockStorage) -> None:
    store = SettingsStore(loader)
    store.current()
    store.close()
    store.close()
    assert storage.watches == [] and storage.queries == []


def test_close_during_load_releases_watches(loader: CountingLoader, storage: MockStorage) -> None:
    store = SettingsStore(loader)
    loader.gate = threading.Event()
    errors: list[Exception] = []

    def read() -> None:
        try:
            store.current()
        except SettingsError as exc:
            errors.append(exc)

    reader = threading.Thread(target=read)
    reader.start()
    assert wait_for(lambda: loader.loads == 1)

    store.close()
    loader.gate.set()
    reader.join(5)

    assert len(errors) == 1
    assert storage.watches == [] and storage.queries == []


def test_current_after_close_raises(loader: CountingLoader) -> None:
    store = SettingsStore(loader)
    store.current()
    store.close()
    with pytest.raises(SettingsError, match="closed"):
        store.current()
