import json
import os
from pathlib import Path

import pytest

from voicesettings.constants import DEFAULT_CONFIG_TEMPLATE
from voicesettings.errors import DecodeError, InvalidSettingsError, SettingsFileNotFoundError
from voicesettings.settings.loader import SettingsLoader, resolve_config_dir
from voicesettings.storage.local import LocalStorage
from voicesettings.storage.protocols import MockStorage

from conftest import CONFIG, VALID_KEY


class TestResolveConfigDir:
    def test_explicit_wins(self, config_dir: Path, tmp_path: Path) -> None:
        assert resolve_config_dir(tmp_path / "other") == tmp_path / "other"

    def test_env_var(self, config_dir: Path) -> None:
        assert resolve_config_dir() == config_dir

    def test_default_home(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("VOICESETTINGS_HOME", raising=False)
        assert resolve_config_dir() == Path("~/.config/voicesettings").expanduser()


class TestBootstrap:
    def test_first_run_copies_template(self, config_dir: Path, template: Path) -> None:
        loader = SettingsLoader(storage=LocalStorage(), template=template, watch=False)

        loaded = loader.load()

        assert (config_dir / "config.json").read_bytes() == template.read_bytes()
        assert loaded.path == config_dir / "config.json"
        assert loaded.settings.speech_subscription_key == VALID_KEY
        assert loaded.notifier is None

    def test_existing_file_not_overwritten(self, config_dir: Path, template: Path) -> None:
        config_dir.mkdir(parents=True)
        (config_dir / "config.json").write_text('{"azureRegion": "eastus"}')
        loader = SettingsLoader(template=template, watch=False)

        assert loader.load().settings.azure_region == "eastus"
        assert (config_dir / "config.json").read_text() == '{"azureRegion": "eastus"}'

    def test_copy_skipped_when_file_appears(self, template: Path, tmp_path: Path) -> None:
        # Another process created the file between the check and the copy
        dest_dir = tmp_path / "race"
        dest_dir.mkdir()
        (dest_dir / "config.json").write_text("{}")

        LocalStorage().copy(template, dest_dir, "config.json")

        assert (dest_dir / "config.json").read_text() == "{}"
        assert [p.name for p in dest_dir.iterdir()] == ["config.json"]

    def test_bundled_template_loads(self, config_dir: Path) -> None:
        settings = SettingsLoader(watch=False).load().settings
        assert settings.azure_region == "westus"
        assert settings.keyword_activation_model_path.startswith("ms-appx:///")
        assert DEFAULT_CONFIG_TEMPLATE.is_file()

    def test_mock_storage_bootstrap(self, storage: MockStorage) -> None:
        template = Path("/bundle/default_config.json")
        storage.write(template, json.dumps(CONFIG))
        loader = SettingsLoader(Path("/home/app"), storage=storage, template=template, watch=False)

        loader.load()
        loader.load()

        assert storage.exists(Path("/home/app/config.json"))
        assert len(storage.copy_calls) == 1
        assert Path("/home/app") in storage.directories


class TestLoadFrom:
    def test_load_from_does_not_bootstrap(self, config_dir: Path, tmp_path: Path) -> None:
        with pytest.raises(SettingsFileNotFoundError):
            SettingsLoader(watch=False).load_from(tmp_path / "missing.json")
        assert not (config_dir / "config.json").exists()

    def test_load_from_explicit_file(self, tmp_path: Path) -> None:
        path = tmp_path / "profile.json"
        path.write_text('{"botId": "abc"}')
        assert SettingsLoader(watch=False).load_from(path).settings.bot_id == "abc"

    def test_malformed_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{ oops")
        with pytest.raises(DecodeError) as info:
            SettingsLoader(watch=False).load_from(path)
        assert info.value.original_error is not None

    def test_schema_violation(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text('{"enableSecondStageKws": [1]}')
        with pytest.raises(InvalidSettingsError):
            SettingsLoader(watch=False).load_from(path)

    def test_attaches_notifier(self, storage: MockStorage) -> None:
        path = Path("/home/app/config.json")
        storage.write(path, json.dumps(CONFIG), mtime=42)
        loader = SettingsLoader(storage=storage)

        loaded = loader.load_from(path)

        assert loaded.notifier is not None
        assert loaded.notifier.last_seen == 42
        assert loaded.notifier.channel is loader.channel
        loaded.close()
        assert storage.watches == []

    def test_write_during_read_is_reported(self) -> None:
        path = Path("/home/app/config.json")

        class RewritingStorage(MockStorage):
            def open_bytes(self, target: Path) -> bytes:
                content = super().open_bytes(target)
                # Another writer saves the file right after our read
                self.write(target, json.dumps({**CONFIG, "azureRegion": "eastus"}), mtime=11)
                return content

        rewriting = RewritingStorage()
        rewriting.write(path, json.dumps(CONFIG), mtime=10)
        loader = SettingsLoader(storage=rewriting)

        loaded = loader.load_from(path)

        assert loaded.settings.azure_region == "westus"
        event = loader.channel.get_nowait()
        assert event.path == path
        assert event.modified == 11
        assert len(rewriting.watches) == 1
        loaded.close()

    def test_write_during_read_reported_on_disk(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps(CONFIG))

        class RewritingStorage(LocalStorage):
            def open_bytes(self, target: Path) -> bytes:
                content = super().open_bytes(target)
                target.write_text(json.dumps({**CONFIG, "azureRegion": "eastus"}))
                stat = target.stat()
                os.utime(target, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))
                return content

        loader = SettingsLoader(storage=RewritingStorage(poll_interval=0.1))
        loaded = loader.load_from(path)
        try:
            event = loader.channel.get(timeout=3)
            assert event.path == path
        finally:
            loaded.close()

    def test_failed_decode_releases_watches(self, storage: MockStorage) -> None:
        path = Path("/home/app/config.json")
        storage.write(path, "{ oops")

        with pytest.raises(DecodeError):
            SettingsLoader(storage=storage).load_from(path)

        assert storage.watches == []
        assert storage.queries == []
