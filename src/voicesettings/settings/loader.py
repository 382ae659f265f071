"""Locate, bootstrap and decode config.json."""

from __future__ import annotations

import logging
import os
import queue
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from voicesettings.constants import (
    CONFIG_FILENAME,
    CONFIG_HOME_ENV,
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_TEMPLATE,
)
from voicesettings.errors import SettingsFileNotFoundError
from voicesettings.settings.user import Settings
from voicesettings.storage.local import LocalStorage
from voicesettings.storage.protocols import Storage
from voicesettings.watch.notifier import ChangeChannel, ChangeNotifier

logger: Final = logging.getLogger(__name__)


def resolve_config_dir(config_dir: Path | None = None) -> Path:
    """Resolve the directory holding config.json.

    Args:
        config_dir: Explicit directory (optional)

    Returns:
        The explicit directory, else $VOICESETTINGS_HOME, else
        ~/.config/voicesettings
    """
    if config_dir is not None:
        return Path(config_dir).expanduser()
    env_dir = os.environ.get(CONFIG_HOME_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    return DEFAULT_CONFIG_DIR.expanduser()


@dataclass(frozen=True)
class LoadedSettings:
    """A decoded snapshot paired with the binding that watches its file."""

    settings: Settings
    path: Path
    notifier: ChangeNotifier | None = None

    def close(self) -> None:
        """Stop watching the file this snapshot came from."""
        if self.notifier is not None:
            self.notifier.close()


class SettingsLoader:
    """Produces Settings snapshots from config.json.

    On first run the bundled default template is copied into the config
    directory. Each load attaches a ChangeNotifier to the file it read,
    publishing to ``channel``, unless ``watch`` is False.
    """

    def __init__(
        self,
        config_dir: Path | None = None,
        storage: Storage | None = None,
        template: Path = DEFAULT_CONFIG_TEMPLATE,
        channel: ChangeChannel | None = None,
        watch: bool = True,
    ):
        """Initialize the loader.

        Args:
            config_dir: Directory for config.json (optional, resolved lazily)
            storage: Storage backend (default: local file system)
            template: Default config copied on first run
            channel: Queue receiving FileChanged events
            watch: Attach a change notifier to every loaded file
        """
        self._config_dir = config_dir
        self.storage: Storage = storage or LocalStorage()
        self.template = template
        self.channel: ChangeChannel = channel if channel is not None else queue.Queue()
        self.watch = watch

    @property
    def config_dir(self) -> Path:
        return resolve_config_dir(self._config_dir)

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    def bootstrap(self) -> Path:
        """Copy the default template into place if config.json is missing.

        Returns:
            Path of config.json
        """
        target = self.config_file
        if self.storage.exists(target):
            return target
        logger.info("No config at %s, creating it from defaults", target)
        self.storage.ensure_directory(target.parent)
        # copy() skips an existing destination, so a concurrent first run is harmless
        return self.storage.copy(self.template, target.parent, target.name)

    def load(self) -> LoadedSettings:
        """Load config.json from the config directory, creating it if needed.

        Returns:
            The decoded snapshot and its change binding

        Raises:
            StorageError: If the file or template cannot be read or copied
            DecodeError: If the file is not a JSON object
            InvalidSettingsError: If a value does not fit the schema
        """
        return self.load_from(self.bootstrap())

    def load_from(self, path: Path) -> LoadedSettings:
        """Load settings from an explicit file, without bootstrapping.

        Args:
            path: Config file to decode

        Returns:
            The decoded snapshot and its change binding
        """
        path = Path(path)
        if not self.storage.exists(path):
            raise SettingsFileNotFoundError("Config file not found", path)
        if not self.watch:
            settings = Settings.from_bytes(self.storage.open_bytes(path))
            logger.info("Loaded settings from %s", path)
            return LoadedSettings(settings, path)

        # Watches are live before the read so a write during decode is reported
        notifier = ChangeNotifier(self.storage, path, self.channel).start()
        try:
            settings = Settings.from_bytes(self.storage.open_bytes(path))
        except BaseException:
            notifier.close()
            raise
        # A write that landed before the watches settled shows up as a newer mtime
        notifier.on_raw_signal("load")
        logger.info("Loaded settings from %s", path)
        return LoadedSettings(settings, path, notifier)
