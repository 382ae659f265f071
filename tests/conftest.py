import json
from pathlib import Path

import pytest

from voicesettings.storage.protocols import MockStorage

VALID_KEY = "12345678123412341234123456789012"
VALID_GUID = "0b1c2d3e-4f50-6172-8394-a5b6c7d8e9f0"

CONFIG = {
    "speechSubscriptionKey": VALID_KEY,
    "azureRegion": "westus",
    "customSpeechId": "",
    "customVoiceIds": "",
    "customCommandsAppId": VALID_GUID,
    "botId": "",
    "keywordActivationModelPath": "ms-appx:///MVA/Keyword/kws.table",
    "keywordActivationModelVersion": "1.2",
    "keywordConfirmationModelPath": "",
    "enableSecondStageKws": False,
    "outputFormat": "Pcm16KHz16BitMono",
}


@pytest.fixture
def config_json() -> bytes:
    return json.dumps(CONFIG).encode("utf-8")


@pytest.fixture
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point VOICESETTINGS_HOME at an empty temporary directory."""
    directory = tmp_path / "home"
    monkeypatch.setenv("VOICESETTINGS_HOME", str(directory))
    return directory


@pytest.fixture
def template(tmp_path: Path, config_json: bytes) -> Path:
    path = tmp_path / "default_config.json"
    path.write_bytes(config_json)
    return path


@pytest.fixture
def storage() -> MockStorage:
    return MockStorage()
