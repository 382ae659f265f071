from pathlib import Path

# Config file location
CONFIG_FILENAME = "config.json"
CONFIG_HOME_ENV = "VOICESETTINGS_HOME"
DEFAULT_CONFIG_DIR = Path("~/.config/voicesettings")
DEFAULT_CONFIG_TEMPLATE = Path(__file__).parent / "assets" / "default_config.json"

# Directory query producer
POLL_INTERVAL_ENV = "VOICESETTINGS_POLL_INTERVAL"
DEFAULT_POLL_INTERVAL = 1.0

# Regions the speech service accepts
SUPPORTED_REGIONS: frozenset[str] = frozenset(
    {
        "westus",
        "westus2",
        "eastus",
        "eastus2",
        "westeurope",
        "northeurope",
        "southeastasia",
    }
)

# Keyword models must be packaged resources
MODEL_PATH_PREFIX = "ms-appx:///"
