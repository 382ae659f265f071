"""Field-level checks for a loaded Settings snapshot.

Every rule runs on every call. A failing rule is logged and reported, but
the value is left as loaded; only a missing subscription key is fatal.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Final, Optional

from voicesettings.constants import MODEL_PATH_PREFIX, SUPPORTED_REGIONS
from voicesettings.errors import MissingFieldError
from voicesettings.settings.user import Settings

logger: Final = logging.getLogger(__name__)

_HEX = "[0-9a-fA-F]"
_GUID_FORMATS: Final = (
    re.compile(rf"{_HEX}{{32}}"),  # N
    re.compile(rf"{_HEX}{{8}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{12}}"),  # D
    re.compile(rf"\{{{_HEX}{{8}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{12}}\}}"),  # B
    re.compile(rf"\({_HEX}{{8}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{12}}\)"),  # P
)


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of checking one field."""

    field: str
    passed: bool
    message: str = ""
    level: int = logging.WARNING


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def parse_guid(value: Optional[str]) -> Optional[uuid.UUID]:
    """Parse a GUID written as 32 digits, dashed, braced or parenthesized.

    Args:
        value: Text to parse

    Returns:
        The parsed UUID, or None if value is not a GUID
    """
    if value is None:
        return None
    text = value.strip()
    if not any(fmt.fullmatch(text) for fmt in _GUID_FORMATS):
        return None
    return uuid.UUID(text.strip("{}()"))


def validate_subscription_key(key: Optional[str]) -> bool:
    """Check that the key is a GUID written as 32 hex digits without dashes.

    Raises:
        MissingFieldError: If the key is missing or blank
    """
    if _blank(key):
        raise MissingFieldError("Speech Subscription Key")
    parsed = parse_guid(key)
    return parsed is not None and parsed.hex == key.lower()


def validate_azure_region(region: Optional[str]) -> bool:
    """Check the region against the regions the speech service supports."""
    if _blank(region):
        return False
    return region.lower() in SUPPORTED_REGIONS


def validate_custom_id(value: Optional[str]) -> bool:
    """Check that a custom speech, voice, commands or bot id is a GUID."""
    return parse_guid(value) is not None


def validate_model_file_path(path: Optional[str]) -> bool:
    """Check that a keyword model path is a packaged ms-appx:/// resource."""
    if _blank(path):
        return False
    return path.lower().startswith(MODEL_PATH_PREFIX)


def _check(
    field: str, passed: bool, message: str, level: int = logging.WARNING
) -> ValidationOutcome:
    return ValidationOutcome(field, passed, "" if passed else message, level)


def validate(
    settings: Settings, log: Optional[logging.Logger] = None
) -> list[ValidationOutcome]:
    """Run every field rule against settings.

    Optional ids and model paths are only checked when set; custom speech
    and custom voice ids are checked together when either is set.

    Args:
        settings: Snapshot to check
        log: Logger receiving one entry per failure (default: module logger)

    Returns:
        One outcome per checked field

    Raises:
        MissingFieldError: If the subscription key is missing or blank
    """
    log = log or logger
    outcomes = [
        _check(
            "speechSubscriptionKey",
            validate_subscription_key(settings.speech_subscription_key),
            "Failed to validate Speech Key",
        ),
        _check(
            "azureRegion",
            validate_azure_region(settings.azure_region),
            "Failed to validate Azure Region",
        ),
    ]

    if not _blank(settings.custom_speech_id) or not _blank(settings.custom_voice_ids):
        outcomes.append(
            _check(
                "customSpeechId",
                validate_custom_id(settings.custom_speech_id),
                "Failed to validate Custom Speech Id",
            )
        )
        outcomes.append(
            _check(
                "customVoiceIds",
                validate_custom_id(settings.custom_voice_ids),
                "Failed to validate Custom Voice Id",
            )
        )

    optional_ids = (
        ("customCommandsAppId", settings.custom_commands_app_id, "Custom Commands App Id"),
        ("botId", settings.bot_id, "Bot Id"),
    )
    for field, value, label in optional_ids:
        if not _blank(value):
            outcomes.append(
                _check(field, validate_custom_id(value), f"Failed to validate {label}")
            )

    model_paths = (
        ("keywordActivationModelPath", settings.keyword_activation_model_path),
        ("keywordConfirmationModelPath", settings.keyword_confirmation_model_path),
    )
    for field, value in model_paths:
        if not _blank(value):
            outcomes.append(
                _check(
                    field,
                    validate_model_file_path(value),
                    f"Failed to validate {field}. Verify path starts with {MODEL_PATH_PREFIX}",
                    logging.ERROR,
                )
            )

    for outcome in outcomes:
        if not outcome.passed:
            log.log(outcome.level, outcome.message)
    return outcomes


def failures(outcomes: list[ValidationOutcome]) -> list[ValidationOutcome]:
    """Return only the outcomes that did not pass."""
    return [o for o in outcomes if not o.passed]
