"""User-configurable settings loaded from config.json."""

from __future__ import annotations

import os
import re
from functools import total_ordering
from typing import Any

from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

from voicesettings.common.enums import OutputFormat
from voicesettings.errors import InvalidSettingsError
from voicesettings.settings.decoder import decode

# Load environment variables from .env file(s)
load_dotenv()

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def _interpolate_env(value: Any) -> Any:
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.getenv(m.group(1), ""), value)
    return value


@total_ordering
class ModelVersion(BaseModel):
    """Version of a keyword model, written as ``major.minor[.build[.revision]]``.

    config.json may hold the dotted string or an object with Major/Minor/Build/
    Revision members; -1 in the object form means "not set".
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(0, ge=0)
    minor: int = Field(0, ge=0)
    build: int | None = Field(None, ge=0)
    revision: int | None = Field(None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _parse(cls, data: Any) -> Any:
        if isinstance(data, str):
            parts = data.strip().split(".")
            if not 2 <= len(parts) <= 4 or not all(p.isdigit() for p in parts):
                raise ValueError(f"invalid version string: {data!r}")
            names = ("major", "minor", "build", "revision")
            return dict(zip(names, (int(p) for p in parts)))
        if isinstance(data, dict):
            lowered = {str(k).lower(): v for k, v in data.items()}
            parsed = {
                name: lowered[name]
                for name in ("major", "minor", "build", "revision")
                if name in lowered
            }
            for name in ("build", "revision"):
                if parsed.get(name) == -1:
                    parsed[name] = None
            return parsed
        return data

    @model_validator(mode="after")
    def _check_revision_needs_build(self) -> ModelVersion:
        if self.revision is not None and self.build is None:
            raise ValueError("revision requires build")
        return self

    @model_serializer
    def _to_string(self) -> str:
        return str(self)

    def _key(self) -> tuple[int, int, int, int]:
        return (
            self.major,
            self.minor,
            -1 if self.build is None else self.build,
            -1 if self.revision is None else self.revision,
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ModelVersion):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        parts = [self.major, self.minor, self.build, self.revision]
        return ".".join(str(p) for p in parts if p is not None)


class Settings(BaseModel):
    """Voice assistant settings decoded from config.json.

    Instances are frozen: a changed file produces a new instance rather than
    updating this one. JSON names are camelCase and matched without regard
    to case; unknown names are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    # Speech service
    speech_subscription_key: str | None = Field(
        None, description="Speech subscription key (32 hex digits, no dashes)"
    )
    azure_region: str | None = Field(None, description="Speech service region, e.g. westus")

    # Customization
    custom_speech_id: str | None = Field(None, description="Custom speech endpoint id (GUID)")
    custom_voice_ids: str | None = Field(None, description="Custom voice deployment id (GUID)")
    custom_commands_app_id: str | None = Field(None, description="Custom commands app id (GUID)")
    bot_id: str | None = Field(None, description="Bot id (GUID)")

    # Keyword spotting
    keyword_activation_model_path: str | None = Field(
        None, description="Activation model, relative to ms-appx:///"
    )
    keyword_confirmation_model_path: str | None = Field(
        None, description="Confirmation model, relative to ms-appx:///"
    )
    keyword_activation_model_version: ModelVersion = Field(
        default_factory=lambda: ModelVersion(major=1, minor=0)
    )
    last_updated_keyword_activation_model_version: ModelVersion = Field(
        default_factory=lambda: ModelVersion(major=0, minor=0)
    )
    enable_second_stage_kws: bool = True

    # Diagnostics
    enable_sdk_logging: bool = False
    enable_audio_capture_files: bool = False

    # Output
    output_format: OutputFormat = OutputFormat.MPEG_24KHZ_96KBITRATE_MONO

    # ---- validators ----
    @model_validator(mode="before")
    @classmethod
    def _match_keys(cls, data: Any) -> Any:
        """Bind JSON names case-insensitively and expand ${VAR} references."""
        if not isinstance(data, dict):
            return data
        known: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            known[name.lower()] = name
            alias = field.alias or to_camel(name)
            known[alias.lower()] = alias
        matched: dict[str, Any] = {}
        for key, value in data.items():
            target = known.get(str(key).lower())
            if target is not None:
                matched[target] = _interpolate_env(value)
        return matched

    @field_validator("output_format", mode="before")
    @classmethod
    def _parse_output_format(cls, v: Any) -> OutputFormat:
        return OutputFormat.parse(v)

    # ---- convenience methods ----
    @property
    def needs_model_update(self) -> bool:
        """Whether the activation model is newer than the last one provisioned."""
        return (
            self.keyword_activation_model_version
            > self.last_updated_keyword_activation_model_version
        )

    def to_json(self) -> str:
        """Serialize using the config.json field names."""
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_bytes(cls, data: bytes) -> Settings:
        """Decode config.json content into a Settings instance.

        Args:
            data: Raw file content

        Returns:
            Validated Settings object

        Raises:
            DecodeError: If the content is not a JSON object
            InvalidSettingsError: If a value does not fit the schema
        """
        fields = decode(data)
        try:
            return cls.model_validate(fields)
        except ValidationError as err:
            raise InvalidSettingsError(
                f"Invalid configuration:\n{err}", original_error=err
            ) from err
