"""Decode raw config.json content into a field mapping."""

from __future__ import annotations

import json
from typing import Any

from voicesettings.errors import DecodeError


def decode(data: bytes) -> dict[str, Any]:
    """Parse JSON bytes into a mapping of field names to values.

    A UTF-8 byte order mark is tolerated, since editors on Windows like to
    add one.

    Args:
        data: Raw file content

    Returns:
        Top-level JSON object

    Raises:
        DecodeError: If the content is not valid JSON or not an object
    """
    try:
        fields = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"Unable to decode config JSON: {exc}", original_error=exc) from exc

    if not isinstance(fields, dict):
        raise DecodeError(f"Config must be a JSON object, got {type(fields).__name__}")
    return fields
