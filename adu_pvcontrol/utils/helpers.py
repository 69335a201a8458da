"""Utility functions for adu-pvcontrol."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def parse_update_type(update_type: str | None) -> tuple[str, int] | None:
    """Split ``provider/name:version`` into ``(provider/name, version)``.

    Returns None when the string has no name, no version, or a version that
    is not a non-negative integer.
    """
    if not update_type:
        return None
    name, sep, version = update_type.strip().rpartition(":")
    if not sep or not name or not version.isdigit():
        return None
    return name, int(version)


def read_json_object(path: str | Path) -> dict[str, Any] | None:
    """Read a JSON object from ``path``, returning None on any error."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    return data


def read_string_field(path: str | Path, field: str) -> str | None:
    """Return a non-empty string field of the JSON object at ``path``."""
    data = read_json_object(path)
    if data is None:
        return None
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        return None
    return value
