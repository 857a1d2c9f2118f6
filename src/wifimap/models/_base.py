"""Base model and timestamp helpers for map documents.

Every persisted model inherits from :class:`WifiMapBaseModel` which
provides:

* ``frozen=True`` so nodes and observations are immutable once built.
* ``extra="ignore"`` by default; subclasses that must carry unknown
  fields forward (observations) opt into ``extra="allow"``.
* ``populate_by_name=True`` so validation aliases never hide the
  canonical field name.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 100_000_000_000


def parse_map_timestamp(value: Any) -> datetime:
    """Coerce a stored timestamp to a timezone-aware UTC datetime.

    Accepts ISO-8601 strings (``Z`` or offset; naive values are taken as
    UTC), epoch seconds and epoch milliseconds.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        raise ValueError("timestamp must not be a boolean")
    elif isinstance(value, (int, float)):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        dt = datetime.fromtimestamp(ts, tz=UTC)
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"unsupported timestamp {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_map_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with a ``Z`` suffix."""
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


MapTimestamp = Annotated[
    datetime,
    BeforeValidator(parse_map_timestamp),
    PlainSerializer(format_map_timestamp, return_type=str, when_used="json"),
]
"""Annotated type: UTC datetime on the Python side, ISO-8601 string in JSON."""


class WifiMapBaseModel(BaseModel):
    """Base for persisted map models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
