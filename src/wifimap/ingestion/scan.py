"""Turn a raw scan result and a position into a map node.

Scan sources report networks with tool-specific keys and string-typed
values.  :class:`RawObservation` absorbs those differences; the rest of
this module validates, de-duplicates and assembles an immutable
:class:`~wifimap.models.node.MapNode`.  Nothing here touches the disk.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from wifimap.ingestion.normalize import (
    channel_from_frequency,
    frequency_from_channel,
    normalize_network_id,
    safe_float,
    safe_int,
    safe_str,
)
from wifimap.models.node import MapNode, Position
from wifimap.models.observation import NetworkObservation

_logger = logging.getLogger(__name__)

_HIDDEN_SSIDS = frozenset({"<hidden>", "\\x00"})


class RawObservation(BaseModel):
    """One network as reported by a scan source.

    Every field is optional here; entries without a usable identifier are
    dropped when the node is built.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    network_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("network_id", "bssid", "BSSID", "mac", "address"),
    )
    display_name: str | None = Field(default=None, validation_alias=AliasChoices("display_name", "ssid", "SSID"))
    signal_strength: float | None = Field(
        default=None,
        validation_alias=AliasChoices("signal_strength", "signal", "strength", "signal_level", "rssi"),
    )
    channel: int | None = Field(default=None, validation_alias=AliasChoices("channel", "chan", "CHAN"))
    frequency: float | None = Field(default=None, validation_alias=AliasChoices("frequency", "freq", "FREQ"))
    security: str | None = Field(default=None, validation_alias=AliasChoices("security", "SECURITY"))

    @field_validator("network_id", mode="before")
    @classmethod
    def _coerce_network_id(cls, value: Any) -> str | None:
        return normalize_network_id(value)

    @field_validator("display_name", mode="before")
    @classmethod
    def _coerce_display_name(cls, value: Any) -> str | None:
        text = safe_str(value)
        if text is None or text in _HIDDEN_SSIDS:
            return None
        return text

    @field_validator("signal_strength", "frequency", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("channel", mode="before")
    @classmethod
    def _coerce_channel(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("security", mode="before")
    @classmethod
    def _coerce_security(cls, value: Any) -> str | None:
        return safe_str(value)

    def to_observation(self) -> NetworkObservation | None:
        if self.network_id is None:
            return None
        channel = self.channel if self.channel is not None else channel_from_frequency(self.frequency)
        frequency = self.frequency if self.frequency is not None else frequency_from_channel(channel)
        return NetworkObservation(
            network_id=self.network_id,
            display_name=self.display_name,
            signal_strength=self.signal_strength,
            channel=channel,
            frequency=frequency,
            security=self.security,
        )


def _as_raw(entry: RawObservation | Mapping[str, Any]) -> RawObservation:
    if isinstance(entry, RawObservation):
        return entry
    return RawObservation.model_validate(dict(entry))


def dedupe_observations(observations: Iterable[NetworkObservation]) -> list[NetworkObservation]:
    """Collapse repeated network ids, keeping the strongest signal.

    The surviving entry takes the slot where its id was first seen, so
    discovery order is preserved.
    """
    by_id: dict[str, NetworkObservation] = {}
    for observation in observations:
        current = by_id.get(observation.network_id)
        if current is None or observation.is_stronger_than(current):
            by_id[observation.network_id] = observation
    return list(by_id.values())


def build_node(
    raw_scan: Iterable[RawObservation | Mapping[str, Any]],
    position: Any,
    *,
    now: datetime | None = None,
    notes: str = "",
) -> MapNode:
    """Build the map node for one scan.

    Parameters
    ----------
    raw_scan : iterable
        Networks reported by the scan source.  May be empty.
    position : Position or sequence of 3 numbers
        Where the scan was taken.
    now : datetime, optional
        Capture time; defaults to the current UTC time.
    notes : str
        Free-form remarks stored on the node.

    Raises
    ------
    InvalidPositionError
        *position* is not a finite numeric triple.
    """
    checked_position = Position.from_triple(position)

    observations: list[NetworkObservation] = []
    for entry in raw_scan:
        observation = _as_raw(entry).to_observation()
        if observation is None:
            _logger.warning("Dropping scan entry without a network id: %r", entry)
            continue
        observations.append(observation)

    unique = dedupe_observations(observations)
    if len(unique) != len(observations):
        _logger.debug("Merged %d duplicate scan entries", len(observations) - len(unique))

    return MapNode(
        position=checked_position,
        timestamp=now if now is not None else datetime.now(UTC),
        notes=notes,
        observations=tuple(unique),
    )
