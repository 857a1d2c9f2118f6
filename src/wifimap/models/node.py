"""Position and map node models."""

from __future__ import annotations

import numbers
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import Field, ValidationError, field_validator, model_serializer, model_validator

from wifimap.exceptions import InvalidPositionError
from wifimap.models._base import MapTimestamp, WifiMapBaseModel
from wifimap.models.observation import NetworkObservation


class Position(WifiMapBaseModel):
    """Point in the map's coordinate system.

    It is suggested that x and y span a horizontal plane and z is the
    height.  All three components must be finite; there is no "unknown"
    default.

    Serialised as ``[x, y, z]``.  The ``{"x": .., "y": .., "z": ..}``
    object form used by schema v1 files is accepted on input.
    """

    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)
    z: float = Field(allow_inf_nan=False)

    @model_validator(mode="before")
    @classmethod
    def _accept_sequence(cls, values: Any) -> Any:
        if isinstance(values, Mapping):
            return values
        if isinstance(values, Sequence) and not isinstance(values, (str, bytes)):
            if len(values) != 3:
                raise ValueError(f"position needs exactly 3 components, got {len(values)}")
            return {"x": values[0], "y": values[1], "z": values[2]}
        raise ValueError(f"position must be a 3-element sequence, got {type(values).__name__}")

    @field_validator("x", "y", "z", mode="before")
    @classmethod
    def _require_real(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ValueError(f"coordinate must be a real number, got {value!r}")
        return value

    @model_serializer
    def _as_list(self) -> list[float]:
        return [self.x, self.y, self.z]

    @classmethod
    def from_triple(cls, value: Any) -> Position:
        """Validate caller-supplied input as a position.

        Raises :class:`InvalidPositionError` instead of pydantic's
        ``ValidationError`` so callers see the map-level error kind.
        """
        if isinstance(value, Position):
            return value
        try:
            return cls.model_validate(value)
        except ValidationError as exc:
            raise InvalidPositionError(f"invalid position {value!r}: {exc.errors()[0]['msg']}") from exc

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


class MapNode(WifiMapBaseModel):
    """One recorded scan event: a position plus the networks seen there.

    Nodes are immutable.  New information about a network is recorded as
    a new node, never by editing an existing one.
    """

    position: Position
    """Where the scan was taken."""
    timestamp: MapTimestamp
    """Capture time (UTC).  Not required to increase across nodes."""
    notes: str = ""
    """Free-form remarks entered at capture time."""
    observations: tuple[NetworkObservation, ...] = ()
    """Networks in scan discovery order.  May be empty."""

    @model_validator(mode="after")
    def _unique_network_ids(self) -> MapNode:
        seen: set[str] = set()
        for observation in self.observations:
            if observation.network_id in seen:
                raise ValueError(f"duplicate network_id {observation.network_id!r} in node")
            seen.add(observation.network_id)
        return self

    def network_ids(self) -> tuple[str, ...]:
        return tuple(observation.network_id for observation in self.observations)
