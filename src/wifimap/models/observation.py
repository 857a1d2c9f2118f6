"""Network observation model."""

from __future__ import annotations

from pydantic import ConfigDict, Field, field_validator

from wifimap.models._base import WifiMapBaseModel


class NetworkObservation(WifiMapBaseModel):
    """A single radio network seen during one scan.

    Unknown keys found in a stored observation are kept on the model and
    written back unchanged, so files produced by newer writers survive a
    round trip through this build.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
    )

    network_id: str = Field(min_length=1)
    """Stable network identifier, normally the BSSID."""
    display_name: str | None = None
    """SSID; ``None`` for hidden networks."""
    signal_strength: float | None = Field(default=None, allow_inf_nan=False)
    """Received signal level in dBm."""
    channel: int | None = None
    """802.11 channel number."""
    frequency: float | None = Field(default=None, allow_inf_nan=False)
    """Centre frequency in MHz."""
    security: str | None = None
    """Authentication/encryption descriptor as reported by the scan source."""

    @field_validator("network_id")
    @classmethod
    def _strip_network_id(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("network_id must not be blank")
        return stripped

    def is_stronger_than(self, other: NetworkObservation) -> bool:
        """Return ``True`` when this observation should replace *other*.

        A missing signal never beats a present one; ties go to ``self``
        (the later entry).
        """
        if self.signal_strength is None:
            return other.signal_strength is None
        if other.signal_strength is None:
            return True
        return self.signal_strength >= other.signal_strength
