"""Data models for the persisted scan map."""

from wifimap.models._base import MapTimestamp, WifiMapBaseModel, format_map_timestamp, parse_map_timestamp
from wifimap.models.node import MapNode, Position
from wifimap.models.observation import NetworkObservation
from wifimap.models.scan_map import ScanMap

__all__ = [
    "MapNode",
    "MapTimestamp",
    "NetworkObservation",
    "Position",
    "ScanMap",
    "WifiMapBaseModel",
    "format_map_timestamp",
    "parse_map_timestamp",
]
