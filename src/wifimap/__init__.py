"""wifimap - Incrementally build a persistent map of wireless networks."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wifimap")
except PackageNotFoundError:
    __version__ = "0+local"
from wifimap.config import MapperConfig
from wifimap.engine import IntegrationEngine, RecordResult
from wifimap.exceptions import (
    CorruptMapError,
    InvalidPositionError,
    MapLockedError,
    MapStoreError,
    PersistenceError,
    ScanError,
    UnsupportedSchemaError,
    WifiMapConfigError,
    WifiMapError,
)
from wifimap.ingestion.scan import RawObservation, build_node, dedupe_observations
from wifimap.models import MapNode, NetworkObservation, Position, ScanMap
from wifimap.store import MapStore

__all__ = [
    "__version__",
    "CorruptMapError",
    "IntegrationEngine",
    "InvalidPositionError",
    "MapLockedError",
    "MapNode",
    "MapStore",
    "MapStoreError",
    "MapperConfig",
    "NetworkObservation",
    "PersistenceError",
    "Position",
    "RawObservation",
    "RecordResult",
    "ScanError",
    "ScanMap",
    "UnsupportedSchemaError",
    "WifiMapConfigError",
    "WifiMapError",
    "build_node",
    "dedupe_observations",
]
