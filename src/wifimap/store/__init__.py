"""Persistence layer.

Owns the map file: locking, loading (with schema migration) and atomic
replacement.
"""

from wifimap.store.atomic import stage_then_publish
from wifimap.store.lock import MapLock, lock_path_for
from wifimap.store.map_store import MapStore, Phase, load_scan_map, parse_scan_map, serialize_scan_map

__all__ = [
    "MapLock",
    "MapStore",
    "Phase",
    "load_scan_map",
    "lock_path_for",
    "parse_scan_map",
    "serialize_scan_map",
    "stage_then_publish",
]
