"""Persisted map store.

This is the only component that reads or writes the map file.  One
invocation uses it as a context manager::

    with MapStore(path) as store:      # lock + load
        store.append(node)             # integrate
        store.save()                   # stage then publish

The lock is held for the whole block and released on every exit path.
Any failure before :meth:`MapStore.save` publishes leaves the file
exactly as it was.
"""

from __future__ import annotations

import enum
import json
import logging
from pathlib import Path
from types import TracebackType
from typing import Any

from wifimap._constants import CURRENT_SCHEMA_VERSION
from wifimap.config import MapperConfig
from wifimap.exceptions import CorruptMapError, PersistenceError, UnsupportedSchemaError
from wifimap.models.node import MapNode
from wifimap.models.scan_map import ScanMap
from wifimap.store.atomic import stage_then_publish
from wifimap.store.lock import MapLock
from wifimap.store.migrations import document_version, migrate

_logger = logging.getLogger(__name__)


class Phase(enum.StrEnum):
    """Lifecycle of one load-integrate-save cycle."""

    IDLE = "idle"
    LOADING = "loading"
    INTEGRATING = "integrating"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


def parse_scan_map(data: bytes, *, path: str | Path) -> ScanMap:
    """Parse map file contents, migrating older schemas in memory.

    Raises
    ------
    CorruptMapError
        *data* is not a valid map document.
    UnsupportedSchemaError
        The document was written by a newer schema.
    """
    try:
        document: Any = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CorruptMapError(f"map {path} is not valid JSON: {exc}", path=path) from exc
    if not isinstance(document, dict):
        raise CorruptMapError(f"map {path} must contain a JSON object", path=path)

    try:
        version = document_version(document)
    except ValueError as exc:
        raise CorruptMapError(f"map {path}: {exc}", path=path) from exc
    if version > CURRENT_SCHEMA_VERSION:
        raise UnsupportedSchemaError(
            f"map {path} uses schema {version}; this build supports up to {CURRENT_SCHEMA_VERSION}",
            path=path,
            found=version,
            supported=CURRENT_SCHEMA_VERSION,
        )

    try:
        return ScanMap.model_validate(migrate(document))
    except (ValueError, TypeError, OverflowError, OSError) as exc:
        raise CorruptMapError(f"map {path} failed validation: {exc}", path=path) from exc


def load_scan_map(path: str | Path) -> ScanMap:
    """Read the map at *path*, or return an empty map if it does not exist."""
    map_path = Path(path)
    try:
        data = map_path.read_bytes()
    except FileNotFoundError:
        _logger.debug("No map at %s; starting empty", map_path)
        return ScanMap()
    except OSError as exc:
        raise CorruptMapError(f"cannot read map {map_path}: {exc}", path=map_path) from exc
    scan_map = parse_scan_map(data, path=map_path)
    _logger.debug("Loaded %s with %d node(s)", map_path, len(scan_map.nodes))
    return scan_map


def serialize_scan_map(scan_map: ScanMap) -> bytes:
    text = json.dumps(scan_map.to_document(), indent=2, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


class MapStore:
    """Exclusive, append-only handle on one map file.

    Parameters
    ----------
    path : str or Path
        Map file location.  Need not exist yet.
    lock_timeout : float
        Bounded wait for the cross-process lock.
    lock_poll_interval : float
        Seconds between lock attempts.
    fsync : bool
        Flush staged data to disk before publishing.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        lock_timeout: float = 10.0,
        lock_poll_interval: float = 0.05,
        fsync: bool = True,
    ) -> None:
        self.path = Path(path)
        self._lock = MapLock(self.path, timeout=lock_timeout, poll_interval=lock_poll_interval)
        self._fsync = fsync
        self._scan_map: ScanMap | None = None
        self._loaded_count = 0
        self._existed = False
        self.phase = Phase.IDLE

    @classmethod
    def from_config(cls, config: MapperConfig, path: str | Path | None = None) -> MapStore:
        target = path if path is not None else config.map_file
        if target is None:
            raise ValueError("no map file configured")
        return cls(
            target,
            lock_timeout=config.lock_timeout,
            lock_poll_interval=config.lock_poll_interval,
            fsync=config.fsync,
        )

    @property
    def scan_map(self) -> ScanMap:
        if self._scan_map is None:
            raise RuntimeError("map store is not open")
        return self._scan_map

    @property
    def is_new(self) -> bool:
        """``True`` when no map file existed at load time."""
        return self._scan_map is not None and not self._existed

    @property
    def appended(self) -> tuple[MapNode, ...]:
        """Nodes added during this session."""
        return self.scan_map.nodes[self._loaded_count :]

    def open(self) -> MapStore:
        """Acquire the lock and load the map."""
        if self.phase is not Phase.IDLE:
            raise RuntimeError(f"map store cannot be reopened from phase {self.phase}")
        self.phase = Phase.LOADING
        try:
            self._lock.acquire()
            self._existed = self.path.exists()
            self._scan_map = load_scan_map(self.path)
        except BaseException:
            self.phase = Phase.FAILED
            self._lock.release()
            raise
        self._loaded_count = len(self._scan_map.nodes)
        self.phase = Phase.INTEGRATING
        return self

    def close(self) -> None:
        self._lock.release()

    def _require_integrating(self) -> ScanMap:
        if self.phase is not Phase.INTEGRATING or self._scan_map is None:
            raise RuntimeError(f"map store is not accepting changes (phase {self.phase})")
        return self._scan_map

    def append(self, node: MapNode) -> None:
        """Add *node* at the end of the map (in memory)."""
        scan_map = self._require_integrating()
        self._scan_map = scan_map.append(node)

    def set_metadata(self, *, name: str | None = None, notes: str | None = None) -> None:
        scan_map = self._require_integrating()
        self._scan_map = scan_map.with_metadata(name=name, notes=notes)

    def save(self) -> None:
        """Persist the in-memory map atomically."""
        scan_map = self._require_integrating()
        self.phase = Phase.PERSISTING
        try:
            data = serialize_scan_map(scan_map)
            stage_then_publish(self.path, data, fsync=self._fsync)
        except PersistenceError:
            self.phase = Phase.FAILED
            raise
        except (ValueError, TypeError) as exc:
            self.phase = Phase.FAILED
            raise PersistenceError(f"cannot serialize map {self.path}: {exc}", path=self.path) from exc
        except BaseException:
            self.phase = Phase.FAILED
            raise
        self.phase = Phase.DONE
        _logger.info("Saved %s (%d node(s))", self.path, len(scan_map.nodes))

    def __enter__(self) -> MapStore:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and self.phase not in (Phase.DONE, Phase.FAILED):
            self.phase = Phase.FAILED
        self.close()
