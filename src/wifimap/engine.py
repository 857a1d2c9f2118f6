"""Integration engine: one invocation's contribution to the map."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from wifimap.config import MapperConfig
from wifimap.ingestion.scan import RawObservation, build_node
from wifimap.models.node import MapNode, Position
from wifimap.store.map_store import MapStore

_logger = logging.getLogger(__name__)


class ScanSource(Protocol):
    """Anything that can list the networks visible on an interface."""

    def scan(self, interface: str) -> list[RawObservation]:
        ...


class PositionSource(Protocol):
    """Anything that can say where the current scan is taken."""

    def current_position(self) -> tuple[float, float, float]:
        ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class RecordResult:
    """Outcome of a successful :meth:`IntegrationEngine.record`."""

    path: Path
    node: MapNode
    node_count: int
    created: bool


class IntegrationEngine:
    """Build a node from a scan and commit it to the map file.

    Collaborator failures (scan, position) propagate unchanged and occur
    before the map is touched.  Map failures are raised as the
    :mod:`wifimap.exceptions` kinds and leave the file as it was.
    """

    def __init__(
        self,
        config: MapperConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if config.map_file is None:
            raise ValueError("MapperConfig.map_file is required")
        self._config = config
        self._clock = clock

    def record(
        self,
        position: Any,
        raw_scan: Iterable[RawObservation | Mapping[str, Any]],
        *,
        notes: str = "",
        map_name: str | None = None,
        map_notes: str | None = None,
    ) -> RecordResult:
        """Append one node for *position* / *raw_scan* and persist it.

        ``map_name`` / ``map_notes`` only apply when the map is being
        created by this call.
        """
        node = build_node(raw_scan, position, now=self._clock(), notes=notes)

        with MapStore.from_config(self._config) as store:
            created = store.is_new
            if created:
                _logger.info("Creating new scan map %s", store.path)
                store.set_metadata(name=map_name, notes=map_notes)
            store.append(node)
            store.save()
            node_count = len(store.scan_map.nodes)

        _logger.info(
            "Added node at (%g, %g, %g) with %d network(s)",
            *node.position.as_tuple(),
            len(node.observations),
        )
        return RecordResult(path=store.path, node=node, node_count=node_count, created=created)

    def capture(
        self,
        scan_source: ScanSource,
        position_source: PositionSource,
        *,
        notes: str = "",
        map_name: str | None = None,
        map_notes: str | None = None,
    ) -> RecordResult:
        """Ask the collaborators for a position and a scan, then :meth:`record`."""
        position = Position.from_triple(position_source.current_position())
        raw_scan = scan_source.scan(self._config.interface)
        _logger.debug("Scan on %s returned %d entr(ies)", self._config.interface, len(raw_scan))
        return self.record(position, raw_scan, notes=notes, map_name=map_name, map_notes=map_notes)
