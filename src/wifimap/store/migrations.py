"""Forward migration of older map documents.

Each step upgrades a raw document by exactly one version.  Migration
works on plain dicts before model validation so historical layouts never
need a model class of their own.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any

from wifimap._constants import CURRENT_SCHEMA_VERSION, LEGACY_SCHEMA_VERSION
from wifimap.ingestion.scan import RawObservation, dedupe_observations
from wifimap.models._base import format_map_timestamp, parse_map_timestamp

_logger = logging.getLogger(__name__)

Migration = Callable[[dict[str, Any]], dict[str, Any]]


def _v1_node_timestamp(networks: list[Any]) -> str | None:
    """v1 stored the scan time on every network; all share one value."""
    for network in networks:
        if isinstance(network, dict) and network.get("time_scanned") is not None:
            return format_map_timestamp(parse_map_timestamp(network["time_scanned"]))
    return None


def _require_v1_shape(document: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the v1 node list, or raise :class:`ValueError` for anything else.

    v1 files were written without defaults, so a document missing ``nodes``
    or a node missing ``position`` / ``networks`` is not a v1 map.
    """
    for key in ("name", "notes"):
        if not isinstance(document.get(key, ""), str):
            raise ValueError(f"{key} is not a string")
    nodes = document.get("nodes")
    if not isinstance(nodes, list):
        raise ValueError("document without schema_version has no nodes list")
    for index, node in enumerate(nodes):
        if not isinstance(node, dict):
            raise ValueError(f"node {index} is not an object")
        if "observations" in node or "timestamp" in node:
            raise ValueError(f"node {index} has current-schema fields but the document has no schema_version")
        if not isinstance(node.get("networks"), list):
            raise ValueError(f"node {index} has no networks list")
        if not isinstance(node.get("position"), dict):
            raise ValueError(f"node {index} has no position object")
        if not isinstance(node.get("notes", ""), str):
            raise ValueError(f"node {index} notes is not a string")
    return nodes


def _migrate_v1_to_v2(document: dict[str, Any]) -> dict[str, Any]:
    """Upgrade the original ``name/notes/nodes[].networks[]`` layout.

    v1 nodes carry ``position`` as ``{x, y, z}`` and a ``networks`` list with
    ``mac``, ``ssid``, string ``channel`` / ``strength`` and a per-network
    ``time_scanned`` in epoch milliseconds.  A node without any network has
    no recorded time and is stamped with the Unix epoch.
    """
    nodes: list[dict[str, Any]] = []
    for index, node in enumerate(_require_v1_shape(document)):
        networks = node["networks"]

        observations = []
        for network in networks:
            raw = RawObservation.model_validate(network)
            observation = raw.to_observation()
            if observation is None:
                raise ValueError(f"node {index} has a network without a mac")
            observations.append(observation)
        unique = dedupe_observations(observations)
        if len(unique) != len(observations):
            _logger.debug("v1 node %d: merged %d duplicate networks", index, len(observations) - len(unique))

        nodes.append(
            {
                "position": node["position"],
                "timestamp": _v1_node_timestamp(networks) or format_map_timestamp(parse_map_timestamp(0)),
                "notes": node.get("notes") or "",
                "observations": [item.model_dump(mode="json", exclude_none=True) for item in unique],
            }
        )

    return {
        "schema_version": 2,
        "name": document.get("name") or "",
        "notes": document.get("notes") or "",
        "nodes": nodes,
    }


MIGRATIONS: dict[int, Migration] = {
    1: _migrate_v1_to_v2,
}
"""Maps a source version to the step that produces ``version + 1``."""


def document_version(document: dict[str, Any]) -> int:
    """Return the schema version of a raw document.

    Raises :class:`ValueError` when the version field is malformed.
    """
    if "schema_version" not in document:
        return LEGACY_SCHEMA_VERSION
    version = document["schema_version"]
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ValueError(f"schema_version must be a positive integer, got {version!r}")
    return version


def migrate(document: dict[str, Any], *, target: int = CURRENT_SCHEMA_VERSION) -> dict[str, Any]:
    """Upgrade *document* step by step to *target*.

    The input is not modified.  Callers must reject versions newer than
    *target* before calling.
    """
    version = document_version(document)
    working = copy.deepcopy(document)
    while version < target:
        step = MIGRATIONS.get(version)
        if step is None:
            raise ValueError(f"no migration from schema version {version}")
        _logger.debug("Migrating map document from schema %d to %d", version, version + 1)
        working = step(working)
        version += 1
    return working
