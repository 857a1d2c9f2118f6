"""Scan map document model."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from wifimap._constants import CURRENT_SCHEMA_VERSION
from wifimap.models._base import WifiMapBaseModel
from wifimap.models.node import MapNode


class ScanMap(WifiMapBaseModel):
    """Every recorded node plus format and descriptive metadata.

    ``nodes`` is append-only: :meth:`append` returns a new map with the
    node at the end and never reorders or merges existing entries.
    """

    schema_version: int = Field(default=CURRENT_SCHEMA_VERSION, ge=1)
    """Format version of the document."""
    name: str = ""
    """Title of the scan map."""
    notes: str = ""
    """Free-form description of any additional details."""
    nodes: tuple[MapNode, ...] = ()
    """Scan data points in the order they were recorded."""

    def append(self, node: MapNode) -> ScanMap:
        return self.model_copy(update={"nodes": (*self.nodes, node)})

    def with_metadata(self, *, name: str | None = None, notes: str | None = None) -> ScanMap:
        update: dict[str, Any] = {}
        if name is not None:
            update["name"] = name
        if notes is not None:
            update["notes"] = notes
        return self.model_copy(update=update) if update else self

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-ready document written to disk."""
        return self.model_dump(mode="json", exclude_none=True)

    def overview(self) -> dict[str, Any]:
        networks = {network_id for node in self.nodes for network_id in node.network_ids()}
        return {
            "name": self.name,
            "notes": self.notes,
            "schema_version": self.schema_version,
            "nodes": len(self.nodes),
            "distinct_networks": len(networks),
        }
