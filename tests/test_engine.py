"""End-to-end tests for the integration engine against a real map file."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from conftest import StepClock
from wifimap._constants import CURRENT_SCHEMA_VERSION
from wifimap.config import MapperConfig
from wifimap.engine import IntegrationEngine
from wifimap.exceptions import (
    CorruptMapError,
    InvalidPositionError,
    MapLockedError,
    PersistenceError,
    ScanError,
    UnsupportedSchemaError,
)
from wifimap.ingestion.scan import RawObservation
from wifimap.store.lock import MapLock
from wifimap.store.map_store import load_scan_map


@dataclass
class FakeScanner:
    networks: list[dict[str, Any]] = field(default_factory=list)
    error: Exception | None = None
    interfaces: list[str] = field(default_factory=list)

    def scan(self, interface: str) -> list[RawObservation]:
        self.interfaces.append(interface)
        if self.error is not None:
            raise self.error
        return [RawObservation.model_validate(n) for n in self.networks]


@dataclass
class FakePosition:
    position: tuple[float, float, float]

    def current_position(self) -> tuple[float, float, float]:
        return self.position


def _snapshot(path: Path) -> bytes | None:
    return path.read_bytes() if path.exists() else None


def test_first_invocation_scenario(config: MapperConfig, map_path: Path, clock: StepClock) -> None:
    engine = IntegrationEngine(config, clock=clock)

    result = engine.record((1, 2, 3), [{"network_id": "AA:BB", "signal_strength": -50}])

    assert result.created
    assert result.node_count == 1
    document = json.loads(map_path.read_text())
    assert document["schema_version"] == CURRENT_SCHEMA_VERSION
    assert len(document["nodes"]) == 1
    node = document["nodes"][0]
    assert node["position"] == [1, 2, 3]
    assert node["observations"] == [{"network_id": "AA:BB", "signal_strength": -50}]
    assert node["timestamp"] == "2026-01-01T00:00:00Z"


def test_append_only_growth(config: MapperConfig, map_path: Path, clock: StepClock) -> None:
    engine = IntegrationEngine(config, clock=clock)
    engine.record((0, 0, 0), [{"network_id": "A", "signal_strength": -60}])
    engine.record((0, 0, 0), [{"network_id": "A", "signal_strength": -65}])
    before = load_scan_map(map_path).nodes

    for i in range(3):
        engine.record((i, i, 0), [])

    after = load_scan_map(map_path).nodes
    assert len(after) == len(before) + 3
    assert after[: len(before)] == before
    # Same position, same network: still two separate history entries.
    assert [n.observations[0].signal_strength for n in after[:2]] == [-60, -65]


def test_empty_scan_succeeds(config: MapperConfig, map_path: Path) -> None:
    result = IntegrationEngine(config).record((4, 5, 6), [])

    assert result.node.observations == ()
    assert load_scan_map(map_path).nodes[0].observations == ()


def test_clock_going_backwards_is_accepted(config: MapperConfig, map_path: Path) -> None:
    times = iter([datetime(2026, 5, 1, tzinfo=UTC), datetime(2026, 4, 1, tzinfo=UTC)])
    engine = IntegrationEngine(config, clock=lambda: next(times))

    engine.record((0, 0, 0), [])
    engine.record((1, 0, 0), [])

    nodes = load_scan_map(map_path).nodes
    assert [n.position.x for n in nodes] == [0.0, 1.0]
    assert nodes[1].timestamp < nodes[0].timestamp


def test_map_metadata_only_set_on_creation(config: MapperConfig, map_path: Path) -> None:
    engine = IntegrationEngine(config)
    engine.record((0, 0, 0), [], map_name="office", map_notes="2nd floor")
    engine.record((0, 0, 0), [], map_name="ignored", map_notes="ignored")

    scan_map = load_scan_map(map_path)
    assert (scan_map.name, scan_map.notes) == ("office", "2nd floor")


def test_capture_uses_collaborators(config: MapperConfig, map_path: Path) -> None:
    scanner = FakeScanner(networks=[{"bssid": "aa:bb:cc:dd:ee:ff", "signal": -48}])
    result = IntegrationEngine(config).capture(scanner, FakePosition((1.0, 1.0, 1.0)), notes="door")

    assert scanner.interfaces == [config.interface]
    assert result.node.notes == "door"
    assert load_scan_map(map_path).nodes[0].network_ids() == ("AA:BB:CC:DD:EE:FF",)


def test_missing_map_file_in_config() -> None:
    with pytest.raises(ValueError):
        IntegrationEngine(MapperConfig())


# ------------------------------------------------------------------
# Every failure leaves the file byte-for-byte unchanged
# ------------------------------------------------------------------


@pytest.fixture(params=["absent", "existing"])
def prior_state(request: pytest.FixtureRequest, config: MapperConfig, map_path: Path) -> bytes | None:
    if request.param == "existing":
        IntegrationEngine(config).record((9, 9, 9), [{"network_id": "Z", "signal_strength": -30}])
    return _snapshot(map_path)


def test_invalid_position_leaves_disk_untouched(
    config: MapperConfig, map_path: Path, prior_state: bytes | None
) -> None:
    with pytest.raises(InvalidPositionError):
        IntegrationEngine(config).record((float("nan"), 0, 0), [{"network_id": "A"}])

    assert _snapshot(map_path) == prior_state


def test_scan_failure_passes_through_untouched(
    config: MapperConfig, map_path: Path, prior_state: bytes | None
) -> None:
    error = ScanError("interface down", interface="wlan0")
    with pytest.raises(ScanError) as excinfo:
        IntegrationEngine(config).capture(FakeScanner(error=error), FakePosition((0, 0, 0)))

    assert excinfo.value is error
    assert _snapshot(map_path) == prior_state


def test_invalid_collaborator_position_skips_scan(config: MapperConfig, map_path: Path) -> None:
    scanner = FakeScanner()
    with pytest.raises(InvalidPositionError):
        IntegrationEngine(config).capture(scanner, FakePosition((0.0, float("inf"), 0.0)))

    assert scanner.interfaces == []
    assert not map_path.exists()


def test_lock_contention_leaves_disk_untouched(map_path: Path, prior_state: bytes | None) -> None:
    config = MapperConfig(map_file=str(map_path), lock_timeout=0.05, lock_poll_interval=0.01)

    with MapLock(map_path, timeout=0), pytest.raises(MapLockedError):
        IntegrationEngine(config).record((0, 0, 0), [])

    assert _snapshot(map_path) == prior_state


def test_write_failure_leaves_disk_untouched(
    config: MapperConfig, map_path: Path, prior_state: bytes | None, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _boom(*_args: object) -> None:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("wifimap.store.atomic.os.replace", _boom)

    with pytest.raises(PersistenceError):
        IntegrationEngine(config).record((0, 0, 0), [])

    assert _snapshot(map_path) == prior_state


def test_corrupt_file_scenario(config: MapperConfig, map_path: Path) -> None:
    map_path.write_bytes(b"this is not a map")

    with pytest.raises(CorruptMapError):
        IntegrationEngine(config).record((1, 2, 3), [{"network_id": "AA:BB", "signal_strength": -50}])

    assert map_path.read_bytes() == b"this is not a map"


@pytest.mark.parametrize(
    "document",
    [
        {"name": "my-app", "version": "1.0.0", "dependencies": {"left-pad": "^1.3.0"}},
        {
            "nodes": [
                {
                    "position": [1, 2, 3],
                    "timestamp": "2026-01-01T00:00:00Z",
                    "observations": [{"network_id": "AA:BB", "signal_strength": -50}],
                }
            ]
        },
    ],
    ids=["foreign-json", "unversioned-current-layout"],
)
def test_unrecognised_json_is_never_overwritten(config: MapperConfig, map_path: Path, document: dict) -> None:
    content = json.dumps(document).encode()
    map_path.write_bytes(content)

    with pytest.raises(CorruptMapError):
        IntegrationEngine(config).record((4, 5, 6), [])

    assert map_path.read_bytes() == content


def test_newer_schema_leaves_disk_untouched(config: MapperConfig, map_path: Path) -> None:
    content = json.dumps({"schema_version": CURRENT_SCHEMA_VERSION + 5, "nodes": []}).encode()
    map_path.write_bytes(content)

    with pytest.raises(UnsupportedSchemaError):
        IntegrationEngine(config).record((1, 2, 3), [])

    assert map_path.read_bytes() == content


# ------------------------------------------------------------------
# Concurrency
# ------------------------------------------------------------------


def test_concurrent_invocations_serialize(map_path: Path) -> None:
    config = MapperConfig(map_file=str(map_path), lock_timeout=10.0, lock_poll_interval=0.005)
    barrier = threading.Barrier(2)
    errors: list[BaseException] = []

    def _run(x: float) -> None:
        try:
            barrier.wait()
            IntegrationEngine(config).record((x, 0, 0), [{"network_id": f"N{int(x)}"}])
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=_run, args=(float(i),)) for i in (1, 2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    nodes = load_scan_map(map_path).nodes
    assert len(nodes) == 2
    assert sorted(n.position.x for n in nodes) == [1.0, 2.0]


def test_many_concurrent_invocations_lose_nothing(map_path: Path) -> None:
    config = MapperConfig(map_file=str(map_path), lock_timeout=30.0, lock_poll_interval=0.001, fsync=False)
    workers = 8
    barrier = threading.Barrier(workers)
    errors: list[BaseException] = []

    def _run(x: int) -> None:
        try:
            barrier.wait()
            IntegrationEngine(config).record((x, 0, 0), [])
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=_run, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert errors == []
    assert sorted(n.position.x for n in load_scan_map(map_path).nodes) == [float(i) for i in range(workers)]
