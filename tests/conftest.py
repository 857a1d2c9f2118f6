from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from wifimap.config import MapperConfig


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "WIFIMAP_MAP_FILE",
        "WIFIMAP_INTERFACE",
        "WIFIMAP_LOCK_TIMEOUT",
        "WIFIMAP_LOCK_POLL_INTERVAL",
        "WIFIMAP_SCAN_TIMEOUT",
        "WIFIMAP_FSYNC",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def map_path(tmp_path: Path) -> Path:
    return tmp_path / "scan_map.json"


@pytest.fixture
def config(map_path: Path) -> MapperConfig:
    return MapperConfig(map_file=str(map_path), lock_timeout=5.0, lock_poll_interval=0.01)


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self._times: Iterator[datetime] = self._generate(start or datetime(2026, 1, 1, tzinfo=UTC))

    @staticmethod
    def _generate(start: datetime) -> Iterator[datetime]:
        current = start
        while True:
            yield current
            current += timedelta(minutes=1)

    def __call__(self) -> datetime:
        return next(self._times)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()
