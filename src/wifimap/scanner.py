"""Wireless scan sources.

:class:`NmcliScanner` asks NetworkManager for the networks visible on an
interface.  :class:`JsonScanSource` replays a scan saved as JSON, which is
handy for offline runs and tests.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from wifimap.exceptions import ScanError
from wifimap.ingestion.scan import RawObservation

_logger = logging.getLogger(__name__)

NMCLI_FIELDS = ("BSSID", "SSID", "CHAN", "FREQ", "SIGNAL", "SECURITY")


def quality_to_dbm(quality: float | None) -> float | None:
    """Convert NetworkManager's 0-100 signal quality to an approximate dBm.

    Inverse of NetworkManager's own ``quality = 2 * (dBm + 100)`` mapping.
    """
    if quality is None:
        return None
    clamped = max(0.0, min(100.0, quality))
    return clamped / 2.0 - 100.0


def _split_terse(line: str) -> list[str]:
    """Split a terse-mode line on unescaped ``:``.

    Terse mode escapes ``:`` and ``\\`` inside values with a backslash.
    """
    parts: list[str] = []
    current: list[str] = []
    chars = iter(line)
    for char in chars:
        if char == "\\":
            current.append(next(chars, "\\"))
        elif char == ":":
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def parse_nmcli_output(output: str) -> list[RawObservation]:
    """Parse ``nmcli -t -f BSSID,SSID,CHAN,FREQ,SIGNAL,SECURITY dev wifi list``."""
    networks: list[RawObservation] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = _split_terse(line)
        if len(parts) != len(NMCLI_FIELDS):
            _logger.debug("Skipping malformed nmcli line: %r", line)
            continue
        fields = dict(zip(NMCLI_FIELDS, parts, strict=True))
        raw = RawObservation.model_validate(fields)
        networks.append(raw.model_copy(update={"signal_strength": quality_to_dbm(raw.signal_strength)}))
    return networks


class NmcliScanner:
    """Scan source backed by NetworkManager's ``nmcli``."""

    def __init__(self, *, timeout: float = 30.0, rescan: bool = True) -> None:
        self._timeout = timeout
        self._rescan = rescan

    def _run(self, args: list[str], interface: str) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(args, capture_output=True, text=True, timeout=self._timeout, check=False)
        except subprocess.TimeoutExpired as exc:
            raise ScanError(f"nmcli timed out after {self._timeout:g}s", interface=interface) from exc
        except FileNotFoundError as exc:
            raise ScanError("nmcli not found (NetworkManager not installed)", interface=interface) from exc

    def scan(self, interface: str) -> list[RawObservation]:
        if shutil.which("nmcli") is None:
            raise ScanError("nmcli not found (NetworkManager not installed)", interface=interface)

        if self._rescan:
            rescan = self._run(["nmcli", "device", "wifi", "rescan", "ifname", interface], interface)
            if rescan.returncode != 0:
                # Rescans are rate limited; the cached list is still usable.
                _logger.debug("nmcli rescan failed: %s", rescan.stderr.strip())

        result = self._run(
            ["nmcli", "-t", "-f", ",".join(NMCLI_FIELDS), "device", "wifi", "list", "ifname", interface],
            interface,
        )
        if result.returncode != 0:
            error_msg = result.stderr.strip() or f"nmcli returned code {result.returncode}"
            lowered = error_msg.lower()
            if "not running" in lowered:
                raise ScanError("NetworkManager is not running", interface=interface)
            if "not found" in lowered or "no such" in lowered:
                raise ScanError(f"interface {interface} not found or not managed by NetworkManager", interface=interface)
            if "not authorized" in lowered or "permission" in lowered:
                raise ScanError(f"not permitted to scan on {interface}: {error_msg}", interface=interface)
            raise ScanError(f"nmcli scan failed: {error_msg}", interface=interface)

        networks = parse_nmcli_output(result.stdout)
        _logger.debug("nmcli reported %d network(s) on %s", len(networks), interface)
        return networks


class JsonScanSource:
    """Replay a scan stored as a JSON list of network objects."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def scan(self, interface: str) -> list[RawObservation]:
        try:
            payload: Any = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ScanError(f"cannot read scan file {self.path}: {exc}", interface=interface) from exc
        if not isinstance(payload, list):
            raise ScanError(f"scan file {self.path} must contain a JSON list", interface=interface)
        try:
            return [RawObservation.model_validate(entry) for entry in payload]
        except ValidationError as exc:
            raise ScanError(f"scan file {self.path} has an invalid entry: {exc}", interface=interface) from exc
