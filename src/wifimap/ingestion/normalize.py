"""Normalization helpers.

Centralizes tolerant parsing of raw scan-source values.
"""

from __future__ import annotations

import math
import re
from typing import Any

_MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}([:\-]?)[0-9A-Fa-f]{2}(\1[0-9A-Fa-f]{2}){4}$")

# Placeholders scan tools print for "not available".
_PLACEHOLDERS = frozenset({"", "--", "n/a", "N/A"})


def safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if text in _PLACEHOLDERS:
            return None
        # iwlist/iw style "-67.00 dBm", "2412 MHz"
        text = text.split()[0]
        value = text
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if text in _PLACEHOLDERS:
        return None
    return text


def normalize_network_id(value: Any) -> str | None:
    """Return a canonical network identifier.

    Hardware addresses become upper-case and colon separated so the same
    radio reported by different tools (``aa-bb-..``, ``AABB..``) de-duplicates.
    Anything else is returned stripped but otherwise verbatim.
    """
    text = safe_str(value)
    if text is None:
        return None
    if _MAC_RE.match(text):
        digits = re.sub(r"[:\-]", "", text).upper()
        return ":".join(digits[i : i + 2] for i in range(0, 12, 2))
    return text


def channel_from_frequency(frequency: float | None) -> int | None:
    """Map a centre frequency in MHz to its 802.11 channel number."""
    if frequency is None:
        return None
    mhz = int(round(frequency))
    if mhz == 2484:
        return 14
    if 2412 <= mhz <= 2472:
        return (mhz - 2407) // 5
    if 5955 <= mhz <= 7115:
        return (mhz - 5950) // 5
    if 5160 <= mhz <= 5885:
        return (mhz - 5000) // 5
    return None


def frequency_from_channel(channel: int | None) -> float | None:
    """Map a channel number to MHz where the band is unambiguous.

    Channels 1-14 are 2.4 GHz, 32-177 are 5 GHz.  6 GHz channel numbers
    overlap both ranges and are never guessed.
    """
    if channel is None:
        return None
    if channel == 14:
        return 2484.0
    if 1 <= channel <= 13:
        return float(2407 + 5 * channel)
    if 32 <= channel <= 177:
        return float(5000 + 5 * channel)
    return None
