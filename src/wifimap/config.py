"""Runtime configuration for wifimap."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from wifimap.exceptions import WifiMapConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise WifiMapConfigError(f"{env_key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class MapperConfig:
    """Mapper configuration.

    Parameters
    ----------
    map_file : str or None
        Path of the JSON map file. Required by the CLI, either via
        ``--map-file`` or ``WIFIMAP_MAP_FILE``.
    interface : str
        Wireless interface handed to the scan source.
    lock_timeout : float
        Seconds to wait for the map lock before giving up with
        :class:`~wifimap.exceptions.MapLockedError`.
    lock_poll_interval : float
        Seconds between lock attempts while waiting.
    scan_timeout : float
        Upper bound, in seconds, for a single scan-source call.
    fsync : bool
        Flush staged map contents to stable storage before publishing.
        Disabling this trades power-loss durability for speed.
    """

    map_file: str | None = None
    interface: str = "wlan0"
    lock_timeout: float = 10.0
    lock_poll_interval: float = 0.05
    scan_timeout: float = 30.0
    fsync: bool = True

    def __post_init__(self) -> None:
        if self.lock_timeout < 0:
            raise WifiMapConfigError("lock_timeout must not be negative")
        if self.lock_poll_interval <= 0:
            raise WifiMapConfigError("lock_poll_interval must be positive")
        if self.scan_timeout <= 0:
            raise WifiMapConfigError("scan_timeout must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> MapperConfig:
        """Create configuration from ``WIFIMAP_*`` environment variables.

        Explicit keyword arguments take precedence over the environment.
        ``None`` overrides are ignored so argparse defaults can be passed
        straight through.
        """
        env = os.environ
        overrides = {key: value for key, value in overrides.items() if value is not None}
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "WIFIMAP_MAP_FILE": "map_file",
            "WIFIMAP_INTERFACE": "interface",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "WIFIMAP_LOCK_TIMEOUT": "lock_timeout",
            "WIFIMAP_LOCK_POLL_INTERVAL": "lock_poll_interval",
            "WIFIMAP_SCAN_TIMEOUT": "scan_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        if "fsync" not in overrides:
            config_kwargs["fsync"] = _env_bool(env.get("WIFIMAP_FSYNC"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
