"""Custom exception hierarchy for wifimap."""

from __future__ import annotations

from pathlib import Path


class WifiMapError(Exception):
    """Base exception for all wifimap errors."""


class WifiMapConfigError(WifiMapError):
    """Invalid or missing configuration."""


class InvalidPositionError(WifiMapError):
    """Supplied position is not a well-formed finite 3D coordinate."""


class MapStoreError(WifiMapError):
    """Failure tied to a specific map file."""

    def __init__(self, message: str, *, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(message)


class CorruptMapError(MapStoreError):
    """Existing map file could not be parsed.

    The file is left untouched; it is never discarded or overwritten.
    """


class UnsupportedSchemaError(MapStoreError):
    """Map file was written by a newer schema than this build understands."""

    def __init__(
        self,
        message: str,
        *,
        path: str | Path,
        found: int,
        supported: int,
    ) -> None:
        self.found = found
        self.supported = supported
        super().__init__(message, path=path)


class MapLockedError(MapStoreError):
    """Another invocation held the map lock past the bounded wait."""

    def __init__(self, message: str, *, path: str | Path, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(message, path=path)


class PersistenceError(MapStoreError):
    """Staging or publishing the new map contents failed.

    The previous file (or its absence) remains the observable state.
    """


class ScanError(WifiMapError):
    """The wireless scan source could not produce a result.

    Raised by scan sources before any map node exists; the engine passes it
    through unchanged.
    """

    def __init__(self, message: str, *, interface: str = "") -> None:
        self.interface = interface
        super().__init__(message)
