"""Position sources.

How a coordinate is obtained is up to the caller; the CLI supports an
explicit ``"x y z"`` argument and an interactive prompt.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable

from wifimap.exceptions import InvalidPositionError

_SEPARATOR_RE = re.compile(r"[\s,]+")


def parse_position(text: str) -> tuple[float, float, float]:
    """Parse ``"x y z"`` (spaces and/or commas) into a finite triple."""
    parts = [part for part in _SEPARATOR_RE.split(text.strip()) if part]
    if len(parts) != 3:
        raise InvalidPositionError(f"position must be in format: x y z (got {text!r})")
    try:
        x, y, z = (float(part) for part in parts)
    except ValueError as exc:
        raise InvalidPositionError(f"position components must be numbers (got {text!r})") from exc
    if not all(math.isfinite(value) for value in (x, y, z)):
        raise InvalidPositionError(f"position components must be finite (got {text!r})")
    return (x, y, z)


class StaticPositionSource:
    """Position fixed up front, e.g. from ``--position``."""

    def __init__(self, position: tuple[float, float, float]) -> None:
        self._position = position

    @classmethod
    def from_text(cls, text: str) -> StaticPositionSource:
        return cls(parse_position(text))

    def current_position(self) -> tuple[float, float, float]:
        return self._position


class PromptPositionSource:
    """Ask the operator for ``x y z`` until a valid answer is given."""

    def __init__(
        self,
        *,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
        max_attempts: int | None = None,
    ) -> None:
        self._input = input_func
        self._output = output_func
        self._max_attempts = max_attempts

    def current_position(self) -> tuple[float, float, float]:
        attempts = 0
        while True:
            attempts += 1
            try:
                return parse_position(self._input("x y z: "))
            except InvalidPositionError as exc:
                if self._max_attempts is not None and attempts >= self._max_attempts:
                    raise
                self._output(str(exc))
