"""Cross-process exclusive lock for a map file.

The lock is an ``flock`` on an adjacent ``<map>.lock`` marker rather than
on the map itself, because the map is replaced by rename on every save
and a lock on the old inode would not exclude the next writer.  The
kernel drops the lock when the holding process exits, so a crashed run
never wedges later ones.
"""

from __future__ import annotations

import errno
import fcntl
import logging
import os
import time
from collections.abc import Callable
from pathlib import Path
from types import TracebackType

from wifimap._constants import LOCK_SUFFIX
from wifimap.exceptions import MapLockedError, PersistenceError

_logger = logging.getLogger(__name__)


def lock_path_for(map_path: str | Path) -> Path:
    path = Path(map_path)
    return path.with_name(path.name + LOCK_SUFFIX)


class MapLock:
    """Bounded-wait exclusive lock, usable as a context manager.

    Parameters
    ----------
    map_path : str or Path
        The map file being protected.
    timeout : float
        Seconds to keep retrying before raising :class:`MapLockedError`.
        ``0`` means a single attempt.
    poll_interval : float
        Seconds to sleep between attempts.
    """

    def __init__(
        self,
        map_path: str | Path,
        *,
        timeout: float = 10.0,
        poll_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.map_path = Path(map_path)
        self.path = lock_path_for(self.map_path)
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        if self._fd is not None:
            raise RuntimeError(f"lock on {self.map_path} is already held")
        try:
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as exc:
            raise PersistenceError(f"cannot open lock file {self.path}: {exc}", path=self.map_path) from exc

        deadline = self._clock() + self._timeout
        attempts = 0
        while True:
            attempts += 1
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError as exc:
                if exc.errno not in (errno.EAGAIN, errno.EACCES, errno.EWOULDBLOCK):
                    os.close(fd)
                    raise PersistenceError(f"cannot lock {self.path}: {exc}", path=self.map_path) from exc
                remaining = deadline - self._clock()
                if remaining <= 0:
                    os.close(fd)
                    raise MapLockedError(
                        f"map {self.map_path} is locked by another process (waited {self._timeout:g}s)",
                        path=self.map_path,
                        timeout=self._timeout,
                    ) from exc
                self._sleep(min(self._poll_interval, remaining))
                continue
            break

        self._fd = fd
        _logger.debug("Acquired lock %s after %d attempt(s)", self.path, attempts)

    def release(self) -> None:
        fd = self._fd
        if fd is None:
            return
        self._fd = None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        _logger.debug("Released lock %s", self.path)

    def __enter__(self) -> MapLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
