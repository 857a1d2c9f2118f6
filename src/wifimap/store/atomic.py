"""Stage-then-publish file replacement."""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path

from wifimap._constants import STAGING_PREFIX, STAGING_SUFFIX
from wifimap.exceptions import PersistenceError

_logger = logging.getLogger(__name__)


def _fsync_directory(directory: Path) -> None:
    # Not every platform/filesystem lets a directory be opened for fsync.
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        _logger.debug("Directory fsync not supported for %s", directory)
    finally:
        os.close(fd)


def stage_then_publish(path: str | Path, data: bytes, *, fsync: bool = True) -> None:
    """Replace *path* with *data* in one non-partial step.

    The bytes are written to a temporary file in the same directory, then
    renamed over *path*.  Until the rename the previous file (or its
    absence) stays visible; on any failure the staged file is removed and
    :class:`PersistenceError` is raised.
    """
    target = Path(path)
    directory = target.parent

    try:
        fd, staged_name = tempfile.mkstemp(prefix=STAGING_PREFIX, suffix=STAGING_SUFFIX, dir=directory)
    except OSError as exc:
        raise PersistenceError(f"cannot stage map next to {target}: {exc}", path=target) from exc

    staged = Path(staged_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            if fsync:
                os.fsync(handle.fileno())
        if target.exists():
            # Keep the permissions the user gave the map.
            os.chmod(staged, target.stat().st_mode & 0o7777)
        else:
            os.chmod(staged, 0o644)
        os.replace(staged, target)
    except OSError as exc:
        with contextlib.suppress(OSError):
            staged.unlink()
        raise PersistenceError(f"cannot publish map {target}: {exc}", path=target) from exc
    except BaseException:
        with contextlib.suppress(OSError):
            staged.unlink()
        raise

    if fsync:
        _fsync_directory(directory)
    _logger.debug("Published %d bytes to %s", len(data), target)
