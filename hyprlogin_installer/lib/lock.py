from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path
from typing import IO, Mapping, Optional

from ..errors import LockError

logger = logging.getLogger(__name__)

LOCK_NAME = "hypr-login-install.lock"


def default_lock_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Per-user runtime dir when available, shared temp dir otherwise."""

    env = os.environ if environ is None else environ
    runtime = env.get("XDG_RUNTIME_DIR") or ""
    if runtime and Path(runtime).is_dir():
        return Path(runtime) / LOCK_NAME
    return Path("/tmp") / LOCK_NAME


class InstallLock:
    """Exclusive, non-blocking advisory lock held for the whole run."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._fh: Optional[IO[str]] = None

    @property
    def held(self) -> bool:
        return self._fh is not None

    def acquire(self) -> "InstallLock":
        try:
            fh = open(self.path, "a", encoding="utf-8")
        except OSError as e:
            raise LockError(str(self.path)) from e
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            fh.close()
            raise LockError(str(self.path)) from e
        self._fh = fh
        logger.info("Acquired lock %s", self.path)
        return self

    def release(self) -> None:
        if self._fh is None:
            return
        try:
            fcntl.flock(self._fh.fileno(), fcntl.LOCK_UN)
        finally:
            self._fh.close()
            self._fh = None
        logger.info("Released lock %s", self.path)

    def __enter__(self) -> "InstallLock":
        return self.acquire()

    def __exit__(self, *exc: object) -> None:
        self.release()
