from __future__ import annotations

import glob
import logging
import os
import signal
import subprocess
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Set

logger = logging.getLogger(__name__)

TEMP_PREFIX = "hypr-login-"
TEMP_SUFFIX = ".tmp"

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


class Releasable(Protocol):
    def release(self) -> None:
        ...


class Lifecycle:
    """Resources that must be released however the run ends.

    Holds the concurrency lock, spawned children, temporary files and the
    marker of the operation that is unsafe to interrupt. A single signal
    handler drives the same release path regardless of the active phase.
    """

    def __init__(self, *, grace_period: float = 0.5) -> None:
        self.grace_period = grace_period
        self.critical_operation: Optional[str] = None
        self.scratch_dirs: List[Path] = []
        self._lock: Optional[Releasable] = None
        self._children: List[subprocess.Popen] = []
        self._temp_files: Set[Path] = set()
        self._installed = False

    # -- registration -------------------------------------------------

    def attach_lock(self, lock: Releasable) -> None:
        self._lock = lock

    def detach_lock(self) -> None:
        self._lock = None

    def track_child(self, proc: subprocess.Popen) -> None:
        self._children.append(proc)

    def untrack_child(self, proc: subprocess.Popen) -> None:
        if proc in self._children:
            self._children.remove(proc)

    def track_temp(self, path: Path) -> None:
        self._temp_files.add(Path(path))

    def untrack_temp(self, path: Path) -> None:
        self._temp_files.discard(Path(path))

    @contextmanager
    def critical(self, description: str) -> Iterator[None]:
        """Mark an operation that leaves partial state if interrupted."""

        self.critical_operation = description
        logger.info("Critical operation started: %s", description)
        try:
            yield
        finally:
            self.critical_operation = None

    # -- release ------------------------------------------------------

    def terminate_children(self) -> None:
        alive = [p for p in self._children if p.poll() is None]
        for p in alive:
            try:
                p.terminate()
            except OSError:
                pass
        if alive:
            time.sleep(self.grace_period)
        for p in alive:
            if p.poll() is None:
                try:
                    p.kill()
                except OSError:
                    pass
        self._children.clear()

    def remove_temp_files(self) -> int:
        removed = 0
        candidates = set(self._temp_files)
        for d in self.scratch_dirs:
            candidates.update(Path(p) for p in glob.glob(str(d / f"{TEMP_PREFIX}*{TEMP_SUFFIX}")))
        for p in candidates:
            try:
                p.unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Could not remove temporary file %s: %s", p, e)
        self._temp_files.clear()
        return removed

    def release_lock(self) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None

    def release_all(self) -> None:
        self.terminate_children()
        self.release_lock()
        self.remove_temp_files()

    # -- signals ------------------------------------------------------

    def install_signal_handlers(self) -> None:
        if self._installed:
            return
        for sig in HANDLED_SIGNALS:
            signal.signal(sig, self._handle_signal)
        self._installed = True

    def restore_signal_handlers(self) -> None:
        if not self._installed:
            return
        for sig in HANDLED_SIGNALS:
            signal.signal(sig, signal.SIG_DFL)
        self._installed = False

    def interruption_report(self) -> List[str]:
        lines = ["[INTERRUPTED] Installer was interrupted"]
        if self.critical_operation:
            lines += [
                f"[WARN] Interrupted during: {self.critical_operation}",
                "  The installation may be in a partial state.",
                "  To clean up, run: hypr-login-installer --uninstall",
                "  To retry, run: hypr-login-installer",
            ]
        return lines

    def _handle_signal(self, signum: int, frame: object) -> None:
        logger.warning(
            "Received signal %s (critical operation: %s)",
            signum,
            self.critical_operation or "none",
        )
        for line in self.interruption_report():
            print(line, flush=True)
        self.release_all()
        logging.shutdown()
        os._exit(128 + signum)


LIFECYCLE = Lifecycle()
