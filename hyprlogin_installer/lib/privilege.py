from __future__ import annotations

import logging
import os

from .command import run_cmd

logger = logging.getLogger(__name__)


class Sudo:
    """Interactive privilege elevation plus the privileged file primitives."""

    def __init__(self, *, auth_timeout: float = 60, op_timeout: float = 10, dry_run: bool = False) -> None:
        self.auth_timeout = auth_timeout
        self.op_timeout = op_timeout
        self.dry_run = dry_run

    def validate(self) -> bool:
        """Prompt for a password if needed; a hang past the timeout is a failure."""

        if self.dry_run:
            logger.info("Would run: sudo -v")
            return True
        r = run_cmd(["sudo", "-v"], check=False, timeout=self.auth_timeout, interactive=True)
        return r.ok

    def _run(self, *argv: str) -> bool:
        r = run_cmd(["sudo", *argv], check=False, timeout=self.op_timeout, dry_run=self.dry_run)
        return r.ok

    def mkdir(self, path: str | os.PathLike[str]) -> bool:
        return self._run("mkdir", "-p", str(path))

    def copy_preserving(self, src: str | os.PathLike[str], dst: str | os.PathLike[str]) -> bool:
        return self._run("cp", "-p", str(src), str(dst))

    def install_file(self, src: str | os.PathLike[str], dst: str | os.PathLike[str], mode: str = "644") -> bool:
        # install -T replaces the destination in one step and never follows it as a directory.
        return self._run("install", "-T", "-m", mode, str(src), str(dst))

    def remove(self, path: str | os.PathLike[str]) -> bool:
        return self._run("rm", "-f", str(path))
