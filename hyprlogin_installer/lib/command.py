from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from .lifecycle import LIFECYCLE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    timeout: float | None = None,
    interactive: bool = False,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging and a bounded wait.

    - Always logs the command.
    - Captures stdout/stderr unless `interactive` (then the terminal is
      inherited, e.g. for sudo password prompts or an editor).
    - A timeout kills the child and yields returncode 124, like timeout(1).
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    pipe = None if interactive else subprocess.PIPE
    try:
        p = subprocess.Popen(
            argv_list,
            stdin=subprocess.PIPE if input_text is not None else None,
            stdout=pipe,
            stderr=pipe,
            text=True,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError as e:
        if check:
            raise RuntimeError(f"Command not found: {argv_list[0]}") from e
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))

    LIFECYCLE.track_child(p)
    timed_out = False
    try:
        try:
            stdout, stderr = p.communicate(input=input_text, timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            p.kill()
            stdout, stderr = p.communicate()
            logger.warning("Command timed out after %ss: %s", timeout, fmt_argv(argv_list))
    finally:
        LIFECYCLE.untrack_child(p)

    stdout = stdout or ""
    stderr = stderr or ""
    if stdout:
        logger.debug("STDOUT %s", stdout.strip())
    if stderr:
        logger.debug("STDERR %s", stderr.strip())

    returncode = 124 if timed_out else p.returncode

    if check and (timed_out or returncode != 0):
        reason = "timed out" if timed_out else f"failed ({returncode})"
        raise RuntimeError(f"Command {reason}: {fmt_argv(argv_list)}\n{stderr}")

    return CmdResult(argv=argv_list, returncode=returncode, stdout=stdout, stderr=stderr, timed_out=timed_out)
