from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Uniform outcome of a service-manager call."""

    ok: bool
    output: str = ""
    timed_out: bool = False

    @classmethod
    def from_cmd(cls, r: CmdResult) -> "ServiceResult":
        return cls(ok=r.ok, output=r.stdout.strip(), timed_out=r.timed_out)


class Systemctl:
    """systemctl wrapper; every call is bounded by a timeout.

    `sudo=True` prefixes the call with sudo (relies on a valid elevation
    window from `sudo -v`); `user=True` targets the user manager.
    """

    def __init__(
        self,
        *,
        default_timeout: float = 5,
        verify_timeout: float = 3,
        dry_run: bool = False,
    ) -> None:
        self.default_timeout = default_timeout
        self.verify_timeout = verify_timeout
        self.dry_run = dry_run

    def _argv(self, args: List[str], *, user: bool, sudo: bool) -> List[str]:
        argv: List[str] = ["sudo"] if sudo else []
        argv.append("systemctl")
        if user:
            argv.append("--user")
        return argv + args

    def call(
        self,
        *args: str,
        user: bool = False,
        sudo: bool = False,
        timeout: Optional[float] = None,
        mutating: bool = True,
    ) -> ServiceResult:
        argv = self._argv(list(args), user=user, sudo=sudo)
        r = run_cmd(
            argv,
            check=False,
            timeout=timeout or self.default_timeout,
            dry_run=self.dry_run and mutating,
        )
        return ServiceResult.from_cmd(r)

    # Mutations.

    def daemon_reload(self, *, user: bool = False, sudo: bool = False) -> ServiceResult:
        return self.call("daemon-reload", user=user, sudo=sudo)

    def enable(self, unit: str, *, user: bool = False, sudo: bool = False) -> ServiceResult:
        return self.call("enable", unit, user=user, sudo=sudo)

    def disable(self, unit: str, *, user: bool = False, sudo: bool = False) -> ServiceResult:
        return self.call("disable", unit, user=user, sudo=sudo)

    def start(self, unit: str, *, user: bool = False, sudo: bool = False) -> ServiceResult:
        return self.call("start", unit, user=user, sudo=sudo)

    def stop(self, unit: str, *, user: bool = False, sudo: bool = False) -> ServiceResult:
        return self.call("stop", unit, user=user, sudo=sudo)

    def reboot(self) -> ServiceResult:
        return self.call("reboot", sudo=True)

    # Queries (run even in dry-run mode).

    def active_state(self, unit: str, *, user: bool = False) -> str:
        """Return active|inactive|failed|not-found (timeouts count as not-found)."""

        r = self.call("is-active", unit, user=user, timeout=self.verify_timeout, mutating=False)
        state = r.output.splitlines()[0].strip() if r.output else ""
        if not r.timed_out and state in {"active", "inactive", "failed"}:
            return state
        return "not-found"

    def is_active(self, unit: str, *, user: bool = False) -> bool:
        return self.active_state(unit, user=user) == "active"

    def is_enabled(self, unit: str, *, user: bool = False) -> bool:
        r = self.call("is-enabled", unit, user=user, timeout=self.verify_timeout, mutating=False)
        return r.ok

    def can_load(self, unit: str, *, user: bool = False, sudo: bool = False) -> bool:
        r = self.call("cat", unit, user=user, sudo=sudo, timeout=self.verify_timeout, mutating=False)
        return r.ok
