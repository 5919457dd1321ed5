from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from .lib.env import InstallPaths
from .lib.lifecycle import LIFECYCLE, Lifecycle
from .lib.privilege import Sudo
from .lib.prompt import Console
from .lib.systemd import Systemctl
from .models import DetectedState
from .policy import InstallerPolicy

if TYPE_CHECKING:
    from .staged_testing import GateState

logger = logging.getLogger(__name__)


@dataclass
class InstallContext:
    """Everything a phase needs, passed explicitly from phase to phase."""

    paths: InstallPaths
    policy: InstallerPolicy
    console: Console
    systemctl: Systemctl
    sudo: Sudo
    dry_run: bool = False
    skip_test: bool = False
    lifecycle: Lifecycle = LIFECYCLE
    detected: DetectedState = field(default_factory=DetectedState)
    user_artifacts_installed: bool = False
    record_saved: bool = False
    test_outcome: Optional["GateState"] = None
    deviations: List[str] = field(default_factory=list)

    def preview(self, *messages: str) -> bool:
        """Print `[DRY-RUN]` lines and return True when previewing."""

        if not self.dry_run:
            return False
        for msg in messages:
            self.console.preview(msg)
        return True

    def record_deviation(self, what: str) -> None:
        logger.warning("Deviation: %s", what)
        self.deviations.append(what)


def build_context(
    *,
    paths: InstallPaths,
    policy: InstallerPolicy,
    console: Console,
    dry_run: bool = False,
    skip_test: bool = False,
) -> InstallContext:
    return InstallContext(
        paths=paths,
        policy=policy,
        console=console,
        systemctl=Systemctl(
            default_timeout=policy.systemctl_timeout,
            verify_timeout=policy.systemctl_verify_timeout,
            dry_run=dry_run,
        ),
        sudo=Sudo(auth_timeout=policy.sudo_auth_timeout, op_timeout=policy.systemctl_timeout, dry_run=dry_run),
        dry_run=dry_run,
        skip_test=skip_test,
    )
