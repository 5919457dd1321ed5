from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

from ..context import InstallContext
from ..detection import check_payloads, detect_system
from ..lib.hwdetect import DRM_ROOT, UDEV_DATA_ROOT
from ..models import SessionMethod
from ..presentation import confirm_detected_state

logger = logging.getLogger(__name__)


class DetectSystemStep:
    """Detect, have the operator confirm every value, then show the summary."""

    step_id = "20_detect_system"

    def __init__(
        self,
        *,
        drm_root: Path = DRM_ROOT,
        udev_root: Path = UDEV_DATA_ROOT,
        environ: Optional[Mapping[str, str]] = None,
        current_user: Optional[str] = None,
    ) -> None:
        self.drm_root = drm_root
        self.udev_root = udev_root
        self.environ = environ
        self.current_user = current_user

    def run(self, ctx: InstallContext) -> bool:
        ctx.console.say()
        ctx.console.info("Detecting system configuration...")
        state = detect_system(
            paths=ctx.paths,
            policy=ctx.policy,
            systemctl=ctx.systemctl,
            drm_root=self.drm_root,
            udev_root=self.udev_root,
            environ=self.environ,
            current_user=self.current_user,
        )
        ctx.detected = confirm_detected_state(ctx.console, state, home=str(ctx.paths.home))
        if ctx.detected.session_method is SessionMethod.MANAGED:
            check_payloads(ctx.paths, managed=True)
        return True
