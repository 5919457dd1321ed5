from __future__ import annotations

import logging

from ..context import InstallContext
from ..privileged import create_autologin_override, request_elevation

logger = logging.getLogger(__name__)


def show_manual_completion(ctx: InstallContext) -> None:
    c = ctx.console
    tty = ctx.policy.secondary_console.rsplit("@", 1)[-1]
    c.say()
    c.warn("System-level installation skipped")
    c.lines(
        [
            "",
            "  User-level components are installed.",
            "  To complete installation manually:",
            f"    1. Create {ctx.paths.override_file}",
            "    2. Run: sudo systemctl daemon-reload",
            f"    3. Test on {tty}",
            f"    4. Disable {ctx.policy.fallback_login_manager.upper()}: "
            f"sudo systemctl disable {ctx.policy.fallback_login_manager}",
            "",
        ]
    )


class ConfigureAutologinStep:
    step_id = "40_configure_autologin"

    def run(self, ctx: InstallContext) -> bool:
        if not request_elevation(ctx):
            show_manual_completion(ctx)
            return False
        create_autologin_override(ctx, ctx.detected.identity)
        return True
