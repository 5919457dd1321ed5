from __future__ import annotations

import logging

from ..artifacts import is_fish_hook_installed, is_launcher_installed
from ..context import InstallContext
from ..detection import check_dependencies, check_payloads
from ..errors import OperatorDeclined
from ..privileged import override_status

logger = logging.getLogger(__name__)


def is_fully_installed(ctx: InstallContext) -> bool:
    return (
        is_launcher_installed(ctx)
        and is_fish_hook_installed(ctx)
        and ctx.paths.record_file.is_file()
        and override_status(ctx.paths.override_file) == "ok"
    )


def show_welcome(ctx: InstallContext) -> None:
    c = ctx.console
    fallback = ctx.policy.fallback_login_manager.upper()
    c.banner("hypr-login Installer")
    c.say("  Boot directly into Hyprland with hyprlock as login screen")
    c.say()
    c.say("  " + c.paint("⚠️  WARNING: This modifies your boot process!", "yellow"))
    c.lines(
        [
            "",
            "  What this installer does:",
            f"    • Configures TTY autologin (replaces {fallback})",
            "    • Installs Fish shell hooks to auto-start Hyprland",
            "    • Guides you to add hyprlock to your config",
            "",
            "  Installation phases:",
            "    1. Pre-flight checks (dependencies, source files)",
            "    2. System detection (GPU, display, session method)",
            "    3. User-level install (scripts, fish hook)",
            "    4. System-level install (systemd autologin)",
            "    5. Staged testing (verify on a second console)",
            f"    6. {fallback} cutover (disable display manager)",
            "",
        ]
    )
    if ctx.dry_run:
        c.say("  " + c.paint("[DRY-RUN MODE]", "cyan") + " No files will be modified")
        c.say()


class PreflightStep:
    step_id = "10_preflight"

    def run(self, ctx: InstallContext) -> bool:
        show_welcome(ctx)
        if not ctx.console.ask("Continue with installation?"):
            raise OperatorDeclined("Installation cancelled")

        ctx.console.say()
        ctx.console.info("Running pre-flight checks...")
        check_dependencies()
        check_payloads(ctx.paths)
        ctx.console.success("Pre-flight checks passed")

        if is_fully_installed(ctx):
            ctx.console.warn("hypr-login appears to be already installed")
            if ctx.console.ask("Run update instead?"):
                from ..update import run_update

                logger.info("Existing installation found; switching to update")
                run_update(ctx)
                return False
        return True
