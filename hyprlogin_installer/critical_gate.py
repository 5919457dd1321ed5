"""The one irreversible step: disabling the fallback login manager."""

from __future__ import annotations

import logging
from typing import List

from .context import InstallContext
from .errors import OperatorDeclined, PrivilegeError, ValidationError
from .staged_testing import GateState

logger = logging.getLogger(__name__)

CONFIRMATION_WORD = "yes"
CUTOVER_PRECONDITIONS = (GateState.PASSED, GateState.SKIPPED)


def recovery_commands(fallback: str) -> List[str]:
    return [
        f"sudo systemctl enable {fallback} && sudo reboot",
        f"arch-chroot /mnt systemctl enable {fallback}",
    ]


def confirm_cutover(ctx: InstallContext, gate_state: GateState) -> None:
    """Require a passed (or acknowledged-skipped) test and the typed word.

    Anything other than the exact confirmation word, including a blank line
    or end of input, raises OperatorDeclined with the fallback untouched.
    """

    if gate_state not in CUTOVER_PRECONDITIONS:
        raise ValidationError(f"Cutover requires a passed staged test (state: {gate_state.value})")

    fallback = ctx.policy.fallback_login_manager
    upper = fallback.upper()
    c = ctx.console
    c.banner(f"⚠️  CRITICAL STEP: DISABLE {upper}", "red")
    c.say(f"  You are about to disable the {upper} display manager.")
    c.say()
    c.say("  This means:")
    c.say("    • No graphical login screen on boot")
    c.say("    • Boot goes directly: TTY → Hyprland → hyprlock")
    c.say("    • If something breaks, you need TTY or Live USB to recover")
    c.say()
    rollback, live_usb = recovery_commands(fallback)
    c.say("  " + c.paint("Recovery commands (memorize these!):", "yellow"))
    c.say("    From tty3:   " + c.paint(rollback, "cyan"))
    c.say("    From USB:    " + c.paint(live_usb, "cyan"))
    c.say()

    if not c.ask_critical(f"Disable {upper} now?", CONFIRMATION_WORD):
        logger.info("Cutover declined; %s left enabled", fallback)
        c.info(f"{upper} cutover cancelled")
        c.say()
        c.say("  User-level components are installed.")
        c.say(f"  Re-run installer when ready to disable {upper}.")
        raise OperatorDeclined(f"{upper} cutover cancelled")


def disable_fallback(ctx: InstallContext) -> bool:
    """Disable the fallback unit if it is enabled; False if it already was not."""

    fallback = ctx.policy.fallback_login_manager
    if ctx.preview(f"Would run: sudo systemctl disable {fallback}"):
        return True

    if not ctx.systemctl.is_enabled(fallback):
        ctx.console.info(f"{fallback.upper()} was already disabled")
        return False

    with ctx.lifecycle.critical(f"disabling {fallback}"):
        if not ctx.systemctl.disable(fallback, sudo=True).ok:
            raise PrivilegeError(
                f"Failed to disable {fallback.upper()} (timeout)",
                remediation=[f"sudo systemctl disable {fallback}"],
            )
    ctx.console.success(f"{fallback.upper()} disabled")
    logger.info("Fallback login manager %s disabled", fallback)
    return True


def offer_reboot(ctx: InstallContext) -> bool:
    c = ctx.console
    if not c.ask("Reboot now?"):
        c.info("Remember to reboot to apply changes")
        return False
    if ctx.preview("Would run: sudo systemctl reboot"):
        return True
    if not ctx.systemctl.reboot().ok:
        c.error("Reboot command failed")
        c.say("  Run manually: sudo systemctl reboot")
        return False
    return True


def present_final_instructions(ctx: InstallContext) -> None:
    c = ctx.console
    fallback = ctx.policy.fallback_login_manager
    rollback, live_usb = recovery_commands(fallback)
    c.banner("✓ INSTALLATION COMPLETE", "green")
    c.lines(
        [
            "  On next reboot:",
            "    1. TTY autologin (no password prompt)",
            "    2. Hyprland starts automatically",
            "    3. hyprlock appears as login screen",
            "    4. Enter password to unlock → Desktop",
            "",
            "  " + c.paint("Recovery commands:", "yellow"),
            "    Quick rollback: " + c.paint(rollback, "cyan"),
            "    From Live USB:  " + c.paint(live_usb, "cyan"),
            "",
            "  " + c.paint("Files installed:", "yellow"),
        ]
    )
    installed = [ctx.paths.launcher_dest, ctx.paths.fish_hook_dest]
    if ctx.paths.locker_unit_dest.is_file():
        installed.append(ctx.paths.locker_unit_dest)
    installed.append(ctx.paths.override_file)
    for p in installed:
        c.say(f"    • {p}")
    if ctx.deviations:
        c.say()
        c.warn("This run deviated from the standard procedure:")
        for d in ctx.deviations:
            c.say(f"    • {d}")
    c.say()


def run_cutover(ctx: InstallContext, gate_state: GateState) -> None:
    confirm_cutover(ctx, gate_state)
    disable_fallback(ctx)
    present_final_instructions(ctx)
    offer_reboot(ctx)
