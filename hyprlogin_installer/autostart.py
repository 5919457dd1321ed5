"""Guidance for how the screen locker gets started in each session method."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .artifacts import is_locker_unit_installed, remove_locker_unit
from .context import InstallContext
from .lib.editor import find_editor, open_in_editor
from .lib.hyprconfig import AUTOSTART_LINE
from .lib.paths import relative_to_home
from .lib.prompt import MenuOption
from .models import DetectedState, SessionMethod

logger = logging.getLogger(__name__)

REMOVE_UNIT = "remove"
KEEP_UNIT = "keep"
CONTINUE_HYBRID = "continue"


def present_managed_configured(ctx: InstallContext) -> None:
    c = ctx.console
    unit = ctx.policy.locker_unit
    c.banner("[OK] HYPRLOCK SERVICE CONFIGURED", "green")
    c.say("  The hyprlock systemd service has been installed and enabled.")
    c.say("  It will start automatically when your graphical session begins.")
    c.say()
    c.say(f"  {c.paint('Service location:', 'cyan')} {ctx.paths.locker_unit_dest}")
    c.say()
    c.say(f"  To check status:  systemctl --user status {unit}")
    c.say(f"  To disable:       systemctl --user disable {unit}")
    c.say()
    c.pause()


def check_hybrid_configuration(ctx: InstallContext) -> bool:
    """A managed locker unit alongside the direct method starts the locker twice.

    Returns True to go on with the autostart line.
    """

    if not is_locker_unit_installed(ctx):
        return True

    c = ctx.console
    unit = ctx.policy.locker_unit
    c.banner("[!] HYBRID CONFIGURATION DETECTED", "red")
    c.say("  A hyprlock systemd service is already installed (UWSM method).")
    c.say(f"  Adding {AUTOSTART_LINE} would create a HYBRID configuration")
    c.say("  where hyprlock starts TWICE - this will cause problems!")
    c.say()
    c.say("  How would you like to proceed?")
    c.say()
    choice = c.select(
        "Enter choice",
        [
            MenuOption(REMOVE_UNIT, "Remove the service now and continue with exec-once method"),
            MenuOption(KEEP_UNIT, "Skip hyprlock config (keep existing UWSM service)"),
            MenuOption(CONTINUE_HYBRID, "Continue anyway (NOT RECOMMENDED - will cause conflicts)"),
        ],
    )
    logger.info("Hybrid configuration choice: %s", choice)

    if choice == REMOVE_UNIT:
        c.info("Removing hyprlock systemd service...")
        if not ctx.dry_run and not ctx.systemctl.stop(unit, user=True).ok:
            c.info(f"{unit} not running (already stopped)")
        remove_locker_unit(ctx)
        return True
    if choice == KEEP_UNIT:
        c.info("Skipping hyprlock configuration - keeping existing UWSM service")
        c.pause()
        return False
    c.warn("Proceeding with hybrid configuration - you may experience issues")
    ctx.record_deviation("hybrid locker configuration kept")
    return True


def check_existing_autostart(ctx: InstallContext, state: DetectedState) -> bool:
    if not state.existing_autostart_files:
        return True

    c = ctx.console
    home = str(ctx.paths.home)
    c.banner("[!] HYPRLOCK ALREADY CONFIGURED", "yellow")
    c.say("  Found existing hyprlock configuration in:")
    for f in state.existing_autostart_files:
        c.say(f"      • {relative_to_home(f, home=home)}")
    c.say()

    if not c.ask("Add hyprlock to config anyway? (creates duplicate)"):
        c.success("Skipping hyprlock configuration (already present)")
        c.pause()
        return False
    c.warn("Proceeding - you may have duplicate hyprlock entries")
    return True


def _choose_config_file(ctx: InstallContext, state: DetectedState) -> Optional[Path]:
    files = state.compositor_config_files
    if not files:
        return None
    if len(files) == 1:
        return files[0]
    home = str(ctx.paths.home)
    ctx.console.say()
    ctx.console.say("  Which file to edit?")
    options = [MenuOption(str(f), relative_to_home(f, home=home)) for f in files]
    return Path(ctx.console.select("Choose", options))


def present_manual_instructions(ctx: InstallContext, state: DetectedState) -> None:
    c = ctx.console
    home = str(ctx.paths.home)
    c.banner("MANUAL STEP REQUIRED: Add hyprlock to your config")
    c.say(f"  Add this line to the {c.paint('TOP', 'bold')} of your Hyprland execs config:")
    c.say("  (Must be the FIRST exec-once, with NO delay)")
    c.say()
    c.say("      " + c.paint(AUTOSTART_LINE, "green"))
    c.say()

    if state.compositor_config_files:
        c.say("  Your exec config files:")
        for f in state.compositor_config_files:
            c.say(f"      • {relative_to_home(f, home=home)}")
        c.say()
        c.say(f"  Choose one that is {c.paint('NOT', 'bold')} overwritten by dotfile updates")
        c.say("  (usually in custom.d/ or similar)")
    c.say()

    editor = find_editor()
    if editor and state.compositor_config_files and c.ask(f"Open your config in editor ({editor})?"):
        target = _choose_config_file(ctx, state)
        if target is not None and not open_in_editor(editor, target):
            c.warn("Editor exited with error")

    c.say()
    c.pause("Press Enter when you've added the line...")


def present_locker_instructions(ctx: InstallContext, state: DetectedState) -> None:
    if state.session_method is SessionMethod.MANAGED:
        present_managed_configured(ctx)
        return
    if not check_hybrid_configuration(ctx):
        return
    if not check_existing_autostart(ctx, state):
        return
    present_manual_instructions(ctx, state)
