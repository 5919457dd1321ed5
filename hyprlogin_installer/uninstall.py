"""Uninstall orchestrator: the left-inverse of install for user-space state."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from .artifacts import is_locker_unit_installed, remove_locker_unit
from .context import InstallContext
from .critical_gate import offer_reboot
from .errors import OperatorDeclined
from .lib.atomic import remove_if_exists, sweep_backups
from .models import SessionMethod
from .privileged import remove_autologin_override
from .record_store import delete_record, load_record

logger = logging.getLogger(__name__)


def detect_installed_method(ctx: InstallContext) -> SessionMethod:
    record = load_record(ctx.paths.record_file)
    if record is not None and record.session_method is SessionMethod.MANAGED:
        ctx.console.info("Detected UWSM installation")
        return SessionMethod.MANAGED
    if is_locker_unit_installed(ctx):
        ctx.console.info("Detected hyprlock systemd service")
        return SessionMethod.MANAGED
    return SessionMethod.DIRECT


def _remove(ctx: InstallContext, path: Path, description: str) -> bool:
    if not remove_if_exists(path, dry_run=ctx.dry_run):
        return False
    if ctx.dry_run:
        ctx.console.preview(f"Would remove: {path}")
    else:
        ctx.console.success(f"Removed {description}")
    return True


def remove_user_components(ctx: InstallContext, method: SessionMethod) -> List[Path]:
    """Launcher, hook, locker unit, record and every backup they left behind."""

    paths = ctx.paths
    removed: List[Path] = []
    if _remove(ctx, paths.launcher_dest, "Launcher script"):
        removed.append(paths.launcher_dest)
    if _remove(ctx, paths.fish_hook_dest, "Fish hook"):
        removed.append(paths.fish_hook_dest)
    if (method is SessionMethod.MANAGED or is_locker_unit_installed(ctx)) and remove_locker_unit(ctx):
        removed.append(paths.locker_unit_dest)
    if delete_record(paths.record_file, dry_run=ctx.dry_run):
        ctx.console.success("Removed Installation config")
        removed.append(paths.record_file)

    backups = sweep_backups(list(paths.user_artifacts), dry_run=ctx.dry_run)
    if backups:
        if ctx.dry_run:
            for b in backups:
                ctx.console.preview(f"Would remove backup: {b}")
        else:
            ctx.console.success(f"Cleaned up {len(backups)} backup file(s)")
    return removed + backups


def show_manual_steps(ctx: InstallContext, method: SessionMethod) -> None:
    c = ctx.console
    fallback = ctx.policy.fallback_login_manager
    c.say()
    c.say("  " + c.paint("Remaining manual steps:", "yellow"))
    if method is SessionMethod.MANAGED:
        c.say("    1. (UWSM method) No manual hyprlock config changes needed")
    else:
        c.say("    1. Remove 'exec-once = hyprlock' from your execs.conf")
    c.say(f"    2. Re-enable {fallback.upper()}: " + c.paint(f"sudo systemctl enable {fallback}", "cyan"))
    c.say("    3. Reboot")
    c.say()


def restore_fallback(ctx: InstallContext) -> bool:
    fallback = ctx.policy.fallback_login_manager
    if not ctx.console.ask_yes(f"Enable {fallback.upper()} now?"):
        return False
    if ctx.preview(f"Would run: sudo systemctl enable {fallback}"):
        return True
    if not ctx.sudo.validate() or not ctx.systemctl.enable(fallback, sudo=True).ok:
        ctx.console.error(f"Failed to enable {fallback.upper()} (timeout)")
        ctx.console.say(f"  Run manually: sudo systemctl enable {fallback}")
        return False
    ctx.console.success(f"{fallback.upper()} re-enabled")
    logger.info("Fallback login manager %s re-enabled", fallback)
    return True


def run_uninstall(ctx: InstallContext) -> None:
    c = ctx.console
    c.banner("UNINSTALL hypr-login")
    method = detect_installed_method(ctx)

    if not c.ask("Remove all hypr-login components?"):
        raise OperatorDeclined("Uninstall cancelled")

    c.say()
    removed = remove_user_components(ctx, method)
    logger.info("Uninstall removed %d path(s)", len(removed))
    remove_autologin_override(ctx)

    show_manual_steps(ctx, method)
    restore_fallback(ctx)
    c.say()
    c.success("Uninstall complete")
    offer_reboot(ctx)
