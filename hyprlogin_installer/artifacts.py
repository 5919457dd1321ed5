from __future__ import annotations

import functools
import logging

from .context import InstallContext
from .errors import MutationError
from .lib.atomic import install_file_atomically, remove_if_exists
from .lib.launcher import configure_launcher
from .models import AUTO, DetectedState, SessionMethod

logger = logging.getLogger(__name__)

LAUNCHER_MODE = 0o755
HOOK_MODE = 0o644
UNIT_MODE = 0o644


def is_launcher_installed(ctx: InstallContext) -> bool:
    return ctx.paths.launcher_dest.is_file()


def is_fish_hook_installed(ctx: InstallContext) -> bool:
    return ctx.paths.fish_hook_dest.is_file()


def is_locker_unit_installed(ctx: InstallContext) -> bool:
    return ctx.paths.locker_unit_dest.is_file()


def install_launcher(ctx: InstallContext, state: DetectedState) -> None:
    if ctx.preview(f"Would create: {ctx.paths.launcher_dest}"):
        return
    configure = functools.partial(
        configure_launcher,
        gpu_type=state.gpu_type or AUTO,
        display_path=state.display_path or AUTO,
    )
    with ctx.lifecycle.critical("installing launcher script"):
        install_file_atomically(ctx.paths.launcher_src, ctx.paths.launcher_dest, LAUNCHER_MODE, configure=configure)
    ctx.console.success(f"Launcher script installed: {ctx.paths.launcher_dest}")


def install_fish_hook(ctx: InstallContext) -> None:
    if ctx.preview(f"Would create: {ctx.paths.fish_hook_dest}"):
        return
    with ctx.lifecycle.critical("installing fish hook"):
        install_file_atomically(ctx.paths.fish_hook_src, ctx.paths.fish_hook_dest, HOOK_MODE)
    ctx.console.success(f"Fish hook installed: {ctx.paths.fish_hook_dest}")


def install_locker_unit(ctx: InstallContext) -> None:
    """Install, reload, verify and enable the locker's systemd user unit."""

    unit = ctx.policy.locker_unit
    dest = ctx.paths.locker_unit_dest
    if ctx.preview(
        f"Would create: {dest}",
        "Would run: systemctl --user daemon-reload",
        f"Would run: systemctl --user enable {unit}",
    ):
        return

    with ctx.lifecycle.critical("installing hyprlock service"):
        install_file_atomically(ctx.paths.locker_unit_src, dest, UNIT_MODE)

        if not ctx.systemctl.daemon_reload(user=True).ok:
            raise MutationError(
                "Failed to reload user systemd (timeout)",
                remediation=["systemctl --user daemon-reload"],
            )
        if not ctx.systemctl.can_load(unit, user=True):
            raise MutationError(f"Systemd cannot load {unit} - check file format: {dest}")
        if not ctx.systemctl.enable(unit, user=True).ok:
            raise MutationError(
                f"Failed to enable {unit} (timeout)",
                remediation=[f"systemctl --user enable {unit}"],
            )
    ctx.console.success(f"Hyprlock service installed and enabled: {dest}")


def remove_locker_unit(ctx: InstallContext) -> bool:
    """Disable before delete; a no-op when the unit file is absent."""

    unit = ctx.policy.locker_unit
    dest = ctx.paths.locker_unit_dest
    if not dest.is_file():
        return False
    if ctx.preview(f"Would disable and remove: {dest}"):
        return True

    if not ctx.systemctl.disable(unit, user=True).ok:
        ctx.console.warn(f"Could not disable {unit} (may not be enabled, or timeout)")
    try:
        remove_if_exists(dest)
    except MutationError as e:
        ctx.console.warn(f"Could not remove service file: {e}")
        return False
    if not ctx.systemctl.daemon_reload(user=True).ok:
        ctx.console.warn("Failed to reload user systemd")
    ctx.console.success("Removed hyprlock systemd service")
    return True


def install_user_components(ctx: InstallContext, state: DetectedState) -> None:
    """Launcher, login-shell hook and (managed method) the locker unit.

    Any failure aborts with the destination of the failing artifact
    untouched; nothing later in the install runs.
    """

    ctx.console.say()
    ctx.console.info("Installing user-level components...")
    install_launcher(ctx, state)
    install_fish_hook(ctx)
    if state.session_method is SessionMethod.MANAGED:
        install_locker_unit(ctx)
    ctx.user_artifacts_installed = True
    logger.info("User-level components installed")
