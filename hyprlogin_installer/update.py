"""Update orchestrator: refresh artifacts, keep choices, verify the override."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

from .artifacts import (
    install_fish_hook,
    install_launcher,
    install_locker_unit,
    is_fish_hook_installed,
    is_launcher_installed,
    is_locker_unit_installed,
)
from .context import InstallContext
from .detection import check_payloads, detect_system
from .lib.hwdetect import DRM_ROOT, UDEV_DATA_ROOT
from .models import DetectedState, InstallRecord, SessionMethod
from .presentation import present_display_options, present_gpu_options, present_username
from .privileged import create_autologin_override, override_status, request_elevation
from .record_store import load_record

logger = logging.getLogger(__name__)


def previous_method(ctx: InstallContext, record: Optional[InstallRecord]) -> SessionMethod:
    if record is not None and record.session_method is not None:
        return record.session_method
    if is_locker_unit_installed(ctx):
        return SessionMethod.MANAGED
    return SessionMethod.DIRECT


def update_locker_unit(ctx: InstallContext, method: SessionMethod) -> bool:
    installed = is_locker_unit_installed(ctx)
    if method is not SessionMethod.MANAGED and not installed:
        return False
    if installed:
        ctx.console.info("Updating hyprlock systemd service...")
    else:
        ctx.console.info("Installing hyprlock systemd service (UWSM method)...")
    install_locker_unit(ctx)
    return True


def verify_override(ctx: InstallContext, state: DetectedState) -> None:
    """Never rewrite a healthy override; offer to recreate a broken one."""

    status = override_status(ctx.paths.override_file)
    if status == "ok":
        ctx.console.success("Systemd configuration intact")
        return

    ctx.console.warn(f"Systemd autologin override {status}")
    logger.warning("Autologin override %s: %s", status, ctx.paths.override_file)
    if not ctx.console.ask_yes("Reconfigure systemd autologin?"):
        return
    state = present_username(ctx.console, state)
    ctx.detected = state
    if request_elevation(ctx):
        create_autologin_override(ctx, state.identity)


def run_update(
    ctx: InstallContext,
    *,
    drm_root: Path = DRM_ROOT,
    udev_root: Path = UDEV_DATA_ROOT,
    environ: Optional[Mapping[str, str]] = None,
    current_user: Optional[str] = None,
) -> None:
    from .install import build_steps, persist_record, run_install

    c = ctx.console
    c.banner("UPDATE hypr-login")

    if not is_launcher_installed(ctx) and not is_fish_hook_installed(ctx):
        c.warn("hypr-login not installed. Running full installation...")
        run_install(
            ctx,
            build_steps(drm_root=drm_root, udev_root=udev_root, environ=environ, current_user=current_user),
        )
        return

    record = load_record(ctx.paths.record_file)
    method = previous_method(ctx, record)
    if record is not None:
        c.info(f"Loaded previous configuration (session method: {method.value})")
    else:
        c.info("No saved configuration found")

    check_payloads(ctx.paths, managed=method is SessionMethod.MANAGED or is_locker_unit_installed(ctx))

    state = detect_system(
        paths=ctx.paths,
        policy=ctx.policy,
        systemctl=ctx.systemctl,
        drm_root=drm_root,
        udev_root=udev_root,
        environ=environ,
        current_user=current_user,
    )
    state = state.confirmed(session_method=method)
    state = present_gpu_options(c, state, preferred=record.gpu_type if record else None)
    state = present_display_options(c, state, preferred=record.display_path if record else None)
    ctx.detected = state

    try:
        c.say()
        install_launcher(ctx, state)
        install_fish_hook(ctx)
        ctx.user_artifacts_installed = True
        update_locker_unit(ctx, method)
        verify_override(ctx, state)
    finally:
        persist_record(ctx)

    c.say()
    c.success("Update complete")
    c.info("Restart your shell or reboot to apply changes")
