"""Read-only inspection of the live system.

Nothing here writes persistent state; every function returns data that the
presentation layer shows to the operator for confirmation.
"""

from __future__ import annotations

import getpass
import logging
import os
import pwd
import shutil
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

from .errors import EnvironmentCheckError, ValidationError
from .lib.command import run_cmd
from .lib.env import InstallPaths
from .lib.hwdetect import DRM_ROOT, UDEV_DATA_ROOT, classify_gpus, detect_display_outputs, enumerate_gpus
from .lib.hyprconfig import files_with_locker_autostart, find_exec_configs
from .lib.paths import normalize_path
from .lib.systemd import Systemctl
from .models import DetectedState, SessionMethod
from .policy import InstallerPolicy
from .record_store import load_record

logger = logging.getLogger(__name__)

REQUIRED_PROGRAMS = ("fish", "Hyprland", "hyprlock")
SERVICE_PROGRAMS = ("systemctl",)


def missing_programs(programs: Sequence[str] = REQUIRED_PROGRAMS + SERVICE_PROGRAMS) -> List[str]:
    return [p for p in programs if shutil.which(p) is None]


def check_dependencies() -> None:
    missing = missing_programs()
    if missing:
        raise EnvironmentCheckError(
            f"Missing dependencies: {' '.join(missing)}",
            remediation=[f"Install with: sudo pacman -S {' '.join(m for m in missing if m != 'systemctl')}"],
        )


def check_payload(path: Path, description: str) -> None:
    if not path.is_file():
        raise EnvironmentCheckError(
            f"{description} not found: {path}",
            remediation=["Run from the hypr-login directory or pass --payload-dir"],
        )
    if path.stat().st_size == 0:
        raise EnvironmentCheckError(f"{description} is empty: {path}")
    if not os.access(path, os.R_OK):
        raise EnvironmentCheckError(f"{description} not readable: {path}")


def check_payloads(paths: InstallPaths, *, managed: bool = False) -> None:
    check_payload(paths.launcher_src, "Launcher script")
    check_payload(paths.fish_hook_src, "Fish hook script")
    if managed:
        check_payload(paths.locker_unit_src, "Hyprlock service unit")


def account_exists(name: str) -> bool:
    if not name:
        return False
    try:
        pwd.getpwnam(name)
    except KeyError:
        return False
    return True


def detect_identity(environ: Optional[Mapping[str, str]] = None, *, current_user: Optional[str] = None) -> Tuple[str, bool]:
    """Return (account, via_sudo).

    Running as real root is refused; under sudo the invoking account wins.
    """

    env = os.environ if environ is None else environ
    who = current_user if current_user is not None else getpass.getuser()
    sudo_user = env.get("SUDO_USER") or ""

    if who == "root" and not sudo_user:
        raise EnvironmentCheckError(
            "This installer should not be run as root",
            remediation=["Run as your normal user - it will request sudo when needed"],
        )
    if sudo_user:
        return sudo_user, True
    return who, False


def scrub_account_name(name: str) -> str:
    """Re-validate an account name right before it is embedded in a unit file."""

    if any(ord(c) < 0x20 or ord(c) == 0x7F for c in name):
        raise ValidationError("Username contains invalid control characters")
    if not account_exists(name):
        raise ValidationError(f"Username no longer valid: {name}")
    return name


def probe_session_method(systemctl: Systemctl, unit: str) -> Tuple[str, Optional[SessionMethod]]:
    """Map the managed unit's state to a suggestion.

    active -> managed; inactive/not-found -> direct; failed -> no suggestion,
    the operator has to choose.
    """

    state = systemctl.active_state(unit, user=True)
    if state == "active":
        return state, SessionMethod.MANAGED
    if state in {"inactive", "not-found"}:
        return state, SessionMethod.DIRECT
    return state, None


def locker_running() -> bool:
    r = run_cmd(["pgrep", "-x", "hyprlock"], check=False, timeout=3)
    return r.ok


def detect_system(
    *,
    paths: InstallPaths,
    policy: InstallerPolicy,
    systemctl: Systemctl,
    drm_root: Path = DRM_ROOT,
    udev_root: Path = UDEV_DATA_ROOT,
    environ: Optional[Mapping[str, str]] = None,
    current_user: Optional[str] = None,
) -> DetectedState:
    identity, via_sudo = detect_identity(environ, current_user=current_user)
    if via_sudo:
        logger.warning("Running with sudo detected - using original user: %s", identity)

    gpus = enumerate_gpus(drm_root)
    config_dir = Path(normalize_path(paths.compositor_config_dir, home=str(paths.home)))
    config_files = find_exec_configs(config_dir)
    probe, suggestion = probe_session_method(systemctl, policy.managed_session_unit)

    state = DetectedState(
        identity=identity,
        gpus=gpus,
        classification=classify_gpus(gpus),
        display_outputs=detect_display_outputs(udev_root),
        compositor_config_dir=config_dir,
        compositor_config_files=config_files,
        existing_autostart_files=files_with_locker_autostart(config_files),
        locker_running=locker_running(),
        session_probe=probe,
        suggested_method=suggestion,
        prior_record=load_record(paths.record_file),
    )
    logger.info(
        "Detected: user=%s gpus=%s outputs=%d exec_configs=%d session_probe=%s",
        state.identity,
        [str(g) for g in state.gpus],
        len(state.display_outputs),
        len(state.compositor_config_files),
        state.session_probe,
    )
    return state
