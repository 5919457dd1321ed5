"""Changes that need elevated privilege: the console autologin override.

Every entry point is gated by a default-No confirmation followed by a
bounded `sudo -v`. A failure here aborts the privileged phase only; the
user-space artifacts stay installed and the operator gets the manual
commands to finish by hand.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import List, Optional

from .context import InstallContext
from .detection import account_exists, scrub_account_name
from .errors import PrivilegeError, ValidationError
from .lib.atomic import backup_name
from .lib.lifecycle import TEMP_PREFIX, TEMP_SUFFIX

logger = logging.getLogger(__name__)

PLACEHOLDER_USER = "YOUR_USERNAME"
_AUTOLOGIN_RE = re.compile(r'--autologin\s+"?([^"\s]+)"?')


def render_override(username: str) -> str:
    return "\n".join(
        [
            "[Service]",
            "ExecStart=",
            f'ExecStart=-/usr/bin/agetty -o "-p -f -- \\u" --noclear --autologin "{username}" %I $TERM',
            "",
        ]
    )


def override_user(text: str) -> Optional[str]:
    m = _AUTOLOGIN_RE.search(text)
    return m.group(1) if m else None


def override_status(path: Path) -> str:
    """missing | malformed | ok.

    ok means non-empty, carries --autologin for an existing account, and the
    template placeholder was replaced.
    """

    if not path.is_file():
        return "missing"
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return "malformed"
    if not text.strip() or "--autologin" not in text or PLACEHOLDER_USER in text:
        return "malformed"
    user = override_user(text)
    if user is None or not account_exists(user):
        return "malformed"
    return "ok"


def manual_override_steps(ctx: InstallContext) -> List[str]:
    return [
        f"Create {ctx.paths.override_file} with --autologin for your user",
        "sudo systemctl daemon-reload",
    ]


def request_elevation(ctx: InstallContext) -> bool:
    """Explicit opt-in (default No) then a bounded interactive sudo check.

    Returns False when the operator declines; raises PrivilegeError when
    elevation is denied or times out.
    """

    c = ctx.console
    c.banner("SYSTEM-LEVEL CONFIGURATION (requires sudo)")
    c.say("  The following requires administrator privileges:")
    c.say(f"    • Create autologin override for {ctx.paths.autologin_unit}")
    c.say("    • Reload systemd daemon")
    c.say()

    if not c.ask("Proceed with sudo operations?"):
        c.warn("Skipping system-level configuration")
        logger.info("Operator declined privileged phase")
        return False

    if not ctx.sudo.validate():
        raise PrivilegeError(
            f"Failed to get sudo access (timeout {ctx.policy.sudo_auth_timeout:g}s)",
            remediation=manual_override_steps(ctx),
        )
    return True


def _stage_override(ctx: InstallContext, contents: str) -> Path:
    scratch = ctx.paths.runtime_dir
    if scratch is None:
        raise PrivilegeError(
            "XDG_RUNTIME_DIR not set or invalid - required for secure temp file handling",
            remediation=["This is typically set by systemd-logind on login."],
        )
    fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=str(scratch))
    tmp = Path(name)
    ctx.lifecycle.track_temp(tmp)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(contents)
    return tmp


def create_autologin_override(ctx: InstallContext, username: str) -> None:
    """Back up any existing override, then write one for exactly `username`."""

    override = ctx.paths.override_file
    unit = f"{ctx.paths.autologin_unit}.service"
    if ctx.preview(f"Would create: {override}", "Would run: sudo systemctl daemon-reload"):
        return

    remediation = manual_override_steps(ctx)
    with ctx.lifecycle.critical("configuring systemd autologin"):
        if not ctx.sudo.mkdir(ctx.paths.override_dir):
            raise PrivilegeError("Failed to create systemd override directory", remediation=remediation)

        if override.is_file():
            backup = backup_name(override)
            if not ctx.sudo.copy_preserving(override, backup):
                raise PrivilegeError(
                    "Failed to backup existing systemd override - cannot proceed",
                    remediation=[f"Refusing to overwrite {override} without backup"],
                )
            ctx.console.info(f"Backed up existing config to: {backup}")

        try:
            username = scrub_account_name(username)
        except ValidationError as e:
            raise PrivilegeError(str(e), remediation=remediation) from e

        tmp = _stage_override(ctx, render_override(username))
        try:
            if not ctx.sudo.install_file(tmp, override, "644"):
                raise PrivilegeError("Failed to write autologin config", remediation=remediation)
        finally:
            tmp.unlink(missing_ok=True)
            ctx.lifecycle.untrack_temp(tmp)

        if not ctx.systemctl.daemon_reload(sudo=True).ok:
            raise PrivilegeError(
                "Failed to reload systemd daemon (timeout)",
                remediation=["sudo systemctl daemon-reload"],
            )

    if not ctx.systemctl.can_load(unit, sudo=True):
        ctx.console.warn(f"Systemd may have issues parsing {unit} config - check manually")
    ctx.console.success(f"Autologin configured for: {username}")
    logger.info("Autologin override written for %s at %s", username, override)


def remove_autologin_override(ctx: InstallContext) -> bool:
    override = ctx.paths.override_file
    if not override.is_file():
        return False
    if not ctx.console.ask("Remove systemd autologin override? (requires sudo)"):
        return False
    if ctx.preview(f"Would remove: {override}"):
        return True

    if not ctx.sudo.validate():
        ctx.console.warn("Could not obtain sudo - override left in place")
        ctx.console.say(f"  Remove manually: sudo rm -f {override}")
        return False
    with ctx.lifecycle.critical("removing systemd autologin override"):
        if not ctx.sudo.remove(override):
            ctx.console.warn("Could not remove systemd override")
            return False
        if not ctx.systemctl.daemon_reload(sudo=True).ok:
            ctx.console.warn("Systemd reload timed out")
    ctx.console.success("Removed systemd override")
    return True
