"""Show detected values, collect overrides, and confirm before mutation.

One function per detected field. Each takes the current DetectedState and
returns a confirmed copy; nothing here touches the filesystem or services.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .detection import account_exists
from .errors import OperatorDeclined, ValidationError
from .lib.hwdetect import GPU_DRIVER_MAP, vendor_label
from .lib.paths import relative_to_home
from .lib.prompt import THIN_RULE, Console, MenuOption
from .models import AUTO, DetectedState, SessionMethod

logger = logging.getLogger(__name__)


def present_username(console: Console, state: DetectedState) -> DetectedState:
    console.say()
    console.info(f"Username: {state.identity}")

    identity = state.identity
    if not console.ask_yes("Use this username for autologin?"):
        while True:
            identity = console.read("Enter username: ")
            if not identity:
                console.warn("Username cannot be empty")
                continue
            if not account_exists(identity):
                console.warn(f"User '{identity}' does not exist")
                continue
            break

    console.success(f"Username confirmed: {identity}")
    return state.confirmed(identity=identity)


def show_detected_gpus(console: Console, state: DetectedState) -> None:
    classification = state.classification
    if classification is None:
        return
    for gpu in state.gpus:
        known = GPU_DRIVER_MAP.get(gpu.driver)
        if known:
            console.say(f"    • {gpu.card}: {known[1]} ({gpu.driver} driver)")
        else:
            console.say(f"    • {gpu.card}: {gpu.driver} (unknown driver)")

    if classification.unknown_drivers:
        console.say()
        console.warn(f"Unrecognized GPU driver(s): {' '.join(classification.unknown_drivers)}")
        console.say(f"      Known drivers: {' '.join(GPU_DRIVER_MAP)}")
        console.say("      GPU env vars will use auto-detection for unknown drivers")
        logger.warning("Unrecognized GPU drivers: %s", classification.unknown_drivers)

    for tag, count in classification.duplicate_vendors.items():
        console.say()
        console.info(f"Multiple {vendor_label(tag)} GPUs detected ({count} cards)")
        console.say("      Pay attention to Display Output selection to target the correct card")


def present_gpu_options(
    console: Console,
    state: DetectedState,
    *,
    preferred: Optional[str] = None,
) -> DetectedState:
    """Confirm the GPU vendor tag.

    `preferred` (e.g. from a prior record) becomes the blank-input default
    when it is still among the detected vendors.
    """

    console.say()
    console.info("GPU Detection:")

    classification = state.classification
    if not state.gpus or classification is None:
        console.warn("No GPUs detected - will use auto-detection at boot")
        return state.confirmed(gpu_type=AUTO)

    show_detected_gpus(console, state)
    console.say()

    if not classification.vendors:
        gpu_type = AUTO
    elif classification.selection_required:
        console.say("  Multiple GPU types detected. Which is your primary GPU?")
        console.say()
        options = [MenuOption(v.tag, v.label) for v in classification.vendors]
        default = preferred if preferred in classification.tags else None
        gpu_type = console.select("Choose", options, default=default)
    else:
        gpu_type = classification.vendors[0].tag

    console.success(f"GPU type: {gpu_type}")
    return state.confirmed(gpu_type=gpu_type)


def present_display_options(
    console: Console,
    state: DetectedState,
    *,
    preferred: Optional[str] = None,
) -> DetectedState:
    """Confirm the display output override.

    With several cards of one vendor the choice is never made implicitly,
    even for a single output.
    """

    console.say()
    outputs = state.display_outputs
    required = state.display_selection_required

    if not outputs:
        console.info("No display outputs detected yet (normal before first boot)")
        return state.confirmed(display_path=AUTO)

    if len(outputs) == 1 and not required:
        console.info(f"Display output: {outputs[0].path}")
        return state.confirmed(display_path=outputs[0].path)

    console.say("  Select the primary display output:" if required else "  Multiple display outputs detected:")
    console.say()
    options = [MenuOption(o.path, o.short_name) for o in outputs]
    options.append(MenuOption(AUTO, "Auto-detect at boot (recommended)"))
    known = {o.key for o in options}
    default: Optional[str] = None
    if not required:
        default = preferred if preferred in known else AUTO
    display_path = console.select("Choose primary display", options, default=default)

    if display_path == AUTO:
        console.info("Using auto-detection at boot")
    console.success(f"DRM path: {display_path}")
    return state.confirmed(display_path=display_path)


def present_config_info(console: Console, state: DetectedState, *, home: str) -> None:
    console.say()
    console.info(f"Hyprland config: {state.compositor_config_dir}")

    if not state.compositor_config_files:
        console.warn("No execs.conf files found")
    else:
        console.say("  Detected exec configs:")
        for f in state.compositor_config_files:
            console.say(f"    • {relative_to_home(f, home=home)}")

    if state.locker_running:
        console.info("hyprlock is currently running")

    if state.existing_autostart_files:
        console.say()
        console.warn("hyprlock already configured in:")
        for f in state.existing_autostart_files:
            console.say(f"    • {relative_to_home(f, home=home)}")


def _auto_session_method(console: Console, state: DetectedState) -> Optional[SessionMethod]:
    console.info("Detecting session method...")
    probe = state.session_probe
    console.say()

    if probe == "active":
        console.say(console.paint("  Detected: UWSM is active", "green"))
        console.say("  Hyprland is running as a systemd user service.")
        console.say()
        if console.ask_yes("Use UWSM method? (hyprlock as systemd service)"):
            return SessionMethod.MANAGED
        return None

    if probe in {"inactive", "not-found"}:
        if probe == "inactive":
            console.say(console.paint("  Detected: UWSM service exists but is inactive", "cyan"))
        else:
            console.say(console.paint("  Detected: UWSM not installed or not configured", "cyan"))
        console.say("  Hyprland appears to start from your shell/TTY.")
        console.say()
        if console.ask_yes("Use exec-once method? (hyprlock in Hyprland config)"):
            return SessionMethod.DIRECT
        return None

    console.say(console.paint("  Detected: UWSM service is in failed state", "yellow"))
    console.say("  Cannot reliably auto-detect. Please choose manually.")
    console.say()
    return None


def select_session_method_manual(console: Console) -> SessionMethod:
    console.say()
    console.say("  " + THIN_RULE)
    console.say("  " + console.paint("Manual Selection", "bold"))
    console.say("  " + THIN_RULE)
    console.say()
    console.say(f"  {console.paint('UWSM', 'cyan')}: Hyprland runs via systemd (uwsm start hyprland)")
    console.say(f"  {console.paint('exec-once', 'cyan')}: Hyprland starts from TTY/shell config")
    console.say()
    options = [MenuOption(m.value, m.label) for m in SessionMethod]
    return SessionMethod(console.select("Choose", options))


def present_session_method(console: Console, state: DetectedState) -> DetectedState:
    """The suggested method is only ever applied after the operator accepts it."""

    console.banner("SESSION METHOD DETECTION")
    method = _auto_session_method(console, state)
    if method is None:
        method = select_session_method_manual(console)
    console.success(f"Session method: {method.value}")
    return state.confirmed(session_method=method)


def summary_lines(state: DetectedState) -> List[str]:
    method = state.session_method.value if state.session_method else "(unset)"
    return [
        f"  Username:       {state.identity}",
        f"  GPU type:       {state.gpu_type}",
        f"  DRM path:       {state.display_path}",
        f"  Config dir:     {state.compositor_config_dir}",
        f"  Session method: {method}",
    ]


def present_summary(console: Console, state: DetectedState) -> DetectedState:
    """Last look at every confirmed field; declining leaves the system untouched."""

    if state.session_method is None or not state.identity or state.gpu_type is None or state.display_path is None:
        raise ValidationError("Detected state incomplete after confirmation - this is a bug")

    console.banner("SYSTEM DETECTION SUMMARY")
    console.lines(summary_lines(state))
    console.say()

    if not console.ask_yes("Proceed with these settings?"):
        raise OperatorDeclined("Installation cancelled")

    logger.info("Confirmed settings: %s", "; ".join(line.strip() for line in summary_lines(state)))
    return state


def confirm_detected_state(console: Console, state: DetectedState, *, home: str) -> DetectedState:
    state = present_username(console, state)
    state = present_gpu_options(console, state)
    state = present_display_options(console, state)
    present_config_info(console, state, home=home)
    state = present_session_method(console, state)
    return present_summary(console, state)
