from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Tuple

from ..errors import LauncherConfigError
from ..models import AUTO
from ..record_store import valid_display_path

logger = logging.getLogger(__name__)

# Vendor tag -> environment directives shipped commented-out in the launcher.
GPU_ENV_DIRECTIVES: Dict[str, List[Tuple[str, str]]] = {
    "nvidia": [
        ("LIBVA_DRIVER_NAME", "nvidia"),
        ("__GLX_VENDOR_LIBRARY_NAME", "nvidia"),
        ("NVD_BACKEND", "direct"),
    ],
    "amd": [("LIBVA_DRIVER_NAME", "radeonsi")],
    "intel": [("LIBVA_DRIVER_NAME", "iHD")],
}

DRM_OVERRIDE_COMMENT = "# DRM path set by installer"


def enable_directive(lines: List[str], name: str, value: str) -> List[str]:
    """Uncomment `# set -gx NAME VALUE`; exactly-matching lines only."""

    disabled = f"# set -gx {name} {value}"
    enabled = f"set -gx {name} {value}"
    if disabled not in lines:
        raise LauncherConfigError(
            f"GPU setting not found in launcher: {name}",
            remediation=[
                f"Expected pattern: {disabled}",
                "This may indicate a launcher script version mismatch",
            ],
        )
    return [enabled if ln == disabled else ln for ln in lines]


def apply_gpu_env(lines: List[str], gpu_type: str) -> List[str]:
    directives = GPU_ENV_DIRECTIVES.get(gpu_type)
    if not directives:
        logger.info("GPU type %r - leaving configuration for runtime detection", gpu_type)
        return lines
    logger.info("Configuring %s GPU settings", gpu_type)
    for name, value in directives:
        lines = enable_directive(lines, name, value)
    return lines


def apply_display_override(lines: List[str], display_path: str) -> List[str]:
    """Insert an explicit HYPR_DRM_PATH right after the shebang line."""

    if display_path == AUTO:
        return lines
    if valid_display_path(display_path) is None:
        raise LauncherConfigError(
            f"DRM path doesn't match expected format: {display_path}",
            remediation=[
                "Expected format: /run/udev/data/+drm:cardN-OUTPUT-NAME",
                "Example: /run/udev/data/+drm:card0-HDMI-A-1",
            ],
        )
    logger.info("Setting DRM path: %s", display_path)
    insert = [DRM_OVERRIDE_COMMENT, f'set -gx HYPR_DRM_PATH "{display_path}"', ""]
    return lines[:1] + insert + lines[1:]


def configure_launcher(path: Path, *, gpu_type: str, display_path: str) -> None:
    """Apply GPU directives and the display override to a staged launcher copy."""

    text = path.read_text(encoding="utf-8")
    trailing_newline = text.endswith("\n")
    lines = text.splitlines()
    lines = apply_gpu_env(lines, gpu_type)
    lines = apply_display_override(lines, display_path)
    path.write_text("\n".join(lines) + ("\n" if trailing_newline else ""), encoding="utf-8")
