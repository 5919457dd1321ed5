from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from ..models import DisplayOutput, GpuClassification, GpuDevice, VendorChoice

logger = logging.getLogger(__name__)

DRM_ROOT = Path("/sys/class/drm")
UDEV_DATA_ROOT = Path("/run/udev/data")

# Kernel driver name -> (vendor tag, label). Add new vendors here.
GPU_DRIVER_MAP: Dict[str, Tuple[str, str]] = {
    "nvidia": ("nvidia", "NVIDIA"),
    "amdgpu": ("amd", "AMD"),
    "i915": ("intel", "Intel"),
}

_CARD_RE = re.compile(r"^card([0-9]+)$")


def _card_index(name: str) -> int:
    m = _CARD_RE.match(name)
    return int(m.group(1)) if m else -1


def _output_order(path: Path) -> Tuple[int, str]:
    # "+drm:card10-DP-1" -> (10, "DP-1")
    card, _, connector = path.name[len("+drm:"):].partition("-")
    return _card_index(card), connector


def enumerate_gpus(drm_root: Path = DRM_ROOT) -> List[GpuDevice]:
    """Base DRM cards (card0, card1, not card0-DP-1) in kernel index order."""

    if not drm_root.is_dir():
        return []

    cards = sorted(
        (p for p in drm_root.iterdir() if _CARD_RE.match(p.name)),
        key=lambda p: _card_index(p.name),
    )

    devices: List[GpuDevice] = []
    for card in cards:
        dev = card / "device"
        if not dev.is_dir():
            continue
        # driver: /sys/class/drm/card0/device/driver -> .../drivers/amdgpu
        driver = "unknown"
        try:
            driver_link = dev / "driver"
            if driver_link.exists():
                driver = driver_link.resolve().name
        except OSError:
            pass
        devices.append(GpuDevice(card=card.name, driver=driver))

    logger.info("GPUs: %s", ", ".join(str(d) for d in devices) or "none")
    return devices


def classify_gpus(devices: Iterable[GpuDevice]) -> GpuClassification:
    """Map drivers to vendors, preserving first-seen order.

    Two devices of one vendor contribute a single selectable entry; unknown
    drivers are reported separately and never become selectable.
    """

    vendors: List[VendorChoice] = []
    unknown: List[str] = []
    counts: Dict[str, int] = {}

    for d in devices:
        known = GPU_DRIVER_MAP.get(d.driver)
        if known is None:
            if d.driver not in unknown:
                unknown.append(d.driver)
            continue
        tag, label = known
        counts[tag] = counts.get(tag, 0) + 1
        if counts[tag] == 1:
            vendors.append(VendorChoice(tag=tag, label=label))

    return GpuClassification(vendors=tuple(vendors), unknown_drivers=tuple(unknown), vendor_counts=counts)


def detect_display_outputs(udev_root: Path = UDEV_DATA_ROOT) -> List[DisplayOutput]:
    """udev records of connected DRM outputs, e.g. +drm:card0-HDMI-A-1."""

    if not udev_root.is_dir():
        return []
    outputs = sorted(udev_root.glob("+drm:card*-*"), key=_output_order)
    return [DisplayOutput(path=str(p)) for p in outputs]


def vendor_label(tag: str) -> str:
    for known_tag, label in GPU_DRIVER_MAP.values():
        if known_tag == tag:
            return label
    return tag
