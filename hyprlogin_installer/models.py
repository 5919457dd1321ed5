from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple


class SessionMethod(str, enum.Enum):
    """How the compositor is started.

    DIRECT: from the console login shell hook; the locker is started by
    an exec-once line in the compositor config.
    MANAGED: by a session-manager (uwsm) unit; the locker runs as a
    systemd user service.
    """

    DIRECT = "direct"
    MANAGED = "managed"

    @property
    def label(self) -> str:
        if self is SessionMethod.DIRECT:
            return "Direct/TTY autologin (exec-once method)"
        return "UWSM managed session (systemd service method)"


AUTO = "auto"


@dataclass(frozen=True)
class GpuDevice:
    card: str
    driver: str

    @classmethod
    def parse(cls, pair: str) -> "GpuDevice":
        card, _, driver = pair.partition(":")
        return cls(card=card, driver=driver or "unknown")

    def __str__(self) -> str:
        return f"{self.card}:{self.driver}"


@dataclass(frozen=True)
class VendorChoice:
    """One selectable GPU vendor, keyed by its persisted tag."""

    tag: str
    label: str


@dataclass(frozen=True)
class GpuClassification:
    vendors: Tuple[VendorChoice, ...]
    unknown_drivers: Tuple[str, ...]
    vendor_counts: Dict[str, int]

    @property
    def tags(self) -> List[str]:
        return [v.tag for v in self.vendors]

    @property
    def selection_required(self) -> bool:
        return len(self.vendors) > 1

    @property
    def duplicate_vendors(self) -> Dict[str, int]:
        return {tag: n for tag, n in self.vendor_counts.items() if n > 1}


@dataclass(frozen=True)
class DisplayOutput:
    path: str

    @property
    def short_name(self) -> str:
        return self.path.rsplit("/+drm:", 1)[-1]

    @property
    def card(self) -> str:
        return self.short_name.split("-", 1)[0]


@dataclass
class InstallRecord:
    """The durable record of an installation's choices.

    Fields are None when absent or when they failed validation on load.
    """

    session_method: Optional[SessionMethod] = None
    gpu_type: Optional[str] = None
    display_path: Optional[str] = None

    @property
    def loaded_fields(self) -> int:
        return sum(v is not None for v in (self.session_method, self.gpu_type, self.display_path))

    @property
    def complete(self) -> bool:
        return self.loaded_fields == 3


@dataclass
class DetectedState:
    """Snapshot of the live system, rebuilt every run.

    The presentation layer returns a copy with the operator's confirmed
    values filled in (`gpu_type`, `display_path`, `session_method`).
    """

    identity: str = ""
    gpus: List[GpuDevice] = field(default_factory=list)
    classification: Optional[GpuClassification] = None
    display_outputs: List[DisplayOutput] = field(default_factory=list)
    compositor_config_dir: Optional[Path] = None
    compositor_config_files: List[Path] = field(default_factory=list)
    existing_autostart_files: List[Path] = field(default_factory=list)
    locker_running: bool = False
    session_probe: Optional[str] = None
    suggested_method: Optional[SessionMethod] = None
    prior_record: Optional[InstallRecord] = None

    gpu_type: Optional[str] = None
    display_path: Optional[str] = None
    session_method: Optional[SessionMethod] = None

    def confirmed(self, **changes: object) -> "DetectedState":
        return replace(self, **changes)

    @property
    def display_selection_required(self) -> bool:
        return bool(self.classification and self.classification.duplicate_vendors)

    def to_record(self) -> InstallRecord:
        return InstallRecord(
            session_method=self.session_method,
            gpu_type=self.gpu_type,
            display_path=self.display_path,
        )
