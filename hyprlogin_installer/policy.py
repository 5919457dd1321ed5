from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import EnvironmentCheckError

logger = logging.getLogger(__name__)


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    return value if isinstance(value, dict) else {}


def _positive(raw: Dict[str, Any], section: str, key: str, default: float) -> float:
    value = _section(raw, section).get(key)
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = -1.0
    if number <= 0:
        logger.warning("Ignoring invalid policy %s.%s=%r (using %s)", section, key, value, default)
        return default
    return number


@dataclass(frozen=True)
class InstallerPolicy:
    """Tunable thresholds, timeouts and service names.

    Read from an optional YAML file; every property has a default so an
    empty mapping is a complete policy.
    """

    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def systemctl_timeout(self) -> float:
        return _positive(self.raw, "timeouts", "systemctl", 5)

    @property
    def systemctl_verify_timeout(self) -> float:
        return _positive(self.raw, "timeouts", "systemctl_verify", 3)

    @property
    def sudo_auth_timeout(self) -> float:
        return _positive(self.raw, "timeouts", "sudo_auth", 60)

    @property
    def interrupt_grace(self) -> float:
        return _positive(self.raw, "timeouts", "interrupt_grace", 0.5)

    @property
    def max_troubleshooting_rounds(self) -> int:
        return int(_positive(self.raw, "testing", "max_troubleshooting_rounds", 5))

    @property
    def allow_skip_test(self) -> bool:
        return bool(_section(self.raw, "testing").get("allow_skip", True))

    @property
    def fallback_login_manager(self) -> str:
        return str(_section(self.raw, "services").get("fallback_login_manager") or "sddm")

    @property
    def secondary_console(self) -> str:
        return str(_section(self.raw, "services").get("secondary_console") or "getty@tty2")

    @property
    def autologin_unit(self) -> str:
        return str(_section(self.raw, "services").get("autologin_unit") or "getty@tty1")

    @property
    def managed_session_unit(self) -> str:
        return str(_section(self.raw, "services").get("managed_session_unit") or "uwsm-app@Hyprland.service")

    @property
    def locker_unit(self) -> str:
        return str(_section(self.raw, "services").get("locker_unit") or "hyprlock.service")

    @property
    def compositor_log(self) -> str:
        return str(_section(self.raw, "paths").get("compositor_log") or "~/.hyprland.log")


def load_policy(path: str | Path) -> InstallerPolicy:
    p = Path(path)
    if not p.exists():
        return InstallerPolicy()

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise EnvironmentCheckError(f"Installer policy must be YAML: {p}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise EnvironmentCheckError(f"Cannot read installer policy {p}: {e}") from e

    if not isinstance(raw, dict):
        raise EnvironmentCheckError(f"Installer policy must contain a mapping: {p}")

    logger.info("Loaded installer policy from %s", p)
    return InstallerPolicy(raw=raw)
