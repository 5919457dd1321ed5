from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .paths import normalize_path


def _xdg(env: Mapping[str, str], var: str, home: str, default_rel: str) -> Path:
    value = env.get(var) or ""
    if value:
        return Path(normalize_path(value, home=home))
    return Path(home) / default_rel


@dataclass(frozen=True)
class InstallPaths:
    """Every fixed location the installer reads or writes."""

    home: Path
    config_home: Path
    state_home: Path
    payload_dir: Path
    autologin_unit: str = "getty@tty1"
    system_root: Path = Path("/")
    runtime_dir: Optional[Path] = None

    @classmethod
    def from_environment(
        cls,
        *,
        payload_dir: str | Path,
        environ: Optional[Mapping[str, str]] = None,
        autologin_unit: str = "getty@tty1",
    ) -> "InstallPaths":
        env = os.environ if environ is None else environ
        home = env.get("HOME") or os.path.expanduser("~")
        runtime = env.get("XDG_RUNTIME_DIR") or ""
        return cls(
            home=Path(home),
            config_home=_xdg(env, "XDG_CONFIG_HOME", home, ".config"),
            state_home=_xdg(env, "XDG_STATE_HOME", home, ".local/state"),
            payload_dir=Path(normalize_path(payload_dir, home=home)),
            autologin_unit=autologin_unit,
            runtime_dir=Path(runtime) if runtime and Path(runtime).is_dir() else None,
        )

    # Payload sources (opaque blobs).

    @property
    def launcher_src(self) -> Path:
        return self.payload_dir / "scripts/fish/hyprland-tty.fish"

    @property
    def fish_hook_src(self) -> Path:
        return self.payload_dir / "scripts/fish/hyprland-autostart.fish"

    @property
    def locker_unit_src(self) -> Path:
        return self.payload_dir / "configs/systemd/user/hyprlock.service"

    # Installed artifacts.

    @property
    def compositor_config_dir(self) -> Path:
        return self.config_home / "hypr"

    @property
    def launcher_dest(self) -> Path:
        return self.compositor_config_dir / "scripts/hyprland-tty.fish"

    @property
    def fish_hook_dest(self) -> Path:
        return self.config_home / "fish/conf.d/hyprland-autostart.fish"

    @property
    def locker_unit_dest(self) -> Path:
        return self.config_home / "systemd/user/hyprlock.service"

    @property
    def record_dir(self) -> Path:
        return self.config_home / "hypr-login"

    @property
    def record_file(self) -> Path:
        return self.record_dir / "install.conf"

    @property
    def policy_file(self) -> Path:
        return self.record_dir / "policy.yaml"

    @property
    def log_file(self) -> Path:
        return self.state_home / "hypr-login/install.log"

    @property
    def override_dir(self) -> Path:
        return self.system_root / f"etc/systemd/system/{self.autologin_unit}.service.d"

    @property
    def override_file(self) -> Path:
        return self.override_dir / "autologin.conf"

    @property
    def user_artifacts(self) -> tuple[Path, ...]:
        return (self.launcher_dest, self.fish_hook_dest, self.locker_unit_dest)
