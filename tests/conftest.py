"""
Shared test fixtures: a scripted operator, in-memory service manager and
privilege fakes, and an install tree rooted in tmp_path.
"""

import io
import os
import pwd
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pytest

from hyprlogin_installer.context import InstallContext
from hyprlogin_installer.lib.env import InstallPaths
from hyprlogin_installer.lib.lifecycle import Lifecycle
from hyprlogin_installer.lib.privilege import Sudo
from hyprlogin_installer.lib.prompt import Console
from hyprlogin_installer.lib.systemd import ServiceResult, Systemctl
from hyprlogin_installer.policy import InstallerPolicy

TEST_USER = "alice"

LAUNCHER_PAYLOAD = """#!/usr/bin/env fish
# hyprland-tty launcher

# NVIDIA
# set -gx LIBVA_DRIVER_NAME nvidia
# set -gx __GLX_VENDOR_LIBRARY_NAME nvidia
# set -gx NVD_BACKEND direct

# AMD
# set -gx LIBVA_DRIVER_NAME radeonsi

# Intel
# set -gx LIBVA_DRIVER_NAME iHD

exec Hyprland
"""

HOOK_PAYLOAD = """if status is-login; and test (tty) = /dev/tty1
    exec ~/.config/hypr/scripts/hyprland-tty.fish
end
"""

UNIT_PAYLOAD = """[Unit]
Description=hyprlock
PartOf=graphical-session.target

[Service]
ExecStart=/usr/bin/hyprlock

[Install]
WantedBy=graphical-session.target
"""


class ScriptedConsole(Console):
    """Replays canned answers; running out of answers behaves like Ctrl+D."""

    def __init__(self, answers: Sequence[str] = (), *, dry_run: bool = False) -> None:
        self.answers: List[str] = list(answers)
        self.prompts: List[str] = []
        super().__init__(read_line=self._next, out=io.StringIO(), color=False, dry_run=dry_run)

    def _next(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    def feed(self, *answers: str) -> None:
        self.answers.extend(answers)

    @property
    def output(self) -> str:
        return self.out.getvalue()


class FakeSystemctl(Systemctl):
    """Records every call; keeps enabled/active state in memory."""

    def __init__(
        self,
        *,
        active: Optional[Dict[str, str]] = None,
        enabled: Iterable[str] = (),
        failing: Iterable[str] = (),
    ) -> None:
        super().__init__()
        self.active = dict(active or {})
        self.enabled = set(enabled)
        self.failing = set(failing)
        self.calls: List[tuple] = []

    def call(self, *args, user=False, sudo=False, timeout=None, mutating=True) -> ServiceResult:
        self.calls.append(args)
        verb = args[0]
        unit = args[1] if len(args) > 1 else ""
        if " ".join(args) in self.failing or verb in self.failing:
            return ServiceResult(ok=False)
        if verb == "is-active":
            state = self.active.get(unit, "")
            return ServiceResult(ok=state == "active", output=state)
        if verb == "is-enabled":
            return ServiceResult(ok=unit in self.enabled)
        if verb == "enable":
            self.enabled.add(unit)
        elif verb == "disable":
            self.enabled.discard(unit)
        elif verb == "start":
            self.active[unit] = "active"
        elif verb == "stop":
            self.active[unit] = "inactive"
        return ServiceResult(ok=True)

    def verbs(self) -> List[str]:
        return [" ".join(c) for c in self.calls]


class FakeSudo(Sudo):
    """Performs the privileged primitives directly on the tmp tree."""

    def __init__(self, *, grant: bool = True, fail: Iterable[str] = ()) -> None:
        super().__init__()
        self.grant = grant
        self.fail = set(fail)
        self.calls: List[str] = []

    def validate(self) -> bool:
        self.calls.append("validate")
        return self.grant

    def mkdir(self, path) -> bool:
        self.calls.append("mkdir")
        if "mkdir" in self.fail:
            return False
        Path(path).mkdir(parents=True, exist_ok=True)
        return True

    def copy_preserving(self, src, dst) -> bool:
        self.calls.append("cp")
        if "cp" in self.fail:
            return False
        shutil.copy2(src, dst)
        return True

    def install_file(self, src, dst, mode="644") -> bool:
        self.calls.append("install")
        if "install" in self.fail:
            return False
        shutil.copyfile(src, dst)
        os.chmod(dst, int(mode, 8))
        return True

    def remove(self, path) -> bool:
        self.calls.append("rm")
        Path(path).unlink(missing_ok=True)
        return True


@pytest.fixture(autouse=True)
def known_accounts(monkeypatch):
    """Only TEST_USER exists."""

    real = pwd.getpwnam

    def getpwnam(name):
        if name == TEST_USER:
            return real(pwd.getpwuid(os.getuid()).pw_name)
        raise KeyError(name)

    monkeypatch.setattr(pwd, "getpwnam", getpwnam)


@pytest.fixture(autouse=True)
def no_process_probe(monkeypatch):
    monkeypatch.setattr("hyprlogin_installer.detection.locker_running", lambda: False)


@pytest.fixture
def install_paths(tmp_path: Path) -> InstallPaths:
    home = tmp_path / "home"
    payload = tmp_path / "payload"
    runtime = tmp_path / "run"
    for d in (home, runtime, payload / "scripts/fish", payload / "configs/systemd/user"):
        d.mkdir(parents=True)
    (payload / "scripts/fish/hyprland-tty.fish").write_text(LAUNCHER_PAYLOAD)
    (payload / "scripts/fish/hyprland-autostart.fish").write_text(HOOK_PAYLOAD)
    (payload / "configs/systemd/user/hyprlock.service").write_text(UNIT_PAYLOAD)
    return InstallPaths(
        home=home,
        config_home=home / ".config",
        state_home=home / ".local/state",
        payload_dir=payload,
        system_root=tmp_path / "root",
        runtime_dir=runtime,
    )


@pytest.fixture
def make_ctx(install_paths: InstallPaths):
    def _make(
        answers: Sequence[str] = (),
        *,
        systemctl: Optional[FakeSystemctl] = None,
        sudo: Optional[FakeSudo] = None,
        policy: Optional[InstallerPolicy] = None,
        dry_run: bool = False,
        skip_test: bool = False,
    ) -> InstallContext:
        return InstallContext(
            paths=install_paths,
            policy=policy or InstallerPolicy(),
            console=ScriptedConsole(answers, dry_run=dry_run),
            systemctl=systemctl or FakeSystemctl(enabled={"sddm"}),
            sudo=sudo or FakeSudo(),
            dry_run=dry_run,
            skip_test=skip_test,
            lifecycle=Lifecycle(grace_period=0),
        )

    return _make
