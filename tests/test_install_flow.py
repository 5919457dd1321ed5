"""
End-to-end install, update and uninstall flows against a tmp_path system.
"""

import stat
from pathlib import Path

import pytest

from hyprlogin_installer.errors import OperatorDeclined
from hyprlogin_installer.install import build_steps, run_install
from hyprlogin_installer.models import InstallRecord, SessionMethod
from hyprlogin_installer.privileged import render_override
from hyprlogin_installer.record_store import load_record, save_record
from hyprlogin_installer.steps import DetectSystemStep, InstallUserComponentsStep
from hyprlogin_installer.uninstall import run_uninstall
from hyprlogin_installer.update import run_update

from .conftest import TEST_USER, FakeSystemctl

# Confirm username, pick NVIDIA (2nd entry), accept the suggested exec-once
# method, accept the summary, then acknowledge the manual exec-once step.
DETECT_DIRECT = ["", "2", "", ""]
MANUAL_STEP = [""]


@pytest.fixture
def sysfs(tmp_path: Path):
    drm = tmp_path / "sys/class/drm"
    drivers = tmp_path / "sys/bus/pci/drivers"
    for card, driver in (("card0", "amdgpu"), ("card1", "nvidia")):
        (drivers / driver).mkdir(parents=True, exist_ok=True)
        (drm / card / "device").mkdir(parents=True)
        (drm / card / "device" / "driver").symlink_to(drivers / driver)
    udev = tmp_path / "run/udev/data"
    udev.mkdir(parents=True)
    return drm, udev


@pytest.fixture
def detect_kwargs(sysfs):
    drm, udev = sysfs
    return {"drm_root": drm, "udev_root": udev, "environ": {}, "current_user": TEST_USER}


@pytest.fixture(autouse=True)
def programs_present(monkeypatch):
    monkeypatch.setattr("hyprlogin_installer.steps.step_10_preflight.check_dependencies", lambda: None)


def _user_steps(detect_kwargs):
    return [DetectSystemStep(**detect_kwargs), InstallUserComponentsStep()]


class TestDetectionScenario:
    def test_amd_plus_nvidia_choose_nvidia(self, make_ctx, detect_kwargs):
        ctx = make_ctx(DETECT_DIRECT + MANUAL_STEP)
        result = run_install(ctx, _user_steps(detect_kwargs))

        assert result.completed
        state = ctx.detected
        assert [str(g) for g in state.gpus] == ["card0:amdgpu", "card1:nvidia"]
        assert state.classification.tags == ["amd", "nvidia"]
        assert len(state.classification.vendors) == 2
        assert state.classification.selection_required

        record_file = ctx.paths.record_file
        assert load_record(record_file) == InstallRecord(SessionMethod.DIRECT, "nvidia", "auto")
        assert stat.S_IMODE(record_file.stat().st_mode) == 0o600

        launcher = ctx.paths.launcher_dest
        assert stat.S_IMODE(launcher.stat().st_mode) == 0o755
        assert "\nset -gx NVD_BACKEND direct\n" in launcher.read_text()
        assert ctx.paths.fish_hook_dest.is_file()
        assert not ctx.paths.locker_unit_dest.exists()

    def test_managed_method_installs_locker_unit(self, make_ctx, detect_kwargs):
        systemctl = FakeSystemctl(active={"uwsm-app@Hyprland.service": "active"})
        # accept username, NVIDIA, accept UWSM, accept summary, acknowledge the unit screen
        ctx = make_ctx(["", "2", "", "", ""], systemctl=systemctl)
        run_install(ctx, _user_steps(detect_kwargs))

        assert ctx.paths.locker_unit_dest.is_file()
        assert "enable hyprlock.service" in systemctl.verbs()
        assert load_record(ctx.paths.record_file).session_method is SessionMethod.MANAGED

    def test_declined_summary_changes_nothing(self, make_ctx, detect_kwargs):
        ctx = make_ctx(["", "2", "", "n"])
        with pytest.raises(OperatorDeclined):
            run_install(ctx, _user_steps(detect_kwargs))
        assert not ctx.paths.launcher_dest.exists()
        assert not ctx.paths.record_file.exists()

    def test_existing_autostart_can_be_skipped(self, make_ctx, detect_kwargs, install_paths):
        execs = install_paths.config_home / "hypr" / "execs.conf"
        execs.parent.mkdir(parents=True)
        execs.write_text("exec-once = hyprlock\n")
        # decline the duplicate, acknowledge
        ctx = make_ctx(DETECT_DIRECT + ["", ""])
        run_install(ctx, _user_steps(detect_kwargs))
        assert "HYPRLOCK ALREADY CONFIGURED" in ctx.console.output
        assert "MANUAL STEP REQUIRED" not in ctx.console.output


class TestFullInstall:
    def test_through_cutover(self, make_ctx, detect_kwargs):
        systemctl = FakeSystemctl(enabled={"sddm"})
        answers = (
            ["y"]  # continue with installation
            + DETECT_DIRECT
            + MANUAL_STEP
            + ["y"]  # sudo operations
            + ["", "y"]  # tty2 guide, test succeeded
            + ["yes", ""]  # disable sddm, no reboot
        )
        ctx = make_ctx(answers, systemctl=systemctl)
        result = run_install(ctx, build_steps(**detect_kwargs))

        assert result.completed
        assert ctx.paths.override_file.read_text() == render_override(TEST_USER)
        assert "sddm" not in systemctl.enabled
        assert load_record(ctx.paths.record_file).gpu_type == "nvidia"
        assert ctx.console.answers == []

    def test_declined_sudo_stops_before_testing(self, make_ctx, detect_kwargs):
        systemctl = FakeSystemctl(enabled={"sddm"})
        ctx = make_ctx(["y"] + DETECT_DIRECT + MANUAL_STEP + [""], systemctl=systemctl)
        result = run_install(ctx, build_steps(**detect_kwargs))

        assert result.stopped_after == "40_configure_autologin"
        assert not ctx.paths.override_file.exists()
        assert "sddm" in systemctl.enabled
        assert ctx.paths.record_file.is_file()
        assert "To complete installation manually" in ctx.console.output

    def test_welcome_declined(self, make_ctx, detect_kwargs):
        ctx = make_ctx([""])
        with pytest.raises(OperatorDeclined):
            run_install(ctx, build_steps(**detect_kwargs))
        assert not ctx.paths.config_home.exists()

    def test_dry_run_writes_nothing(self, make_ctx, detect_kwargs):
        systemctl = FakeSystemctl(enabled={"sddm"})
        answers = ["y"] + DETECT_DIRECT + MANUAL_STEP + ["y", "", "y", "yes", ""]
        ctx = make_ctx(answers, systemctl=systemctl, dry_run=True)
        run_install(ctx, build_steps(**detect_kwargs))

        assert not ctx.paths.launcher_dest.exists()
        assert not ctx.paths.record_file.exists()
        assert not ctx.paths.override_file.exists()
        assert "sddm" in systemctl.enabled
        assert "[DRY-RUN] Would run: sudo systemctl disable sddm" in ctx.console.output


class TestUninstall:
    def test_uninstall_is_left_inverse_of_install(self, make_ctx, detect_kwargs):
        ctx = make_ctx(DETECT_DIRECT + MANUAL_STEP)
        run_install(ctx, _user_steps(detect_kwargs))
        # a second install leaves backups behind
        ctx2 = make_ctx(DETECT_DIRECT + MANUAL_STEP)
        run_install(ctx2, _user_steps(detect_kwargs))
        assert list(ctx.paths.launcher_dest.parent.glob("*.backup.*"))

        # remove all, keep sddm as is, no reboot
        ctx3 = make_ctx(["y", "n", ""])
        run_uninstall(ctx3)

        for p in (ctx.paths.launcher_dest, ctx.paths.fish_hook_dest, ctx.paths.record_file):
            assert not p.exists()
        assert not list(ctx.paths.launcher_dest.parent.glob("*.backup.*"))
        assert not list(ctx.paths.fish_hook_dest.parent.glob("*.backup.*"))

    def test_cancel_by_default(self, make_ctx, detect_kwargs):
        ctx = make_ctx(DETECT_DIRECT + MANUAL_STEP)
        run_install(ctx, _user_steps(detect_kwargs))
        with pytest.raises(OperatorDeclined):
            run_uninstall(make_ctx([""]))
        assert ctx.paths.launcher_dest.exists()

    def test_managed_unit_disabled_before_removal(self, make_ctx, install_paths):
        unit = install_paths.locker_unit_dest
        unit.parent.mkdir(parents=True)
        unit.write_text("[Unit]\n")
        systemctl = FakeSystemctl(enabled={"hyprlock.service"})
        ctx = make_ctx(["y", "n", ""], systemctl=systemctl)
        run_uninstall(ctx)

        assert not unit.exists()
        verbs = systemctl.verbs()
        assert verbs.index("disable hyprlock.service") < verbs.index("daemon-reload")
        assert "Detected hyprlock systemd service" in ctx.console.output

    def test_restores_fallback_and_removes_override(self, make_ctx, install_paths):
        install_paths.override_dir.mkdir(parents=True)
        install_paths.override_file.write_text(render_override(TEST_USER))
        systemctl = FakeSystemctl(enabled=set())
        # remove all, remove override, enable sddm (default yes), no reboot
        ctx = make_ctx(["y", "y", "", ""], systemctl=systemctl)
        run_uninstall(ctx)

        assert not install_paths.override_file.exists()
        assert "sddm" in systemctl.enabled


class TestUpdate:
    def _installed(self, install_paths, method=SessionMethod.DIRECT):
        install_paths.launcher_dest.parent.mkdir(parents=True)
        install_paths.launcher_dest.write_text("old launcher\n")
        install_paths.fish_hook_dest.parent.mkdir(parents=True)
        install_paths.fish_hook_dest.write_text("old hook\n")
        save_record(install_paths.record_file, InstallRecord(method, "nvidia", "auto"))
        install_paths.override_dir.mkdir(parents=True)
        install_paths.override_file.write_text(render_override(TEST_USER))

    def test_refreshes_artifacts_and_keeps_choices(self, make_ctx, install_paths, detect_kwargs):
        self._installed(install_paths)
        # blank picks the recorded GPU (nvidia)
        ctx = make_ctx([""])
        run_update(ctx, **detect_kwargs)

        assert "set -gx NVD_BACKEND direct" in install_paths.launcher_dest.read_text()
        backups = list(install_paths.launcher_dest.parent.glob("hyprland-tty.fish.backup.*"))
        assert len(backups) == 1 and backups[0].read_text() == "old launcher\n"
        assert load_record(install_paths.record_file) == InstallRecord(SessionMethod.DIRECT, "nvidia", "auto")
        assert "Systemd configuration intact" in ctx.console.output
        assert ctx.sudo.calls == []

    def test_broken_override_offers_reconfiguration(self, make_ctx, install_paths, detect_kwargs):
        self._installed(install_paths)
        install_paths.override_file.write_text(render_override("YOUR_USERNAME"))
        # GPU default, reconfigure (default yes), keep username, proceed with sudo
        ctx = make_ctx(["", "", "", "y"])
        run_update(ctx, **detect_kwargs)
        assert install_paths.override_file.read_text() == render_override(TEST_USER)
        assert any("Use this username for autologin?" in p for p in ctx.console.prompts)
        assert f"Username confirmed: {TEST_USER}" in ctx.console.output

    def test_reconfiguration_rechecks_typed_username(self, make_ctx, install_paths, detect_kwargs):
        self._installed(install_paths)
        install_paths.override_file.unlink()
        # reject detected name, type an unknown account, then a real one
        ctx = make_ctx(["", "", "n", "mallory", TEST_USER, "y"])
        run_update(ctx, **detect_kwargs)
        assert "User 'mallory' does not exist" in ctx.console.output
        assert install_paths.override_file.read_text() == render_override(TEST_USER)

    def test_declined_reconfiguration_asks_nothing_else(self, make_ctx, install_paths, detect_kwargs):
        self._installed(install_paths)
        install_paths.override_file.unlink()
        ctx = make_ctx(["", "n"])
        run_update(ctx, **detect_kwargs)
        assert not install_paths.override_file.exists()
        assert not any("username" in p for p in ctx.console.prompts)
        assert ctx.sudo.calls == []

    def test_managed_record_refreshes_unit(self, make_ctx, install_paths, detect_kwargs):
        self._installed(install_paths, SessionMethod.MANAGED)
        systemctl = FakeSystemctl()
        ctx = make_ctx(["2"], systemctl=systemctl)
        run_update(ctx, **detect_kwargs)

        assert install_paths.locker_unit_dest.is_file()
        assert "enable hyprlock.service" in systemctl.verbs()
        assert load_record(install_paths.record_file).gpu_type == "nvidia"
