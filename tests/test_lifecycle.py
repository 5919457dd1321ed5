"""
Tests for the resource lifecycle, the command runner and the run lock.
"""

import os
import signal
import subprocess
import sys
import textwrap
from pathlib import Path

import pytest

from hyprlogin_installer.errors import LockError
from hyprlogin_installer.lib.command import run_cmd
from hyprlogin_installer.lib.lifecycle import TEMP_PREFIX, TEMP_SUFFIX, Lifecycle
from hyprlogin_installer.lib.lock import LOCK_NAME, InstallLock, default_lock_path


class TestLifecycle:
    def test_critical_marker_is_scoped(self):
        lc = Lifecycle()
        with lc.critical("disabling sddm"):
            assert lc.critical_operation == "disabling sddm"
            assert any("disabling sddm" in line for line in lc.interruption_report())
        assert lc.critical_operation is None
        assert len(lc.interruption_report()) == 1

    def test_marker_cleared_on_error(self):
        lc = Lifecycle()
        with pytest.raises(RuntimeError):
            with lc.critical("writing override"):
                raise RuntimeError("boom")
        assert lc.critical_operation is None

    def test_removes_tracked_and_scratch_temp_files(self, tmp_path: Path):
        lc = Lifecycle()
        tracked = tmp_path / "elsewhere.tmp"
        tracked.write_text("")
        stray = tmp_path / f"{TEMP_PREFIX}abc{TEMP_SUFFIX}"
        stray.write_text("")
        keep = tmp_path / "unrelated.tmp"
        keep.write_text("")
        lc.track_temp(tracked)
        lc.scratch_dirs.append(tmp_path)

        assert lc.remove_temp_files() == 2
        assert not tracked.exists() and not stray.exists()
        assert keep.exists()

    def test_release_all_releases_lock_and_children(self, tmp_path: Path):
        lc = Lifecycle(grace_period=0)
        lock = InstallLock(tmp_path / LOCK_NAME).acquire()
        lc.attach_lock(lock)
        child = subprocess.Popen(["sleep", "30"])
        lc.track_child(child)

        lc.release_all()
        assert not lock.held
        assert child.wait(timeout=5) != 0

    def test_signal_handlers_installed_once_and_restored(self):
        lc = Lifecycle()
        saved = signal.getsignal(signal.SIGTERM)
        try:
            lc.install_signal_handlers()
            lc.install_signal_handlers()
            assert signal.getsignal(signal.SIGTERM) == lc._handle_signal
            lc.restore_signal_handlers()
            assert signal.getsignal(signal.SIGTERM) == signal.SIG_DFL
        finally:
            signal.signal(signal.SIGTERM, saved)


INTERRUPTED_CHILD = textwrap.dedent(
    """
    import sys
    import time
    from pathlib import Path

    from hyprlogin_installer.lib.lifecycle import LIFECYCLE
    from hyprlogin_installer.lib.lock import LOCK_NAME, InstallLock

    scratch = Path(sys.argv[1])
    LIFECYCLE.grace_period = 0
    LIFECYCLE.attach_lock(InstallLock(scratch / LOCK_NAME).acquire())
    LIFECYCLE.scratch_dirs.append(scratch)
    (scratch / "hypr-login-override.tmp").write_text("partial")
    LIFECYCLE.install_signal_handlers()
    with LIFECYCLE.critical("configuring systemd autologin"):
        print("ready", flush=True)
        time.sleep(30)
    """
)


class TestInterruption:
    def test_sigterm_releases_everything_and_reports(self, tmp_path: Path):
        env = dict(os.environ, PYTHONPATH=str(Path(__file__).resolve().parents[1]))
        child = subprocess.Popen(
            [sys.executable, "-c", INTERRUPTED_CHILD, str(tmp_path)],
            stdout=subprocess.PIPE,
            text=True,
            env=env,
        )
        try:
            assert child.stdout.readline().strip() == "ready"
            child.send_signal(signal.SIGTERM)
            out, _ = child.communicate(timeout=10)
        finally:
            if child.poll() is None:
                child.kill()

        assert child.returncode == 128 + signal.SIGTERM
        assert "Interrupted during: configuring systemd autologin" in out
        assert not (tmp_path / "hypr-login-override.tmp").exists()
        InstallLock(tmp_path / LOCK_NAME).acquire().release()


class TestRunCmd:
    def test_exit_status(self):
        r = run_cmd(["sh", "-c", "echo out; exit 3"], check=False)
        assert r.returncode == 3 and not r.ok
        assert r.stdout.strip() == "out"

    def test_check_raises(self):
        with pytest.raises(RuntimeError):
            run_cmd(["sh", "-c", "exit 1"])

    def test_timeout_kills_child(self):
        r = run_cmd(["sleep", "5"], check=False, timeout=0.2)
        assert r.timed_out and r.returncode == 124 and not r.ok

    def test_missing_program(self):
        r = run_cmd(["definitely-not-a-real-program-xyz"], check=False)
        assert r.returncode == 127

    def test_dry_run_does_not_execute(self, tmp_path: Path):
        marker = tmp_path / "ran"
        r = run_cmd(["touch", str(marker)], dry_run=True)
        assert r.ok and not marker.exists()


class TestInstallLock:
    def test_second_holder_is_refused(self, tmp_path: Path):
        path = tmp_path / LOCK_NAME
        with InstallLock(path):
            with pytest.raises(LockError) as exc:
                InstallLock(path).acquire()
            assert str(path) in exc.value.remediation[0]

    def test_reacquire_after_release(self, tmp_path: Path):
        path = tmp_path / LOCK_NAME
        InstallLock(path).acquire().release()
        lock = InstallLock(path).acquire()
        assert lock.held
        lock.release()

    def test_default_path_prefers_runtime_dir(self, tmp_path: Path):
        assert default_lock_path({"XDG_RUNTIME_DIR": str(tmp_path)}) == tmp_path / LOCK_NAME
        assert default_lock_path({}) == Path("/tmp") / LOCK_NAME

    def test_unopenable_lock_path_is_a_lock_error(self, tmp_path: Path):
        blocked = tmp_path / LOCK_NAME
        blocked.mkdir()
        with pytest.raises(LockError) as exc:
            InstallLock(blocked).acquire()
        assert str(blocked) in exc.value.remediation[0]
        assert not InstallLock(blocked).held
