"""
Tests for path normalization and the installed-file layout.
"""

from pathlib import Path

import pytest

from hyprlogin_installer.lib.env import InstallPaths
from hyprlogin_installer.lib.paths import normalize_path, relative_to_home

HOME = "/home/alice"


class TestNormalizePath:
    @pytest.mark.parametrize(
        "raw",
        [
            "~/.config/hypr",
            "file:///home/alice/.config/hypr",
            "/home/alice//.config/./hypr/",
            "//home/alice/.config/scripts/../hypr",
            "$HOME/.config/hypr",
            ".config/hypr",
        ],
    )
    def test_equivalent_forms_resolve_to_same_path(self, raw):
        assert normalize_path(raw, home=HOME, cwd=HOME) == "/home/alice/.config/hypr"

    @pytest.mark.parametrize(
        "raw",
        ["~", "~/x/../y/", "file://~/a", "relative/dir", "/", "//", "/a/b/../../c"],
    )
    def test_idempotent(self, raw):
        once = normalize_path(raw, home=HOME, cwd="/srv")
        assert normalize_path(once, home=HOME, cwd="/srv") == once

    def test_root_keeps_its_slash(self):
        assert normalize_path("///", home=HOME) == "/"

    def test_resolves_symlinks(self, tmp_path: Path):
        target = tmp_path / "real"
        target.mkdir()
        (tmp_path / "link").symlink_to(target)
        assert normalize_path(str(tmp_path / "link")) == str(target.resolve())


class TestRelativeToHome:
    def test_under_home(self):
        assert relative_to_home("/home/alice/.config/hypr/execs.conf", home=HOME) == "~/.config/hypr/execs.conf"

    def test_outside_home(self):
        assert relative_to_home("/etc/hypr.conf", home=HOME) == "/etc/hypr.conf"


class TestInstallPaths:
    def test_xdg_overrides(self, tmp_path: Path):
        paths = InstallPaths.from_environment(
            payload_dir=tmp_path,
            environ={"HOME": HOME, "XDG_CONFIG_HOME": "/cfg", "XDG_RUNTIME_DIR": str(tmp_path)},
        )
        assert paths.launcher_dest == Path("/cfg/hypr/scripts/hyprland-tty.fish")
        assert paths.fish_hook_dest == Path("/cfg/fish/conf.d/hyprland-autostart.fish")
        assert paths.record_file == Path("/cfg/hypr-login/install.conf")
        assert paths.state_home == Path(HOME) / ".local/state"
        assert paths.runtime_dir == tmp_path

    def test_missing_runtime_dir_is_none(self, tmp_path: Path):
        paths = InstallPaths.from_environment(
            payload_dir=tmp_path,
            environ={"HOME": HOME, "XDG_RUNTIME_DIR": str(tmp_path / "absent")},
        )
        assert paths.runtime_dir is None

    def test_override_location(self, install_paths: InstallPaths):
        assert install_paths.override_file == (
            install_paths.system_root / "etc/systemd/system/getty@tty1.service.d/autologin.conf"
        )
