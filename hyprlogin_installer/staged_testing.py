"""Verify the new boot chain on a second console before the cutover.

The fallback login manager is never touched here; every exit path out of
the gate leaves the machine "installed but not cut over".
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import List

from .context import InstallContext
from .errors import PartialInstall, StagedTestFailed
from .lib.editor import find_editor, open_in_editor, tail_lines
from .lib.paths import normalize_path
from .lib.prompt import MenuOption

logger = logging.getLogger(__name__)


class GateState(enum.Enum):
    NOT_STARTED = "not-started"
    AWAITING_SECONDARY_LOGIN = "awaiting-secondary-login"
    AWAITING_RESULT = "awaiting-result"
    TROUBLESHOOTING = "troubleshooting"
    PASSED = "passed"
    SKIPPED = "skipped"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({GateState.PASSED, GateState.SKIPPED, GateState.ABORTED})

VIEW_LOG = "logs"
EDIT_LAUNCHER = "edit"
RETRY = "retry"
EXIT = "exit"


def _console_number(unit: str) -> str:
    # getty@tty2 -> 2
    tail = unit.rsplit("tty", 1)[-1]
    return tail if tail.isdigit() else "2"


class StagedTestingGate:
    """NOT_STARTED -> AWAITING_SECONDARY_LOGIN -> AWAITING_RESULT -> PASSED.

    A failed result moves to TROUBLESHOOTING, which returns to
    AWAITING_SECONDARY_LOGIN or ends in ABORTED. Failures beyond the
    policy's troubleshooting rounds end the gate for good.
    """

    def __init__(self, ctx: InstallContext) -> None:
        self.ctx = ctx
        self.state = GateState.NOT_STARTED
        self.failures = 0
        self.history: List[GateState] = [self.state]

    @property
    def unit(self) -> str:
        return self.ctx.policy.secondary_console

    @property
    def tty(self) -> str:
        return f"tty{_console_number(self.unit)}"

    def _move(self, state: GateState) -> None:
        logger.debug("Staged testing: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    # -- secondary console -------------------------------------------

    def start_secondary_console(self) -> None:
        c = self.ctx.console
        c.banner("STAGED TESTING (Mandatory before login manager cutover)")
        c.say(f"  Before disabling {self.ctx.policy.fallback_login_manager}, you MUST test on {self.tty} to verify")
        c.say("  everything works correctly.")
        c.say()

        if self.ctx.preview(f"Would start {self.unit}"):
            return

        c.info(f"Starting getty on {self.tty}...")
        if self.ctx.systemctl.start(self.unit, sudo=True).ok:
            c.success(f"{self.unit} started")
            return
        if self.ctx.systemctl.is_active(self.unit):
            c.info(f"{self.unit} already running")
            return

        c.say()
        c.error(f"Could not start {self.unit}")
        c.say()
        c.say(f"  Manual fix: sudo systemctl start {self.unit}")
        c.say()
        if not c.ask("Try to continue anyway? (You can start getty manually)"):
            self._move(GateState.ABORTED)
            raise PartialInstall(
                f"Staged testing aborted - cannot proceed without {self.tty}",
                remediation=[f"sudo systemctl start {self.unit}", "Then re-run the installer"],
            )

        self.ctx.record_deviation(f"proceeding without automatic start of {self.unit}")
        c.say()
        c.say("  To start getty manually, run in another terminal:")
        c.say("    " + c.paint(f"sudo systemctl start {self.unit}", "cyan"))
        c.say()
        c.pause(f"Press Enter when {self.unit} is ready...")
        if self.ctx.systemctl.is_active(self.unit):
            c.success(f"{self.unit} is now running")
            return
        c.warn(f"{self.unit} still not running - testing may fail")
        if not c.ask("Proceed anyway?"):
            self._move(GateState.ABORTED)
            raise PartialInstall(f"Staged testing aborted - {self.unit} not running")
        self.ctx.record_deviation(f"staged testing with {self.unit} not confirmed running")

    def show_guide(self) -> None:
        c = self.ctx.console
        self._move(GateState.AWAITING_SECONDARY_LOGIN)
        n = _console_number(self.unit)
        c.say()
        c.say("  " + c.paint("Test procedure:", "bold"))
        c.lines(
            [
                "",
                f"    1. Press {c.paint(f'Ctrl+Alt+F{n}', 'cyan')} to switch to {self.tty}",
                "    2. Login with your password",
                "    3. Verify Hyprland starts automatically",
                "    4. Verify hyprlock appears immediately",
                "    5. Unlock with your password",
                "    6. Verify desktop appears correctly",
                f"    7. Press {c.paint('Ctrl+Alt+F1', 'cyan')} to return here",
                "",
                "  " + c.paint("FAILURE indicators:", "red"),
                "    ✗ Login succeeds but black screen → GPU initialization failed",
                "    ✗ hyprlock appears but won't unlock → hyprlock config issue",
                f"    ✗ Screen flickers/crashes → check {self.ctx.policy.compositor_log}",
                "",
            ]
        )
        c.pause(f"Press Enter when ready to test (then switch to {self.tty})...")

    # -- troubleshooting ---------------------------------------------

    def _compositor_log(self) -> Path:
        return Path(normalize_path(self.ctx.policy.compositor_log, home=str(self.ctx.paths.home)))

    def view_log(self) -> None:
        c = self.ctx.console
        log = self._compositor_log()
        c.say()
        c.say(f"=== Last 50 lines of {log} ===")
        lines = tail_lines(log, 50)
        c.lines(lines if lines is not None else ["(Log file not found)"])
        c.say()
        c.pause()

    def edit_launcher(self) -> bool:
        """Open the installed launcher; False when no editor is available."""

        c = self.ctx.console
        launcher = self.ctx.paths.launcher_dest
        editor = find_editor()
        if editor is None:
            c.warn("No editor found (tried: $EDITOR, nano, vim, nvim, vi)")
            c.say(f"  Edit manually: {launcher}")
            c.pause()
            return False
        if not open_in_editor(editor, launcher):
            c.warn("Editor exited with error")
        logger.info("Launcher edited during troubleshooting: %s", launcher)
        c.say()
        c.say(f"  Changes saved. You'll need to test again on {self.tty} to verify the fix.")
        c.say(f"  Note: If Hyprland is running on {self.tty}, logout first to apply changes.")
        c.say()
        c.pause("Press Enter when ready to test again...")
        return True

    def troubleshoot(self) -> None:
        """Loop on the menu until the operator retries or leaves."""

        self._move(GateState.TROUBLESHOOTING)
        c = self.ctx.console
        options = [
            MenuOption(VIEW_LOG, f"View {self.ctx.policy.compositor_log}"),
            MenuOption(EDIT_LAUNCHER, "Edit launcher script"),
            MenuOption(RETRY, "Try test again"),
            MenuOption(EXIT, f"Exit installer ({self.ctx.policy.fallback_login_manager} not modified)"),
        ]
        while True:
            c.say()
            c.say("  Troubleshooting options:")
            choice = c.select("Choose", options)
            logger.info("Troubleshooting choice: %s", choice)
            if choice == VIEW_LOG:
                self.view_log()
            elif choice == EDIT_LAUNCHER:
                if self.edit_launcher():
                    return
            elif choice == RETRY:
                return
            else:
                self._move(GateState.ABORTED)
                c.info(f"Exiting - {self.ctx.policy.fallback_login_manager} not modified")
                raise PartialInstall(
                    "User-level components are installed; login manager not cut over",
                    remediation=["Fix issues and re-run the installer when ready"],
                )

    # -- gate ---------------------------------------------------------

    def skip(self) -> GateState:
        c = self.ctx.console
        c.say()
        c.warn("Staged testing SKIPPED (--skip-test flag)")
        c.say()
        if not c.ask("Are you SURE you want to proceed without testing?"):
            self._move(GateState.ABORTED)
            raise PartialInstall("Staged testing not skipped - re-run without --skip-test to test first")
        self.ctx.record_deviation("staged testing skipped")
        self._move(GateState.SKIPPED)
        return self.state

    def run(self) -> GateState:
        if self.ctx.skip_test:
            if self.ctx.policy.allow_skip_test:
                return self.skip()
            self.ctx.console.warn("Skipping staged testing is disabled by policy")

        self.start_secondary_console()
        self.show_guide()
        limit = self.ctx.policy.max_troubleshooting_rounds
        c = self.ctx.console

        while True:
            self._move(GateState.AWAITING_RESULT)
            c.say()
            if c.ask(f"Did the {self.tty} test SUCCEED? (Hyprland started, hyprlock appeared)"):
                self._move(GateState.PASSED)
                c.success(f"Test passed! Ready for {self.ctx.policy.fallback_login_manager} cutover")
                logger.info("Staged testing passed after %d failed attempt(s)", self.failures)
                return self.state

            self.failures += 1
            logger.warning("Staged test failed (%d/%d)", self.failures, limit)
            if self.failures > limit:
                self._move(GateState.ABORTED)
                c.say()
                c.error("Test unsuccessful after multiple attempts")
                c.lines(
                    [
                        "",
                        f"  The {self.tty} test didn't pass. This usually means:",
                        f"    • Hyprland config issue (check {self.ctx.policy.compositor_log})",
                        "    • GPU environment variables need adjustment",
                        "    • hyprlock not configured correctly",
                        "",
                    ]
                )
                raise StagedTestFailed(
                    "Staged testing failed; user-level components are installed",
                    remediation=["Fix the underlying issue and re-run the installer"],
                )

            c.warn("Test did not pass")
            self.troubleshoot()
            self.show_guide()


def run_staged_testing(ctx: InstallContext) -> GateState:
    return StagedTestingGate(ctx).run()
