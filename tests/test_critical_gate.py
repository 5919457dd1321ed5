"""
Tests for the login manager cutover.
"""

import pytest

from hyprlogin_installer.critical_gate import confirm_cutover, disable_fallback, run_cutover
from hyprlogin_installer.errors import OperatorDeclined, PrivilegeError, ValidationError
from hyprlogin_installer.staged_testing import GateState

from .conftest import FakeSystemctl


@pytest.mark.parametrize("answer", ["Yes", "y", "YES", ""])
def test_only_exact_yes_disables(make_ctx, answer):
    systemctl = FakeSystemctl(enabled={"sddm"})
    ctx = make_ctx([answer], systemctl=systemctl)

    with pytest.raises(OperatorDeclined):
        run_cutover(ctx, GateState.PASSED)
    assert "sddm" in systemctl.enabled
    assert "disable sddm" not in systemctl.verbs()


def test_end_of_input_keeps_fallback(make_ctx):
    systemctl = FakeSystemctl(enabled={"sddm"})
    with pytest.raises(OperatorDeclined):
        run_cutover(make_ctx([], systemctl=systemctl), GateState.PASSED)
    assert "sddm" in systemctl.enabled


def test_yes_disables_and_offers_reboot(make_ctx):
    systemctl = FakeSystemctl(enabled={"sddm"})
    ctx = make_ctx(["yes", ""], systemctl=systemctl)
    run_cutover(ctx, GateState.PASSED)

    assert "sddm" not in systemctl.enabled
    assert "reboot" not in systemctl.verbs()
    assert "INSTALLATION COMPLETE" in ctx.console.output
    assert "sudo systemctl enable sddm && sudo reboot" in ctx.console.output
    assert ctx.lifecycle.critical_operation is None


def test_reboot_accepted(make_ctx):
    systemctl = FakeSystemctl(enabled={"sddm"})
    run_cutover(make_ctx(["yes", "y"], systemctl=systemctl), GateState.SKIPPED)
    assert "reboot" in systemctl.verbs()


@pytest.mark.parametrize("state", [GateState.NOT_STARTED, GateState.ABORTED, GateState.TROUBLESHOOTING])
def test_requires_passed_or_skipped_test(make_ctx, state):
    ctx = make_ctx([])
    with pytest.raises(ValidationError):
        confirm_cutover(ctx, state)
    assert ctx.console.prompts == []


def test_already_disabled(make_ctx):
    systemctl = FakeSystemctl(enabled=set())
    ctx = make_ctx(systemctl=systemctl)
    assert disable_fallback(ctx) is False
    assert "disable sddm" not in systemctl.verbs()


def test_disable_failure(make_ctx):
    systemctl = FakeSystemctl(enabled={"sddm"}, failing={"disable sddm"})
    ctx = make_ctx(systemctl=systemctl)
    with pytest.raises(PrivilegeError) as exc:
        disable_fallback(ctx)
    assert exc.value.remediation == ["sudo systemctl disable sddm"]
    assert ctx.lifecycle.critical_operation is None


def test_dry_run_disables_nothing(make_ctx):
    systemctl = FakeSystemctl(enabled={"sddm"})
    ctx = make_ctx(systemctl=systemctl, dry_run=True)
    assert disable_fallback(ctx) is True
    assert systemctl.calls == []
