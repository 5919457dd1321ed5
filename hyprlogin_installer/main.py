from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys
from typing import Callable, Dict, Optional

from .context import InstallContext, build_context
from .errors import EXIT_FAILURE, EXIT_OK, InstallerError, OperatorDeclined
from .install import run_install
from .lib.env import InstallPaths
from .lib.lifecycle import LIFECYCLE
from .lib.lock import InstallLock, default_lock_path
from .lib.prompt import Console, InputCancelled
from .logging_utils import configure_logging
from .policy import load_policy
from .uninstall import run_uninstall
from .update import run_update

logger = logging.getLogger(__name__)

MODE_INSTALL = "install"
MODE_UPDATE = "update"
MODE_UNINSTALL = "uninstall"


def _install(ctx: InstallContext) -> None:
    run_install(ctx)


MODES: Dict[str, Callable[[InstallContext], None]] = {
    MODE_INSTALL: _install,
    MODE_UPDATE: run_update,
    MODE_UNINSTALL: run_uninstall,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="hypr-login-installer",
        description="Boot directly into Hyprland with hyprlock as the login screen.",
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("-u", "--uninstall", dest="mode", action="store_const", const=MODE_UNINSTALL, help="Remove hypr-login")
    mode.add_argument("-d", "--update", dest="mode", action="store_const", const=MODE_UPDATE, help="Update installed scripts")
    p.set_defaults(mode=MODE_INSTALL)
    p.add_argument("-n", "--dry-run", action="store_true", help="Show what would be done without making changes")
    p.add_argument("--skip-test", action="store_true", help="Skip staged testing (NOT RECOMMENDED)")
    p.add_argument("--log", default=None, help="Path to installer log")
    p.add_argument("--policy", default=None, help="Path to installer policy (yaml)")
    p.add_argument("--payload-dir", default=os.getcwd(), help="Directory holding scripts/ and configs/")
    return p


def report_error(console: Console, err: InstallerError) -> None:
    if isinstance(err, OperatorDeclined):
        console.info(str(err))
        return
    console.say()
    console.error(str(err))
    for line in err.remediation:
        console.say(f"  {line}")


def run(args: argparse.Namespace, *, console: Optional[Console] = None) -> int:
    console = console or Console(dry_run=args.dry_run)
    paths = InstallPaths.from_environment(payload_dir=args.payload_dir)

    actual_log = configure_logging(
        log_path=args.log or str(paths.log_file),
        fallback_dir=str(paths.runtime_dir) if paths.runtime_dir is not None else None,
    )
    logger.info("hypr-login-installer mode=%s dry_run=%s log=%s", args.mode, args.dry_run, actual_log)

    try:
        policy = load_policy(args.policy or paths.policy_file)
        if policy.autologin_unit != paths.autologin_unit:
            paths = dataclasses.replace(paths, autologin_unit=policy.autologin_unit)

        lock = InstallLock(default_lock_path()).acquire()
        LIFECYCLE.attach_lock(lock)
        LIFECYCLE.grace_period = policy.interrupt_grace
        if paths.runtime_dir is not None:
            LIFECYCLE.scratch_dirs.append(paths.runtime_dir)
        LIFECYCLE.install_signal_handlers()

        ctx = build_context(
            paths=paths,
            policy=policy,
            console=console,
            dry_run=args.dry_run,
            skip_test=args.skip_test,
        )
        MODES[args.mode](ctx)
        return EXIT_OK
    except InstallerError as e:
        logger.log(logging.INFO if isinstance(e, OperatorDeclined) else logging.ERROR, "%s: %s", type(e).__name__, e)
        report_error(console, e)
        return e.exit_code
    except InputCancelled:
        logger.warning("Input closed; stopping")
        console.say()
        console.warn("Input cancelled - stopping")
        return EXIT_FAILURE
    except Exception:
        logger.exception("Installer failed")
        raise
    finally:
        LIFECYCLE.restore_signal_handlers()
        LIFECYCLE.release_all()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
