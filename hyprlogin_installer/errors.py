from __future__ import annotations

from typing import Optional, Sequence

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_PARTIAL = 3
EXIT_TEST_FAILED = 4


class InstallerError(RuntimeError):
    """Base for every failure the entry point turns into an exit code.

    `remediation` holds manual commands the operator can run to finish the
    interrupted step by hand.
    """

    exit_code = EXIT_FAILURE

    def __init__(self, message: str, *, remediation: Optional[Sequence[str]] = None) -> None:
        super().__init__(message)
        self.remediation = list(remediation or [])


class EnvironmentCheckError(InstallerError):
    pass


class ValidationError(InstallerError):
    pass


class MutationError(InstallerError):
    pass


class LauncherConfigError(MutationError):
    pass


class PrivilegeError(InstallerError):
    pass


class LockError(InstallerError):
    def __init__(self, lock_path: str) -> None:
        super().__init__(
            "Another hypr-login installation is already running",
            remediation=[f"If this is incorrect, remove: {lock_path}"],
        )
        self.lock_path = lock_path


class OperatorDeclined(InstallerError):
    exit_code = EXIT_OK


class PartialInstall(InstallerError):
    exit_code = EXIT_PARTIAL


class StagedTestFailed(InstallerError):
    exit_code = EXIT_TEST_FAILED
