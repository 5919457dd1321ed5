from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
RUN_HEADER = "==== hypr-login-installer run ===="

_CONFIGURED_ATTR = "_hyprlogin_log_path"


def fallback_log_path(fallback_dir: Optional[str] = None) -> Path:
    base = Path(fallback_dir or tempfile.gettempdir())
    return base / f"hypr-login-install-{os.getuid()}.log"


def _open_private(path: Path) -> logging.FileHandler:
    """Append-mode handler on a file only the owner can read.

    The log names the autologin account and records every operator choice.
    """

    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    os.close(os.open(path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600))
    os.chmod(path, 0o600)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def configure_logging(
    log_path: str,
    *,
    fallback_dir: Optional[str] = None,
    level: int = logging.INFO,
    console_level: int = logging.WARNING,
) -> str:
    """Send the whole run to a private log file; only warnings reach stderr.

    If the requested file cannot be opened (read-only state dir, a
    directory in the way) a per-user file in the temp dir is used instead.
    Calling it again keeps the first configuration. Returns the file in use.
    """

    root = logging.getLogger()
    configured = getattr(root, _CONFIGURED_ATTR, None)
    if configured is not None:
        return configured

    chosen = Path(log_path)
    failure: Optional[OSError] = None
    try:
        file_handler = _open_private(chosen)
    except OSError as e:
        failure = e
        chosen = fallback_log_path(fallback_dir)
        file_handler = _open_private(chosen)

    file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    console.setLevel(console_level)

    root.setLevel(level)
    root.addHandler(file_handler)
    root.addHandler(console)
    setattr(root, _CONFIGURED_ATTR, str(chosen))

    log = logging.getLogger(__name__)
    log.info("%s log=%s", RUN_HEADER, chosen)
    if failure is not None:
        log.warning("Cannot log to %s (%s); using %s", log_path, failure, chosen)
    return str(chosen)
