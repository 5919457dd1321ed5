from __future__ import annotations

import datetime
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import MutationError
from .lifecycle import LIFECYCLE, TEMP_PREFIX, TEMP_SUFFIX

logger = logging.getLogger(__name__)

BACKUP_MARKER = ".backup."

# Receives the path of the staged temporary copy; raises to abort the install.
Configurator = Callable[[Path], None]


def backup_name(path: Path, now: Optional[datetime.datetime] = None) -> Path:
    stamp = (now or datetime.datetime.now()).strftime("%Y%m%d_%H%M%S_%f")
    return path.with_name(f"{path.name}{BACKUP_MARKER}{stamp}")


def backup_file(path: str | Path, *, dry_run: bool = False) -> Optional[Path]:
    """Timestamped copy next to the original, permissions preserved."""

    p = Path(path)
    if not p.is_file():
        return None
    backup = backup_name(p)
    if dry_run:
        logger.info("Would backup: %s -> %s", p, backup)
        return backup
    try:
        shutil.copy2(p, backup)
    except OSError as e:
        raise MutationError(f"Failed to backup: {p} ({e})") from e
    logger.info("Backup created: %s", backup)
    return backup


def install_file_atomically(
    src: str | Path,
    dest: str | Path,
    mode: int,
    *,
    configure: Optional[Configurator] = None,
    backup: bool = True,
    dry_run: bool = False,
) -> Optional[Path]:
    """Publish `src` at `dest` so that no partial file is ever visible.

    The payload is copied to a private temporary file in the destination's
    directory (same filesystem, created O_EXCL with mode 0600), configured
    there, given its final mode, and renamed over the destination. A
    symlink occupying the destination is removed first. Any failure before
    the rename removes the temporary file and leaves `dest` untouched.

    Returns the backup of the previous version, if one was made.
    """

    s = Path(src)
    d = Path(dest)

    if dry_run:
        logger.info("Would create: %s", d)
        return None

    try:
        d.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise MutationError(f"Failed to create directory: {d.parent} ({e})") from e

    previous = backup_file(d) if backup and not d.is_symlink() else None

    try:
        fd, tmp_name = tempfile.mkstemp(prefix="." + TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=str(d.parent))
    except OSError as e:
        raise MutationError(f"Failed to create temp file in {d.parent} ({e})") from e
    tmp = Path(tmp_name)
    LIFECYCLE.track_temp(tmp)
    try:
        with os.fdopen(fd, "wb") as out, s.open("rb") as inp:
            shutil.copyfileobj(inp, out)
        if configure is not None:
            configure(tmp)
        os.chmod(tmp, mode)
        if d.is_symlink():
            d.unlink()
        os.replace(tmp, d)
    except MutationError:
        tmp.unlink(missing_ok=True)
        raise
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise MutationError(f"Failed to install {d}: {e}") from e
    finally:
        LIFECYCLE.untrack_temp(tmp)

    logger.info("Installed %s (mode %o)", d, mode)
    return previous


def remove_if_exists(path: str | Path, *, dry_run: bool = False) -> bool:
    p = Path(path)
    if not (p.exists() or p.is_symlink()):
        return False
    if dry_run:
        logger.info("Would remove: %s", p)
        return True
    try:
        if p.is_dir() and not p.is_symlink():
            shutil.rmtree(p)
        else:
            p.unlink()
    except OSError as e:
        raise MutationError(f"Failed to remove: {p} ({e})") from e
    logger.info("Removed %s", p)
    return True


def find_backups(artifact: str | Path) -> List[Path]:
    """Backups written for one artifact, oldest first."""

    p = Path(artifact)
    if not p.parent.is_dir():
        return []
    return sorted(
        c for c in p.parent.glob(f"{p.name}{BACKUP_MARKER}*") if c.is_file() and not c.is_symlink()
    )


def sweep_backups(artifacts: List[Path], *, dry_run: bool = False) -> List[Path]:
    swept: List[Path] = []
    for artifact in artifacts:
        for b in find_backups(artifact):
            if dry_run:
                logger.info("Would remove backup: %s", b)
            else:
                b.unlink(missing_ok=True)
            swept.append(b)
    return swept
