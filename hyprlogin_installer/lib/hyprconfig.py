from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)

EXECS_PATTERN = "execs*.conf"
AUTOSTART_LINE = "exec-once = hyprlock"

# exec-once = hyprlock, optionally followed by arguments, ';' or '&'.
# Commented lines (anything before a '#') never match.
_AUTOSTART_RE = re.compile(r"^[^#]*exec-once\s*=\s*hyprlock(\s|;|&|$)")


def find_exec_configs(config_dir: Path) -> List[Path]:
    """Candidate files for the startup directive, recursively under config_dir."""

    if not config_dir.is_dir():
        return []
    return sorted(p for p in config_dir.rglob(EXECS_PATTERN) if p.is_file())


def has_locker_autostart(text: str) -> bool:
    return any(_AUTOSTART_RE.match(line) for line in text.splitlines())


def files_with_locker_autostart(files: Iterable[Path]) -> List[Path]:
    found: List[Path] = []
    for f in files:
        try:
            text = f.read_text(encoding="utf-8", errors="ignore")
        except OSError as e:
            logger.warning("Cannot read %s: %s", f, e)
            continue
        if has_locker_autostart(text):
            found.append(f)
    return found
