from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Mapping, Optional

from .command import run_cmd

logger = logging.getLogger(__name__)

FALLBACK_EDITORS = ("nano", "vim", "nvim", "vi")


def find_editor(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """$EDITOR if it resolves to an executable, else the first common editor."""

    env = os.environ if environ is None else environ
    preferred = env.get("EDITOR") or ""
    if preferred and shutil.which(preferred):
        return preferred
    for candidate in FALLBACK_EDITORS:
        if shutil.which(candidate):
            return candidate
    return None


def open_in_editor(editor: str, path: Path) -> bool:
    r = run_cmd([editor, str(path)], check=False, interactive=True)
    if not r.ok:
        logger.warning("Editor exited with status %s", r.returncode)
    return r.ok


def tail_lines(path: Path, count: int = 50) -> Optional[list[str]]:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return text.splitlines()[-count:]
