from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

_FILE_URI = "file://"
_LEADING_SLASHES = re.compile(r"^/{2,}")


def normalize_path(
    path: str | Path,
    *,
    home: Optional[str] = None,
    cwd: Optional[str] = None,
) -> str:
    """Resolve a user-supplied or discovered path to canonical absolute form.

    Handles `file://` prefixes (file pickers, drag-drop), `~` and a literal
    `$HOME`, relative paths, repeated slashes, `..` and trailing slashes.
    Symlinks are resolved the way `readlink -m` does, so components need
    not exist. normalize_path(normalize_path(p)) == normalize_path(p).
    """

    home = home if home is not None else os.path.expanduser("~")
    p = str(path)

    if p.startswith(_FILE_URI):
        p = p[len(_FILE_URI):]

    if p == "~":
        p = home
    elif p.startswith("~/"):
        p = home + "/" + p[2:]

    p = p.replace("$HOME", home)

    if not p.startswith("/"):
        p = (cwd if cwd is not None else os.getcwd()) + "/" + p

    p = _LEADING_SLASHES.sub("/", p)
    p = os.path.realpath(p)

    if p != "/":
        p = p.rstrip("/")
    return p


def relative_to_home(path: str | Path, *, home: Optional[str] = None) -> str:
    """Render a path as ~/... when it lives under the home directory."""

    home = home if home is not None else os.path.expanduser("~")
    p = Path(path)
    try:
        return "~/" + str(p.relative_to(home))
    except ValueError:
        return str(p)
