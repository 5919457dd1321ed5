from __future__ import annotations

import datetime
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Callable, Dict, Optional

from .errors import MutationError
from .models import AUTO, InstallRecord, SessionMethod

logger = logging.getLogger(__name__)

KNOWN_GPU_TYPES = ("nvidia", "amd", "intel", AUTO)
DRM_PATH_PATTERN = re.compile(r"^/run/udev/data/\+drm:card[0-9]+-[A-Za-z0-9_-]+$")

KEY_SESSION = "SESSION_METHOD"
KEY_GPU = "GPU_TYPE"
KEY_DRM = "DRM_PATH"


def valid_session_method(value: str) -> Optional[SessionMethod]:
    for m in SessionMethod:
        if value == m.value:
            return m
    return None


def valid_gpu_type(value: str) -> Optional[str]:
    return value if value in KNOWN_GPU_TYPES else None


def valid_display_path(value: str) -> Optional[str]:
    if value == AUTO or DRM_PATH_PATTERN.match(value):
        return value
    return None


# One validator per key; a key that fails is treated as absent.
_VALIDATORS: Dict[str, Callable[[str], object]] = {
    KEY_SESSION: valid_session_method,
    KEY_GPU: valid_gpu_type,
    KEY_DRM: valid_display_path,
}


def _first_values(text: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if not sep or key not in _VALIDATORS or key in values:
            continue
        values[key] = value.strip()
    return values


def load_record(path: str | Path) -> Optional[InstallRecord]:
    """Load the persisted record field by field.

    Never evaluates or generically deserializes the file: each of the three
    known keys is extracted and checked against its allow-list. Returns None
    when the file is missing, unreadable, empty or has no valid field.
    """

    p = Path(path)
    if not p.is_file():
        return None
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Config file not readable: %s (%s)", p, e)
        return None
    if not text.strip():
        logger.warning("Config file is empty: %s", p)
        return None

    raw = _first_values(text)
    parsed: Dict[str, object] = {}
    for key, validate in _VALIDATORS.items():
        value = raw.get(key)
        if value is None:
            continue
        result = validate(value)
        if result is None:
            logger.warning("Invalid %s in config: %r", key, value)
            continue
        parsed[key] = result

    record = InstallRecord(
        session_method=parsed.get(KEY_SESSION),  # type: ignore[arg-type]
        gpu_type=parsed.get(KEY_GPU),  # type: ignore[arg-type]
        display_path=parsed.get(KEY_DRM),  # type: ignore[arg-type]
    )
    if record.loaded_fields == 0:
        return None
    if not record.complete:
        logger.warning(
            "Config incomplete (%s/3 values) - will re-detect missing settings",
            record.loaded_fields,
        )
    return record


def render_record(record: InstallRecord) -> str:
    if not record.complete or record.session_method is None:
        raise ValueError("Refusing to persist an incomplete install record")
    return "\n".join(
        [
            "# hypr-login installation configuration",
            f"# Generated: {datetime.datetime.now().astimezone().isoformat(timespec='seconds')}",
            f"{KEY_SESSION}={record.session_method.value}",
            f"{KEY_GPU}={record.gpu_type}",
            f"{KEY_DRM}={record.display_path}",
            "",
        ]
    )


def save_record(path: str | Path, record: InstallRecord, *, dry_run: bool = False) -> None:
    """Write the record with owner-only permissions via temp-then-rename."""

    p = Path(path)
    for key, value in (
        (KEY_SESSION, record.session_method.value if record.session_method else ""),
        (KEY_GPU, record.gpu_type or ""),
        (KEY_DRM, record.display_path or ""),
    ):
        if _VALIDATORS[key](value) is None:
            raise ValueError(f"Invalid {key} for install record: {value!r}")

    if dry_run:
        logger.info("Would save config to %s", p)
        return

    contents = render_record(record)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".install-", suffix=".tmp", dir=str(p.parent))
    except OSError as e:
        raise MutationError(f"Failed to create config directory: {p.parent} ({e})") from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(contents)
        os.chmod(tmp, 0o600)
        os.replace(tmp, p)
    except OSError as e:
        Path(tmp).unlink(missing_ok=True)
        raise MutationError(f"Failed to write config file {p}: {e}") from e

    logger.info("Saved installation config to %s", p)


def delete_record(path: str | Path, *, dry_run: bool = False) -> bool:
    p = Path(path)
    if not p.exists():
        return False
    if dry_run:
        logger.info("Would remove %s", p)
        return True
    p.unlink()
    logger.info("Removed installation config %s", p)
    return True
