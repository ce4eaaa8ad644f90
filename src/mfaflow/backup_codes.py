"""Backup-code export.

Backup codes are shown exactly once, when they are issued. The text built
here is the copy/download payload and the user's only way to keep them.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "MFA Backup Codes"
DEFAULT_FILENAME = "backup-codes.txt"


def render_backup_codes(
    codes: Sequence[str],
    generated_at: datetime | None = None,
    title: str = DEFAULT_TITLE,
) -> str:
    """Build the plain-text export for a batch of backup codes."""
    generated_at = generated_at or datetime.now(timezone.utc)
    lines = [
        title,
        "",
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
        "",
        *codes,
        "",
        "Keep these codes safe and secure. Each code can be used once.",
    ]
    return "\n".join(lines) + "\n"


def write_backup_codes(
    path: str | Path,
    codes: Sequence[str],
    generated_at: datetime | None = None,
    title: str = DEFAULT_TITLE,
) -> Path:
    """Write the export to ``path`` and return it.

    A directory path receives ``backup-codes.txt``.
    """
    target = Path(path)
    if target.is_dir():
        target = target / DEFAULT_FILENAME
    target.write_text(render_backup_codes(codes, generated_at, title), encoding="utf-8")
    logger.info("wrote %d backup codes to %s", len(codes), target)
    return target
