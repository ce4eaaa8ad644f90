"""MFA method identifiers.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

from enum import Enum
from collections.abc import Sequence
from typing import NoReturn


class MFAMethod(str, Enum):
    """An enrollable second factor."""

    TOTP = "totp"
    SMS = "sms"
    EMAIL = "email"

    @property
    def display_name(self) -> str:
        """Human-readable label for method pickers."""
        if self is MFAMethod.TOTP:
            return "Authenticator App"
        if self is MFAMethod.SMS:
            return "SMS"
        if self is MFAMethod.EMAIL:
            return "Email"
        assert_never(self)

    @property
    def dispatches_code(self) -> bool:
        """Whether a code must be sent before one can be entered."""
        if self is MFAMethod.TOTP:
            return False
        if self is MFAMethod.SMS or self is MFAMethod.EMAIL:
            return True
        assert_never(self)

    @property
    def issues_backup_codes(self) -> bool:
        """Whether enrolling this method hands out a backup-code batch."""
        return self is MFAMethod.TOTP


def default_method(
    available: Sequence[MFAMethod], preferred: MFAMethod | None = None
) -> MFAMethod | None:
    """Preferred method when it is enrolled, else the first enrolled one."""
    if preferred is not None and preferred in available:
        return preferred
    return available[0] if available else None


def assert_never(value: object) -> NoReturn:
    msg = f"Unhandled MFA method: {value!r}"
    raise AssertionError(msg)
