"""Client-side code and phone number validation.

Everything here runs before a request is made: a value rejected by these
helpers never reaches the credential store.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import re

from .exceptions import ValidationError

OTP_LENGTH = 6
BACKUP_CODE_LENGTH = 12
BACKUP_CODE_GROUP = 4
BACKUP_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
LOW_BACKUP_CODES_THRESHOLD = 3
MIN_PHONE_DIGITS = 10

_BACKUP_SHAPE = re.compile(r"[a-zA-Z-]")
_NON_DIGIT = re.compile(r"\D")
_NON_BASE32 = re.compile(r"[^A-Z2-7]")
_SEPARATORS = re.compile(r"[\s-]")
_PHONE_NOISE = re.compile(r"[^\d+]")
_E164 = re.compile(r"^\+[1-9]\d{6,14}$")


def looks_like_backup_code(value: str) -> bool:
    """Letters or hyphens in the input mean the user is typing a backup code."""
    return bool(_BACKUP_SHAPE.search(value))


def format_otp_input(value: str) -> str:
    """Keep digits only, truncated to the OTP length."""
    return _NON_DIGIT.sub("", value)[:OTP_LENGTH]


def format_backup_code_input(value: str) -> str:
    """Normalize typed backup-code text into ``XXXX-XXXX-XXXX`` groups."""
    clean = _NON_BASE32.sub("", value.upper())[:BACKUP_CODE_LENGTH]
    return "-".join(
        clean[i : i + BACKUP_CODE_GROUP]
        for i in range(0, len(clean), BACKUP_CODE_GROUP)
    )


def strip_backup_code(value: str) -> str:
    return _SEPARATORS.sub("", value).upper()


def validate_otp(code: str) -> str:
    """Return the code if it is exactly six digits.

    Raises:
        ValidationError: If the code has the wrong length or charset.

    """
    code = code.strip()
    if not code:
        raise ValidationError("Please enter a verification code")
    if len(code) != OTP_LENGTH or not code.isdigit():
        raise ValidationError("Verification code must be 6 digits")
    return code


def validate_backup_code(code: str) -> str:
    """Return the code if it holds exactly twelve base32 characters.

    Raises:
        ValidationError: If the code is malformed.

    """
    code = code.strip()
    if not code:
        raise ValidationError("Please enter a verification code")
    stripped = strip_backup_code(code)
    if len(stripped) != BACKUP_CODE_LENGTH or _NON_BASE32.search(stripped):
        raise ValidationError(
            "Backup codes must be 12 characters (format: XXXX-XXXX-XXXX)"
        )
    return code


def normalize_phone_number(phone_number: str) -> str:
    """Drop spacing and punctuation, keeping digits and a leading ``+``."""
    return _PHONE_NOISE.sub("", phone_number.strip())


def validate_phone_number(phone_number: str) -> str:
    """Return the E.164 form of a phone number that carries a country code.

    Raises:
        ValidationError: If the number is too short or lacks a country code.

    """
    normalized = normalize_phone_number(phone_number)
    digits = normalized.lstrip("+")
    if len(digits) < MIN_PHONE_DIGITS or not digits.isdigit():
        raise ValidationError("Please enter a valid phone number")
    if not normalized.startswith("+") or not _E164.match(normalized):
        raise ValidationError(
            "Please include your country code (e.g. +44 for UK)"
        )
    return normalized


def mistyped_otp_hint(value: str) -> str | None:
    """Hint for six letters typed where an authenticator code was expected."""
    stripped = strip_backup_code(value)
    if len(stripped) == OTP_LENGTH and stripped.isalpha():
        return (
            "Authenticator codes contain digits only. "
            "This input is being treated as a backup code."
        )
    return None
