"""Collaborator protocols for the MFA state machines.

The wizard and dialog only ever talk to these interfaces. ``MFAService``
implements :class:`Verifier` over HTTP and ``InMemoryCredentialStore``
implements it locally.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol, runtime_checkable

from .methods import MFAMethod
from .models import (
    BackupCodesResponse,
    BackupCodeVerifyResult,
    ChallengeResponse,
    DisableResponse,
    MFAStatus,
    SetupAcknowledgement,
    TOTPSetupResponse,
    VerifyResult,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class Verifier(Protocol):
    """Remote operations owned by the credential store's service.

    Every method raises an ``MFAFlowError`` subclass on failure:
    ``SetupFailed``, ``VerificationFailed``, ``DisableFailed`` or
    ``RegenerationFailed`` for rejections and ``TransportError`` when the
    service could not be reached.
    """

    async def get_status(self) -> MFAStatus:
        """Return the current enrollment record."""
        ...

    async def setup(
        self, method: MFAMethod, phone_number: str | None = None
    ) -> TOTPSetupResponse | SetupAcknowledgement:
        """Begin enrollment for ``method``.

        TOTP returns secret material and a fresh backup-code batch; SMS and
        email dispatch a code and return an acknowledgement.
        """
        ...

    async def verify_setup(self, method: MFAMethod, code: str) -> VerifyResult:
        """Confirm a pending enrollment with the code the user received."""
        ...

    async def verify(self, method: MFAMethod, code: str) -> VerifyResult:
        """Check a code against the live challenge for an enrolled method."""
        ...

    async def verify_backup_code(self, code: str) -> BackupCodeVerifyResult:
        """Check and consume one backup code."""
        ...

    async def send_challenge(self, method: MFAMethod) -> ChallengeResponse:
        """Dispatch a fresh code for an SMS or email method."""
        ...

    async def disable(self, password: str, token: str) -> DisableResponse:
        """Turn MFA off; needs the password and a freshly verified code."""
        ...

    async def regenerate_backup_codes(self, password: str) -> BackupCodesResponse:
        """Invalidate all backup codes and issue a new batch."""
        ...


class NoticeLevel(str, Enum):
    """Severity of a user notice."""

    INFO = "info"
    WARNING = "warning"


class Notifier(Protocol):
    """Shows short, transient notices to the user."""

    def notify(
        self, title: str, description: str, level: NoticeLevel = NoticeLevel.INFO
    ) -> None: ...


class CacheInvalidator(Protocol):
    """Drops any cached copy of the enrollment record."""

    async def invalidate(self) -> None: ...


class LoggingNotifier:
    """Notifier that writes notices to a logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def notify(
        self, title: str, description: str, level: NoticeLevel = NoticeLevel.INFO
    ) -> None:
        log_level = logging.WARNING if level is NoticeLevel.WARNING else logging.INFO
        self._log.log(log_level, "%s: %s", title, description)


class NullCacheInvalidator:
    """Cache invalidator for hosts that keep no cache."""

    async def invalidate(self) -> None:
        return None
