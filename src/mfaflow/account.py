"""Account-level MFA settings: status, disable and backup-code regeneration.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import NamedTuple

from .backup_codes import DEFAULT_TITLE, render_backup_codes
from .enrollment import EnrollmentWizard
from .exceptions import DisableFailed, InvalidTransitionError, ValidationError
from .models import MFAStatus
from .ports import LoggingNotifier, Notifier, NoticeLevel, Verifier
from .verification import VerificationDialog

logger = logging.getLogger(__name__)


class RegeneratedBackupCodes(NamedTuple):
    """A new backup-code batch and its download payload."""

    codes: list[str]
    export: str


class MFAAccount:
    """MFA settings of the signed-in user.

    Holds the cached enrollment record and acts as the cache invalidator
    for the wizards and dialogs it creates.
    """

    def __init__(
        self,
        verifier: Verifier,
        *,
        notifier: Notifier | None = None,
        backup_codes_title: str = DEFAULT_TITLE,
    ) -> None:
        self._verifier = verifier
        self._notifier = notifier or LoggingNotifier(logger)
        self._backup_codes_title = backup_codes_title
        self._status: MFAStatus | None = None

    @property
    def cached_status(self) -> MFAStatus | None:
        return self._status

    async def status(self, *, refresh: bool = False) -> MFAStatus:
        """Return the enrollment record, fetching it when not cached."""
        if self._status is None or refresh:
            self._status = await self._verifier.get_status()
            logger.debug(
                "MFA status: enabled=%s methods=%s backup_codes=%d",
                self._status.enabled,
                [m.value for m in self._status.available_methods],
                self._status.backup_codes_count,
            )
        return self._status

    async def invalidate(self) -> None:
        """Forget the cached record so the next read refetches it."""
        self._status = None

    def enrollment_wizard(
        self,
        *,
        on_close: Callable[[], None] | None = None,
        complete_delay: float | None = None,
    ) -> EnrollmentWizard:
        """Build a wizard that refreshes this account's status on success."""
        kwargs = {} if complete_delay is None else {"complete_delay": complete_delay}
        return EnrollmentWizard(
            self._verifier,
            notifier=self._notifier,
            cache=self,
            on_close=on_close,
            backup_codes_title=self._backup_codes_title,
            **kwargs,
        )

    async def verification_dialog(
        self,
        *,
        on_success: Callable[[str], None] | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> VerificationDialog:
        """Build a dialog over the currently enrolled methods.

        Raises:
            InvalidTransitionError: If MFA is not enabled.

        """
        status = await self.status()
        if not status.enabled:
            msg = "MFA is not enabled for this account"
            raise InvalidTransitionError(msg)
        return VerificationDialog(
            self._verifier,
            status.available_methods,
            status.preferred_method,
            notifier=self._notifier,
            on_success=on_success,
            on_close=on_close,
        )

    async def disable(self, password: str, token: str) -> None:
        """Turn MFA off.

        Args:
            password: The account password
            token: Code just verified through a :class:`VerificationDialog`

        Raises:
            ValidationError: If the password or token is missing.
            DisableFailed: If the service rejects the request.

        """
        if not password:
            raise ValidationError("Password is required")
        if not token:
            raise ValidationError("A verification code is required")
        try:
            await self._verifier.disable(password, token)
        finally:
            # A rejected or interrupted request may still have changed state.
            await self.invalidate()
        logger.info("MFA disabled")
        self._notifier.notify(
            "MFA Disabled", "Two-factor authentication has been disabled for your account."
        )

    async def disable_with_dialog(
        self, password: str, dialog: VerificationDialog
    ) -> bool:
        """Submit the dialog and use the verified code as the disable proof.

        Returns:
            True when MFA was disabled. False when the code was rejected,
            in which case the error is on ``dialog.session``.

        """
        outcome = await dialog.submit()
        if outcome is None:
            return False
        try:
            await self.disable(password, outcome.code)
        except DisableFailed:
            logger.info("disable rejected after a successful verification")
            raise
        return True

    async def regenerate_backup_codes(self, password: str) -> RegeneratedBackupCodes:
        """Replace all backup codes with a new batch.

        The returned export is the only copy of the new codes.

        Raises:
            ValidationError: If the password is missing.
            RegenerationFailed: If the service rejects the request.

        """
        if not password:
            raise ValidationError("Password is required")
        response = await self._verifier.regenerate_backup_codes(password)
        await self.invalidate()
        export = render_backup_codes(
            response.backup_codes,
            datetime.now(timezone.utc),
            self._backup_codes_title,
        )
        self._notifier.notify(
            "New backup codes generated",
            "Your new backup codes are ready. The old codes are no longer valid.",
        )
        return RegeneratedBackupCodes(list(response.backup_codes), export)

    async def low_backup_codes(self) -> bool:
        """Whether the account is close to running out of backup codes."""
        status = await self.status()
        if status.low_backup_codes:
            self._notifier.notify(
                "Low on backup codes",
                "You're running low on backup codes. Consider generating new ones.",
                NoticeLevel.WARNING,
            )
        return status.low_backup_codes
