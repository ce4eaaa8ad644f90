"""Enrollment wizard: adds one MFA method to the account.

Steps run ``choose -> setup -> verify -> complete``, with an extra
``backup`` step between ``verify`` and ``complete`` for TOTP, where the
user must keep the freshly issued backup codes before finishing.

Every transition is all-or-nothing. A failed remote call leaves the wizard
on the step it started from with the error stored on the session.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

from .backup_codes import DEFAULT_TITLE, render_backup_codes, write_backup_codes
from .codes import format_otp_input, validate_otp, validate_phone_number
from .exceptions import InvalidTransitionError, MFAFlowError, OperationInProgressError
from .methods import MFAMethod
from .models import TOTPSetupResponse
from .ports import CacheInvalidator, LoggingNotifier, Notifier, NullCacheInvalidator, Verifier
from .sessions import EnrollmentSession, EnrollmentStep

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_COMPLETE_DELAY = 2.0


class EnrollmentWizard:
    """State machine driving a user through enrolling one MFA method."""

    def __init__(
        self,
        verifier: Verifier,
        *,
        notifier: Notifier | None = None,
        cache: CacheInvalidator | None = None,
        on_success: Callable[[MFAMethod], None] | None = None,
        on_close: Callable[[], None] | None = None,
        complete_delay: float = DEFAULT_COMPLETE_DELAY,
        backup_codes_title: str = DEFAULT_TITLE,
    ) -> None:
        """Initialize the wizard.

        Args:
            verifier: Remote MFA operations
            notifier: Receives user notices
            cache: Invalidated once a method is enrolled
            on_success: Called with the enrolled method
            on_close: Called whenever the wizard closes
            complete_delay: Seconds the completion step stays visible
            backup_codes_title: Heading of the backup-code download

        """
        self._verifier = verifier
        self._notifier = notifier or LoggingNotifier(logger)
        self._cache = cache or NullCacheInvalidator()
        self._on_success = on_success
        self._on_close = on_close
        self._complete_delay = complete_delay
        self._backup_codes_title = backup_codes_title

        self.session = EnrollmentSession()
        self.is_open = False
        self._generation = 0
        self._close_handle: asyncio.TimerHandle | None = None

    @property
    def step(self) -> EnrollmentStep:
        return self.session.step

    @property
    def setup_data(self) -> TOTPSetupResponse | None:
        """TOTP secret and QR payload while the verify step is showing."""
        secret = self.session.pending_secret
        return secret if isinstance(secret, TOTPSetupResponse) else None

    @property
    def backup_codes(self) -> list[str]:
        return list(self.session.backup_codes_issued)

    @property
    def can_confirm_saved(self) -> bool:
        return (
            self.session.step is EnrollmentStep.BACKUP
            and self.session.backup_codes_saved
        )

    def open(self) -> None:
        """Show the wizard with a fresh session."""
        self._reset()
        self.is_open = True

    def close(self) -> None:
        """Hide the wizard and discard the session.

        Nothing is committed: an enrollment that was not verified stays
        unenrolled.
        """
        was_open = self.is_open
        self._reset()
        self.is_open = False
        if was_open and self._on_close is not None:
            self._on_close()

    cancel = close

    def select_method(self, method: MFAMethod) -> None:
        """Pick the method to enroll and move to its setup step."""
        self._require(EnrollmentStep.CHOOSE)
        self.session.selected_method = MFAMethod(method)
        self.session.error = None
        self.session.step = EnrollmentStep.SETUP
        logger.debug("enrollment: choose -> setup (%s)", method)

    def set_phone_number(self, phone_number: str) -> None:
        self.session.phone_number = phone_number

    async def start_setup(self) -> bool:
        """Request setup material for the selected method.

        Returns:
            True when the wizard advanced to the verify step.

        """
        self._require(EnrollmentStep.SETUP)
        method = self._method()
        self.session.error = None

        phone_number: str | None = None
        if method is MFAMethod.SMS:
            try:
                phone_number = validate_phone_number(self.session.phone_number)
            except MFAFlowError as e:
                self.session.error = e
                return False

        result = await self._call(lambda: self._verifier.setup(method, phone_number))
        if result is None:
            return False

        self.session.pending_secret = result
        if isinstance(result, TOTPSetupResponse):
            self.session.backup_codes_issued = list(result.backup_codes)
        self.session.code = ""
        self.session.step = EnrollmentStep.VERIFY
        logger.debug("enrollment: setup -> verify (%s)", method.value)

        if method is MFAMethod.SMS:
            self._notifier.notify(
                "SMS sent", "A verification code has been sent to your phone number."
            )
        elif method is MFAMethod.EMAIL:
            self._notifier.notify(
                "Email sent",
                "A verification code has been sent to your email address.",
            )
        return True

    def enter_code(self, value: str) -> str:
        """Store typed input, keeping at most six digits."""
        self.session.code = format_otp_input(value)
        return self.session.code

    async def submit_code(self, code: str | None = None) -> bool:
        """Verify the entered code.

        Args:
            code: Code to submit; defaults to the entered code

        Returns:
            True when the wizard advanced past the verify step.

        """
        self._require(EnrollmentStep.VERIFY)
        method = self._method()
        if code is not None:
            self.session.code = code.strip()

        try:
            submitted = validate_otp(self.session.code)
        except MFAFlowError as e:
            self.session.error = e
            return False

        result = await self._call(lambda: self._verifier.verify_setup(method, submitted))
        if result is None:
            # The code stays in the field for a quick correction.
            return False

        self.session.pending_secret = None
        self.session.code = ""
        if method.issues_backup_codes and self.session.backup_codes_issued:
            self.session.step = EnrollmentStep.BACKUP
            logger.debug("enrollment: verify -> backup")
            self._notifier.notify(
                "MFA Enabled", "Two-factor authentication has been successfully enabled."
            )
        else:
            await self._complete()
        return True

    def copy_backup_codes(self) -> str:
        """Return the codes as clipboard text and mark them as kept."""
        self._require(EnrollmentStep.BACKUP)
        self.session.backup_codes_saved = True
        self._notifier.notify(
            "Backup codes copied", "The backup codes have been copied to your clipboard."
        )
        return "\n".join(self.session.backup_codes_issued)

    def download_backup_codes(self, path: str | Path | None = None) -> str:
        """Return the download payload, writing it to ``path`` when given."""
        self._require(EnrollmentStep.BACKUP)
        codes = self.session.backup_codes_issued
        if path is not None:
            write_backup_codes(path, codes, title=self._backup_codes_title)
        text = render_backup_codes(codes, title=self._backup_codes_title)
        self.session.backup_codes_saved = True
        self._notifier.notify(
            "Backup codes downloaded", "The backup codes have been saved to your device."
        )
        return text

    async def confirm_saved(self) -> None:
        """Finish after the user kept the backup codes.

        Raises:
            InvalidTransitionError: If the codes were neither copied nor
                downloaded.

        """
        self._require(EnrollmentStep.BACKUP)
        if not self.session.backup_codes_saved:
            msg = "Copy or download your backup codes before continuing"
            raise InvalidTransitionError(msg)
        await self._complete()

    def back(self) -> None:
        """Return to method selection, dropping any setup material."""
        if self.session.step not in (EnrollmentStep.SETUP, EnrollmentStep.VERIFY):
            msg = f"Cannot go back from step {self.session.step.value!r}"
            raise InvalidTransitionError(msg)
        if self.session.pending:
            raise OperationInProgressError()
        self.session.discard_setup()
        self.session.error = None
        self.session.step = EnrollmentStep.CHOOSE
        logger.debug("enrollment: back -> choose")

    async def _complete(self) -> None:
        method = self._method()
        self.session.backup_codes_issued = []
        self.session.step = EnrollmentStep.COMPLETE
        logger.info("enrollment of %s completed", method.value)

        try:
            await self._cache.invalidate()
        except MFAFlowError:
            logger.warning("could not refresh MFA status after enrollment", exc_info=True)

        self._notifier.notify(
            "MFA Method Added",
            f"{method.display_name} authentication has been successfully enabled.",
        )
        if self._on_success is not None:
            self._on_success(method)

        loop = asyncio.get_running_loop()
        self._close_handle = loop.call_later(self._complete_delay, self.close)

    async def _call(self, request: Callable[[], Awaitable[T]]) -> T | None:
        """Run one remote call, recording its failure on the session.

        A response that arrives after the session was discarded is dropped.
        """
        if self.session.pending:
            raise OperationInProgressError()
        generation = self._generation
        self.session.pending = True
        self.session.error = None
        try:
            result = await request()
        except MFAFlowError as e:
            logger.info("enrollment request failed: %s", e.code)
            if generation == self._generation:
                self.session.error = e
            return None
        finally:
            if generation == self._generation:
                self.session.pending = False
        if generation != self._generation:
            logger.debug("enrollment: dropping response for a discarded session")
            return None
        return result

    def _reset(self) -> None:
        if self._close_handle is not None:
            self._close_handle.cancel()
            self._close_handle = None
        self._generation += 1
        self.session.reset()

    def _require(self, step: EnrollmentStep) -> None:
        if not self.is_open:
            msg = "The enrollment wizard is not open"
            raise InvalidTransitionError(msg)
        if self.session.step is not step:
            msg = f"Expected step {step.value!r}, wizard is at {self.session.step.value!r}"
            raise InvalidTransitionError(msg)

    def _method(self) -> MFAMethod:
        method = self.session.selected_method
        if method is None:
            msg = "No MFA method selected"
            raise InvalidTransitionError(msg)
        return method
