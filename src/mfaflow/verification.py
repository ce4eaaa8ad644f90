"""Verification dialog: proves possession of an enrolled factor.

Used for the login MFA challenge and as the step-up proof before disabling
MFA. The dialog has one state with two input modes. In normal mode the
user types the six-digit code of the selected method. In backup-code mode
the input is a ``XXXX-XXXX-XXXX`` recovery code, and it is always checked
against the shared backup-code operation whichever method tab is selected.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import NamedTuple

from .codes import (
    format_backup_code_input,
    format_otp_input,
    looks_like_backup_code,
    mistyped_otp_hint,
    validate_backup_code,
    validate_otp,
)
from .exceptions import InvalidTransitionError, MFAFlowError, OperationInProgressError
from .methods import MFAMethod
from .methods import default_method as pick_default_method
from .ports import LoggingNotifier, Notifier, NoticeLevel, Verifier
from .sessions import VerificationSession

logger = logging.getLogger(__name__)


class VerificationOutcome(NamedTuple):
    """Result handed back to the caller after a successful check."""

    code: str
    method: MFAMethod | None
    used_backup_code: bool = False
    remaining_backup_codes: int | None = None
    low_backup_codes: bool = False


class VerificationDialog:
    """State machine for answering an MFA challenge."""

    def __init__(
        self,
        verifier: Verifier,
        available_methods: Iterable[MFAMethod] = (),
        preferred_method: MFAMethod | None = None,
        *,
        notifier: Notifier | None = None,
        on_success: Callable[[str], None] | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the dialog.

        Args:
            verifier: Remote MFA operations
            available_methods: Methods enrolled on the account
            preferred_method: Method selected by default
            notifier: Receives user notices
            on_success: Called with the verified code
            on_close: Called whenever the dialog closes

        """
        self._verifier = verifier
        self._notifier = notifier or LoggingNotifier(logger)
        self._on_success = on_success
        self._on_close = on_close
        self._methods = _dedupe(available_methods)
        self._preferred = _member(preferred_method, self._methods)

        self.session = VerificationSession()
        self.is_open = False
        self._explicit_backup_mode = False
        self._generation = 0

    @property
    def available_methods(self) -> list[MFAMethod]:
        return list(self._methods)

    @property
    def default_method(self) -> MFAMethod | None:
        return pick_default_method(self._methods, self._preferred)

    @property
    def selected_method(self) -> MFAMethod | None:
        return self.session.selected_method

    @property
    def is_backup_code_mode(self) -> bool:
        return self.session.is_backup_code_mode

    @property
    def code(self) -> str:
        return self.session.code

    @property
    def can_send_code(self) -> bool:
        method = self.session.selected_method
        return (
            method is not None
            and method.dispatches_code
            and not self.session.is_backup_code_mode
            and not self.session.pending
        )

    @property
    def hint(self) -> str | None:
        """Warning shown when six letters were probably meant as a TOTP code."""
        if not self.session.is_backup_code_mode or self._explicit_backup_mode:
            return None
        return mistyped_otp_hint(self.session.code)

    def open(
        self,
        available_methods: Iterable[MFAMethod] | None = None,
        preferred_method: MFAMethod | None = None,
    ) -> None:
        """Show the dialog with a fresh session.

        Raises:
            ValueError: If no methods are available.

        """
        if available_methods is not None:
            self._methods = _dedupe(available_methods)
            self._preferred = _member(preferred_method, self._methods)
        if not self._methods:
            msg = "available_methods must not be empty"
            raise ValueError(msg)
        self._reset()
        self.is_open = True

    def set_available_methods(
        self,
        available_methods: Iterable[MFAMethod],
        preferred_method: MFAMethod | None = None,
    ) -> None:
        """Replace the enrolled methods; any change resets the session."""
        methods = _dedupe(available_methods)
        preferred = _member(preferred_method, methods)
        if methods == self._methods and preferred == self._preferred:
            return
        if not methods:
            msg = "available_methods must not be empty"
            raise ValueError(msg)
        self._methods = methods
        self._preferred = preferred
        self._reset()

    def close(self) -> None:
        """Hide the dialog and discard the session without side effects."""
        was_open = self.is_open
        self._reset()
        self.is_open = False
        if was_open and self._on_close is not None:
            self._on_close()

    cancel = close

    def select_method(self, method: MFAMethod) -> None:
        """Switch method tabs. The typed code is kept."""
        self._require_open()
        method = MFAMethod(method)
        if method not in self._methods:
            msg = f"{method.value!r} is not enabled for this account"
            raise InvalidTransitionError(msg)
        self.session.selected_method = method
        self.session.error = None

    def set_backup_code_mode(self, enabled: bool) -> None:
        """Explicitly switch between method codes and backup codes."""
        self._require_open()
        self._explicit_backup_mode = enabled
        self.session.is_backup_code_mode = enabled
        self.session.code = ""
        self.session.error = None

    def enter_code(self, value: str) -> str:
        """Store typed input, detecting backup codes from its shape.

        Letters or hyphens switch to backup-code mode and the text is
        formatted as ``XXXX-XXXX-XXXX``. Otherwise at most six digits are
        kept.
        """
        self._require_open()
        backup = looks_like_backup_code(value) or self._explicit_backup_mode
        self.session.is_backup_code_mode = backup
        if backup:
            self.session.code = format_backup_code_input(value)
        else:
            self.session.code = format_otp_input(value)
        return self.session.code

    async def send_code(self) -> bool:
        """Ask the service to send a code for the selected SMS/email method.

        Never called implicitly: opening the dialog sends nothing.

        Returns:
            True when the code was sent.

        """
        self._require_open()
        method = self.session.selected_method
        if method is None or not method.dispatches_code:
            msg = "Only SMS and email codes can be sent"
            raise InvalidTransitionError(msg)
        if self.session.is_backup_code_mode:
            msg = "No code is sent while entering a backup code"
            raise InvalidTransitionError(msg)

        generation = self._begin()
        try:
            await self._verifier.send_challenge(method)
        except MFAFlowError as e:
            logger.info("sending %s code failed: %s", method.value, e.code)
            self._fail(generation, e)
            return False
        finally:
            self._settle(generation)
        if not self._is_current(generation):
            return False

        self.session.codes_sent.add(method)
        if method is MFAMethod.SMS:
            self._notifier.notify(
                "SMS code sent", "Please check your phone for the verification code."
            )
        else:
            self._notifier.notify(
                "Email code sent", "Please check your email for the verification code."
            )
        return True

    async def submit(self, code: str | None = None) -> VerificationOutcome | None:
        """Verify the entered code.

        Args:
            code: Text to submit as-is instead of the entered code. Its shape
                still decides between normal and backup-code mode.

        Returns:
            The outcome on success, None when the code was rejected or
            malformed. On failure the dialog stays open with the code and
            selected method unchanged.

        """
        self._require_open()
        if code is not None:
            self.session.code = code.strip()
            self.session.is_backup_code_mode = (
                looks_like_backup_code(code) or self._explicit_backup_mode
            )
        code = self.session.code.strip()
        backup = self.session.is_backup_code_mode
        method = self.session.selected_method
        try:
            code = validate_backup_code(code) if backup else validate_otp(code)
        except MFAFlowError as e:
            self.session.error = e
            return None
        if not backup and method is None:
            msg = "No MFA method selected"
            raise InvalidTransitionError(msg)

        generation = self._begin()
        try:
            if backup:
                backup_result = await self._verifier.verify_backup_code(code)
                outcome = VerificationOutcome(
                    code=code,
                    method=method,
                    used_backup_code=True,
                    remaining_backup_codes=backup_result.remaining_count,
                    low_backup_codes=backup_result.low_backup_codes,
                )
            else:
                await self._verifier.verify(method, code)
                outcome = VerificationOutcome(code=code, method=method)
        except MFAFlowError as e:
            logger.info("verification failed: %s", e.code)
            self._fail(generation, e)
            return None
        finally:
            self._settle(generation)
        if not self._is_current(generation):
            return None

        if outcome.used_backup_code:
            self._notifier.notify(
                "Backup code used",
                f"You have {outcome.remaining_backup_codes} backup codes remaining. "
                "Consider generating new ones.",
                NoticeLevel.WARNING if outcome.low_backup_codes else NoticeLevel.INFO,
            )
        if self._on_success is not None:
            self._on_success(outcome.code)
        self.close()
        return outcome

    def _begin(self) -> int:
        if self.session.pending:
            raise OperationInProgressError()
        self.session.pending = True
        self.session.error = None
        return self._generation

    def _settle(self, generation: int) -> None:
        if generation == self._generation:
            self.session.pending = False

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug("verification: dropping response for a discarded session")
            return False
        return True

    def _fail(self, generation: int, error: MFAFlowError) -> None:
        if self._is_current(generation):
            self.session.error = error

    def _reset(self) -> None:
        self._generation += 1
        self._explicit_backup_mode = False
        self.session.reset()
        self.session.selected_method = self.default_method

    def _require_open(self) -> None:
        if not self.is_open:
            msg = "The verification dialog is not open"
            raise InvalidTransitionError(msg)


def _dedupe(methods: Iterable[MFAMethod]) -> list[MFAMethod]:
    result: list[MFAMethod] = []
    for method in methods:
        method = MFAMethod(method)
        if method not in result:
            result.append(method)
    return result


def _member(method: MFAMethod | None, methods: list[MFAMethod]) -> MFAMethod | None:
    if method is None:
        return None
    method = MFAMethod(method)
    return method if method in methods else None


__all__ = ["VerificationDialog", "VerificationOutcome"]
