"""Ephemeral session state for the enrollment wizard and verification dialog.

Each state machine owns exactly one session object. Discarding a session
means calling :meth:`reset`, so "cancel", "close" and "reopen" all go
through the same code path.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import MFAFlowError, user_message
from .methods import MFAMethod
from .models import SetupAcknowledgement, TOTPSetupResponse


class EnrollmentStep(str, Enum):
    """Steps of the enrollment wizard."""

    CHOOSE = "choose"
    SETUP = "setup"
    VERIFY = "verify"
    BACKUP = "backup"
    COMPLETE = "complete"


class _Session(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    code: str = ""
    error: MFAFlowError | None = None
    pending: bool = False

    @property
    def error_message(self) -> str | None:
        """Text rendered next to the failing control."""
        return user_message(self.error) if self.error is not None else None

    def reset(self) -> None:
        """Return every field to its initial value."""
        fresh = type(self)()
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))


class EnrollmentSession(_Session):
    """State of one enrollment wizard run."""

    step: EnrollmentStep = EnrollmentStep.CHOOSE
    selected_method: MFAMethod | None = None
    phone_number: str = ""
    pending_secret: TOTPSetupResponse | SetupAcknowledgement | None = None
    backup_codes_issued: list[str] = Field(default_factory=list)
    backup_codes_saved: bool = False

    def discard_setup(self) -> None:
        """Forget setup material, the entered code and any pending codes."""
        self.pending_secret = None
        self.backup_codes_issued = []
        self.backup_codes_saved = False
        self.code = ""


class VerificationSession(_Session):
    """State of one verification dialog run."""

    selected_method: MFAMethod | None = None
    is_backup_code_mode: bool = False
    codes_sent: set[MFAMethod] = Field(default_factory=set)
