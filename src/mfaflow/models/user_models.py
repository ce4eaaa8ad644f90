"""Login models for mfaflow.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, model_validator

from ..methods import MFAMethod
from .mfa_models import WireModel, _known_methods


class UserInfo(WireModel):
    """User information model."""

    id: str
    email: str
    role: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class _ChallengeMixin(WireModel):
    available_methods: list[MFAMethod] = Field(default_factory=list)
    preferred_method: MFAMethod | None = None

    @model_validator(mode="before")
    @classmethod
    def _filter_methods(cls, data: Any) -> Any:
        if isinstance(data, dict) and "availableMethods" in data:
            data = dict(data)
            data["availableMethods"] = _known_methods(data["availableMethods"])
        return data


class LoginResponse(_ChallengeMixin):
    """Login response; tokens are absent while an MFA challenge is pending."""

    mfa_required: bool = Field(default=False)
    access_token: str | None = None
    refresh_token: str | None = None
    user: UserInfo | None = None
    message: str | None = None


class LoginChallengeStatus(_ChallengeMixin):
    """Whether the current session still owes an MFA proof."""

    required: bool = False
    verified: bool = True


class LoginVerifyRequest(WireModel):
    """Login-time MFA submission body."""

    token: str
    method: MFAMethod | None = None


class LoginVerifyResponse(WireModel):
    """Successful login-time MFA verification."""

    user: UserInfo | None = None
    access_token: str | None = None
    used_backup_code: bool = False
    message: str | None = None
