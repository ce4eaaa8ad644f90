"""MFA (Multi-Factor Authentication) models for mfaflow.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ..codes import LOW_BACKUP_CODES_THRESHOLD
from ..methods import MFAMethod
from ..methods import default_method as pick_default_method


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def _known_methods(values: Any) -> list[str]:
    known = {m.value for m in MFAMethod}
    seen: list[str] = []
    for value in values or []:
        name = value.value if isinstance(value, MFAMethod) else str(value).lower()
        if name in known and name not in seen:
            seen.append(name)
    return seen


class MFAStatus(WireModel):
    """Client view of the MFA enrollment record."""

    enabled: bool = False
    available_methods: list[MFAMethod] = Field(default_factory=list)
    preferred_method: MFAMethod | None = None
    backup_codes_count: int = Field(default=0, ge=0)
    setup_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "enabled" not in data and "mfaEnabled" in data:
            data["enabled"] = data["mfaEnabled"]
        if not data.get("setupAt") and data.get("mfaSetupAt"):
            data["setupAt"] = data["mfaSetupAt"]
        methods = _known_methods(
            data.get("availableMethods", data.get("available_methods"))
        )
        # Accounts enrolled before multi-method support only report mfaEnabled.
        if not methods and data.get("enabled"):
            methods = [MFAMethod.TOTP.value]
        data["availableMethods"] = methods
        data.pop("available_methods", None)
        return data

    @model_validator(mode="after")
    def _enforce_invariants(self) -> MFAStatus:
        self.enabled = bool(self.available_methods)
        if self.preferred_method not in self.available_methods:
            self.preferred_method = None
        return self

    @property
    def default_method(self) -> MFAMethod | None:
        return pick_default_method(self.available_methods, self.preferred_method)

    @property
    def low_backup_codes(self) -> bool:
        return self.enabled and self.backup_codes_count < LOW_BACKUP_CODES_THRESHOLD


class TOTPSetupResponse(WireModel):
    """Secret material returned when TOTP enrollment starts."""

    secret: str = Field(
        min_length=1,
        validation_alias=AliasChoices("manualEntryKey", "secret"),
    )
    qr_code_url: str = Field(min_length=1)
    backup_codes: list[str] = Field(min_length=1)


class SetupAcknowledgement(WireModel):
    """Confirmation that a setup code was dispatched to a phone or inbox."""

    method: MFAMethod
    message: str | None = None


class VerifyCodeRequest(WireModel):
    """Code submission body."""

    code: str


class SMSSetupRequest(WireModel):
    """SMS enrollment body."""

    phone_number: str


class VerifyResult(WireModel):
    """Outcome of a method-specific code check."""

    verified: bool = Field(
        default=True, validation_alias=AliasChoices("verified", "success")
    )
    message: str | None = None


class BackupCodeVerifyResult(WireModel):
    """Outcome of a backup-code check; the count is taken after consumption."""

    verified: bool = Field(
        default=True, validation_alias=AliasChoices("verified", "success")
    )
    remaining_count: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("remainingCodes", "remainingCount", "remaining_count"),
    )
    message: str | None = None

    @field_validator("remaining_count", mode="before")
    @classmethod
    def _count_lists(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return len(value)
        return value

    @property
    def low_backup_codes(self) -> bool:
        return self.remaining_count < LOW_BACKUP_CODES_THRESHOLD


class ChallengeResponse(WireModel):
    """Acknowledgement that a fresh one-time code was sent."""

    sent: bool = Field(default=True, validation_alias=AliasChoices("sent", "success"))
    message: str | None = None


class DisableRequest(WireModel):
    """Disable MFA request model."""

    password: str
    token: str


class DisableResponse(WireModel):
    """Confirmation that MFA was disabled."""

    disabled: bool = Field(
        default=True, validation_alias=AliasChoices("disabled", "success")
    )
    message: str | None = None


class RegenerateBackupCodesRequest(WireModel):
    """Backup-code regeneration body."""

    password: str


class BackupCodesResponse(WireModel):
    """A freshly issued backup-code batch."""

    backup_codes: list[str] = Field(min_length=1)
