"""Multi-factor authentication service for mfaflow.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Any

from ._base import NO_RETRY, BaseClient, RequestConfig, parse_model
from .exceptions import (
    DisableFailed,
    MFAFlowError,
    RegenerationFailed,
    SetupFailed,
    ValidationError,
    VerificationFailed,
    rejection,
)
from .methods import MFAMethod, assert_never
from .models import (
    BackupCodesResponse,
    BackupCodeVerifyResult,
    ChallengeResponse,
    DisableRequest,
    DisableResponse,
    MFAStatus,
    RegenerateBackupCodesRequest,
    SetupAcknowledgement,
    SMSSetupRequest,
    TOTPSetupResponse,
    VerifyCodeRequest,
    VerifyResult,
)

logger = logging.getLogger(__name__)


class MFAService:
    """Service for multi-factor authentication operations."""

    def __init__(self, client: BaseClient) -> None:
        """Initialize MFA service.

        Args:
            client: The base HTTP client

        """
        self._client = client

    async def _post(
        self, endpoint: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        config = RequestConfig(json_data=body, retries=NO_RETRY)
        return await self._client.make_request("POST", endpoint, config=config)

    async def get_status(self) -> MFAStatus:
        """Get the MFA enrollment status of the current user.

        Returns:
            Enabled methods, preferred method and backup-code count.

        """
        data = await self._client.make_request("GET", "/mfa/status")
        return parse_model(MFAStatus, data)

    async def setup(
        self, method: MFAMethod, phone_number: str | None = None
    ) -> TOTPSetupResponse | SetupAcknowledgement:
        """Begin enrollment for a method.

        Args:
            method: Method to enroll
            phone_number: E.164 phone number, required for SMS

        Returns:
            TOTP secret material, or an acknowledgement that a code was sent.

        Raises:
            SetupFailed: If the service rejects the setup.

        """
        if method is MFAMethod.SMS and not phone_number:
            raise ValidationError("Please enter a valid phone number")
        try:
            if method is MFAMethod.TOTP:
                data = await self._post("/mfa/totp/setup")
                return TOTPSetupResponse.model_validate(data)
            if method is MFAMethod.SMS:
                body = SMSSetupRequest(phone_number=phone_number).to_wire()
                data = await self._post("/mfa/sms/setup", body)
            elif method is MFAMethod.EMAIL:
                data = await self._post("/mfa/email/setup")
            else:
                assert_never(method)
        except MFAFlowError as e:
            raise rejection(e, SetupFailed) from e
        except ValueError as e:
            # pydantic.ValidationError: the response lacked mandatory fields
            raise SetupFailed("Setup response was incomplete") from e

        return SetupAcknowledgement(method=method, message=data.get("message"))

    async def verify_setup(self, method: MFAMethod, code: str) -> VerifyResult:
        """Confirm a pending enrollment.

        Args:
            method: Method being enrolled
            code: Code from the authenticator app, SMS or email

        Returns:
            Verification response.

        """
        if method is MFAMethod.TOTP:
            endpoint = "/mfa/totp/verify-setup"
        elif method is MFAMethod.SMS:
            endpoint = "/mfa/sms/verify"
        elif method is MFAMethod.EMAIL:
            endpoint = "/mfa/email/verify"
        else:
            assert_never(method)
        return await self._verify(endpoint, code)

    async def verify(self, method: MFAMethod, code: str) -> VerifyResult:
        """Verify a code for an enrolled method.

        Args:
            method: Method the code belongs to
            code: Six-digit code

        Returns:
            Verification response.

        """
        if method is MFAMethod.TOTP:
            endpoint = "/mfa/totp/verify"
        elif method is MFAMethod.SMS:
            endpoint = "/mfa/sms/verify"
        elif method is MFAMethod.EMAIL:
            endpoint = "/mfa/email/verify"
        else:
            assert_never(method)
        return await self._verify(endpoint, code)

    async def _verify(self, endpoint: str, code: str) -> VerifyResult:
        body = VerifyCodeRequest(code=code).to_wire()
        try:
            data = await self._post(endpoint, body)
        except MFAFlowError as e:
            raise rejection(e, VerificationFailed) from e
        result = parse_model(VerifyResult, data)
        if not result.verified:
            raise VerificationFailed(result.message or "Invalid verification code")
        return result

    async def verify_backup_code(self, code: str) -> BackupCodeVerifyResult:
        """Verify and consume a backup code.

        The same endpoint serves every method: backup codes are not tied to
        the method they were issued with.

        Args:
            code: Backup code

        Returns:
            Verification response with the remaining backup-code count.

        """
        body = VerifyCodeRequest(code=code).to_wire()
        try:
            data = await self._post("/mfa/backup-code/verify", body)
        except MFAFlowError as e:
            raise rejection(e, VerificationFailed) from e
        result = parse_model(BackupCodeVerifyResult, data)
        if not result.verified:
            raise VerificationFailed(result.message or "Invalid backup code")
        return result

    async def send_challenge(self, method: MFAMethod) -> ChallengeResponse:
        """Send a fresh code by SMS or email.

        Args:
            method: SMS or email

        Returns:
            Send confirmation.

        Raises:
            ValidationError: If the method has nothing to send.

        """
        if method is MFAMethod.TOTP:
            raise ValidationError("Authenticator codes are generated by your app")
        if method is MFAMethod.SMS:
            endpoint = "/mfa/sms/send-code"
        elif method is MFAMethod.EMAIL:
            endpoint = "/mfa/email/send-code"
        else:
            assert_never(method)
        data = await self._post(endpoint, {})
        return parse_model(ChallengeResponse, data)

    async def disable(self, password: str, token: str) -> DisableResponse:
        """Disable MFA for the account.

        Args:
            password: User's password for confirmation
            token: Code verified moments ago as proof of the current factor

        Returns:
            Disable confirmation.

        """
        body = DisableRequest(password=password, token=token).to_wire()
        try:
            data = await self._post("/mfa/disable", body)
        except MFAFlowError as e:
            raise rejection(e, DisableFailed) from e
        return parse_model(DisableResponse, data)

    async def regenerate_backup_codes(self, password: str) -> BackupCodesResponse:
        """Regenerate MFA backup codes.

        Args:
            password: User's password for confirmation

        Returns:
            New backup codes. Previous codes stop working.

        """
        body = RegenerateBackupCodesRequest(password=password).to_wire()
        try:
            data = await self._post("/mfa/backup-codes", body)
            return BackupCodesResponse.model_validate(data)
        except MFAFlowError as e:
            raise rejection(e, RegenerationFailed) from e
        except ValueError as e:
            raise RegenerationFailed("Backup code response was incomplete") from e
