"""Authentication service for mfaflow.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import logging

from ._base import NO_RETRY, BaseClient, RequestConfig, parse_model
from .codes import looks_like_backup_code, validate_backup_code, validate_otp
from .exceptions import MFAFlowError, VerificationFailed, rejection
from .methods import MFAMethod
from .models import (
    LoginChallengeStatus,
    LoginResponse,
    LoginVerifyRequest,
    LoginVerifyResponse,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, client: BaseClient) -> None:
        """Initialize authentication service.

        Args:
            client: The base HTTP client

        """
        self._client = client

    async def login(self, email: str, password: str) -> LoginResponse:
        """Authenticate a user with email and password.

        When the account has MFA enabled the response carries
        ``mfa_required=True`` and the methods the user may answer with;
        no access token is issued until :meth:`verify_login` succeeds.

        Args:
            email: User's email address
            password: User's password

        Returns:
            Login response.

        """
        data = {"email": email, "password": password}
        config = RequestConfig(json_data=data, retries=NO_RETRY)
        response = parse_model(
            LoginResponse,
            await self._client.make_request("POST", "/auth/login", config=config),
        )

        if response.access_token:
            self._client.set_access_token(response.access_token)
        if response.mfa_required:
            logger.debug("login requires MFA via %s", response.available_methods)

        return response

    async def login_status(self) -> LoginChallengeStatus:
        """Check whether the session still owes an MFA proof.

        Returns:
            Challenge status with the methods that can answer it.

        """
        data = await self._client.make_request("GET", "/mfa/login-status")
        return parse_model(LoginChallengeStatus, data)

    async def verify_login(
        self, code: str, method: MFAMethod | None = None
    ) -> LoginVerifyResponse:
        """Answer the login MFA challenge.

        Args:
            code: Six-digit code, or a backup code
            method: Method the code belongs to

        Returns:
            Verification response with the authenticated user.

        Raises:
            ValidationError: If the code is malformed.
            VerificationFailed: If the code is rejected.

        """
        if looks_like_backup_code(code):
            code = validate_backup_code(code)
        else:
            code = validate_otp(code)

        body = LoginVerifyRequest(token=code, method=method).to_wire()
        config = RequestConfig(json_data=body, retries=NO_RETRY)
        try:
            data = await self._client.make_request(
                "POST", "/mfa/verify-login", config=config
            )
        except MFAFlowError as e:
            raise rejection(e, VerificationFailed) from e

        response = parse_model(LoginVerifyResponse, data)
        if response.access_token:
            self._client.set_access_token(response.access_token)
        if response.used_backup_code:
            logger.info("login completed with a backup code")
        return response

    async def logout(self) -> None:
        """Log out the current user and forget the access token."""
        config = RequestConfig(retries=NO_RETRY)
        try:
            await self._client.make_request("POST", "/auth/logout", config=config)
        finally:
            self._client.clear_access_token()
