"""In-memory credential store for tests and local demos.

Implements the :class:`~mfaflow.ports.Verifier` protocol without a server.
Secrets are kept in plain text in process memory; do not use this in
production.

Uses pyotp for TOTP; install with ``pip install mfaflow[memory]``.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

import pyotp

from .codes import BACKUP_CODE_ALPHABET, BACKUP_CODE_GROUP, BACKUP_CODE_LENGTH, strip_backup_code
from .exceptions import (
    DisableFailed,
    RegenerationFailed,
    SetupFailed,
    ValidationError,
    VerificationFailed,
)
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

BACKUP_CODE_COUNT = 10
CODE_TTL = timedelta(minutes=10)
PROOF_TTL = timedelta(minutes=5)
TOTP_VALID_WINDOW = 1


class SentCode(NamedTuple):
    """A one-time code "delivered" by SMS or email."""

    method: MFAMethod
    destination: str
    code: str
    expires_at: datetime


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> list[str]:
    """Generate ``count`` codes in ``XXXX-XXXX-XXXX`` base32 format."""
    codes = []
    for _ in range(count):
        raw = "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(BACKUP_CODE_LENGTH))
        codes.append(
            "-".join(
                raw[i : i + BACKUP_CODE_GROUP]
                for i in range(0, BACKUP_CODE_LENGTH, BACKUP_CODE_GROUP)
            )
        )
    return codes


def hash_code(code: str) -> str:
    return hashlib.sha256(strip_backup_code(code).encode()).hexdigest()


def _one_time_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


class InMemoryCredentialStore:
    """Credential store holding one account's MFA enrollment."""

    def __init__(
        self,
        *,
        email: str = "user@example.com",
        password: str = "password",
        issuer: str = "mfaflow",
        secret_factory: Callable[[], str] = pyotp.random_base32,
        backup_code_count: int = BACKUP_CODE_COUNT,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.email = email
        self.issuer = issuer
        self._password = password
        self._secret_factory = secret_factory
        self._backup_code_count = backup_code_count
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self.enabled_methods: list[MFAMethod] = []
        self.preferred_method: MFAMethod | None = None
        self.phone_number: str | None = None
        self.setup_at: datetime | None = None
        self.outbox: list[SentCode] = []

        self._totp_secret: str | None = None
        self._pending_totp_secret: str | None = None
        self._pending_backup_hashes: list[str] = []
        self._pending_phone: str | None = None
        self._backup_hashes: list[str] = []
        self._live_codes: dict[MFAMethod, SentCode] = {}
        self._proofs: dict[str, datetime] = {}

    @property
    def backup_codes_count(self) -> int:
        return len(self._backup_hashes)

    def current_totp(self) -> str:
        """Code an authenticator app would show right now."""
        secret = self._totp_secret or self._pending_totp_secret
        if secret is None:
            msg = "TOTP has not been set up"
            raise LookupError(msg)
        return pyotp.TOTP(secret).now()

    def last_code(self, method: MFAMethod) -> str:
        """Most recent code sent for ``method``."""
        for sent in reversed(self.outbox):
            if sent.method is method:
                return sent.code
        msg = f"No {method.value} code has been sent"
        raise LookupError(msg)

    async def get_status(self) -> MFAStatus:
        return MFAStatus(
            enabled=bool(self.enabled_methods),
            available_methods=list(self.enabled_methods),
            preferred_method=self.preferred_method,
            backup_codes_count=self.backup_codes_count,
            setup_at=self.setup_at,
        )

    async def setup(
        self, method: MFAMethod, phone_number: str | None = None
    ) -> TOTPSetupResponse | SetupAcknowledgement:
        if method in self.enabled_methods:
            raise SetupFailed(f"{method.display_name} authentication is already enabled")

        if method is MFAMethod.TOTP:
            secret = self._secret_factory()
            codes = generate_backup_codes(self._backup_code_count)
            self._pending_totp_secret = secret
            self._pending_backup_hashes = [hash_code(c) for c in codes]
            uri = pyotp.TOTP(secret).provisioning_uri(
                name=self.email, issuer_name=self.issuer
            )
            return TOTPSetupResponse(secret=secret, qr_code_url=uri, backup_codes=codes)

        if method is MFAMethod.SMS:
            if not phone_number:
                raise SetupFailed("A phone number is required")
            self._pending_phone = phone_number
            self._dispatch(method, phone_number)
        else:
            self._dispatch(method, self.email)
        return SetupAcknowledgement(method=method, message="Verification code sent")

    async def verify_setup(self, method: MFAMethod, code: str) -> VerifyResult:
        if method is MFAMethod.TOTP:
            secret = self._pending_totp_secret
            if secret is None:
                raise VerificationFailed("No authenticator setup in progress")
            if not pyotp.TOTP(secret).verify(code, valid_window=TOTP_VALID_WINDOW):
                raise VerificationFailed("Invalid verification code")
            self._totp_secret = secret
            self._pending_totp_secret = None
            self._backup_hashes = self._pending_backup_hashes
            self._pending_backup_hashes = []
        else:
            if method is MFAMethod.SMS and self._pending_phone is None:
                raise VerificationFailed("No SMS setup in progress")
            self._consume_live_code(method, code)
            if method is MFAMethod.SMS:
                self.phone_number = self._pending_phone
                self._pending_phone = None

        self._enable(method)
        self._record_proof(code)
        return VerifyResult(verified=True, message=f"{method.display_name} enabled")

    async def verify(self, method: MFAMethod, code: str) -> VerifyResult:
        if method not in self.enabled_methods:
            raise VerificationFailed(f"{method.display_name} authentication is not enabled")
        if method is MFAMethod.TOTP:
            if self._totp_secret is None:
                raise VerificationFailed("No authenticator secret on record")
            if not pyotp.TOTP(self._totp_secret).verify(code, valid_window=TOTP_VALID_WINDOW):
                raise VerificationFailed("Invalid verification code")
        else:
            self._consume_live_code(method, code)
        self._record_proof(code)
        return VerifyResult(verified=True)

    async def verify_backup_code(self, code: str) -> BackupCodeVerifyResult:
        digest = hash_code(code)
        for index, stored in enumerate(self._backup_hashes):
            if hmac.compare_digest(stored, digest):
                del self._backup_hashes[index]
                self._record_proof(code)
                logger.info("backup code consumed, %d left", len(self._backup_hashes))
                return BackupCodeVerifyResult(remaining_count=len(self._backup_hashes))
        raise VerificationFailed("Invalid backup code")

    async def send_challenge(self, method: MFAMethod) -> ChallengeResponse:
        if not method.dispatches_code:
            raise ValidationError("Authenticator codes are generated by your app")
        if method not in self.enabled_methods:
            raise ValidationError(f"{method.display_name} authentication is not enabled")
        destination = self.phone_number if method is MFAMethod.SMS else self.email
        if destination is None:
            raise ValidationError(f"No destination on record for {method.display_name} codes")
        self._dispatch(method, destination)
        return ChallengeResponse(sent=True)

    async def disable(self, password: str, token: str) -> DisableResponse:
        if not hmac.compare_digest(password, self._password):
            raise DisableFailed("Invalid password")
        if not self._take_proof(token):
            raise DisableFailed("A freshly verified MFA code is required")

        self.enabled_methods = []
        self.preferred_method = None
        self.phone_number = None
        self.setup_at = None
        self._totp_secret = None
        self._backup_hashes = []
        self._live_codes.clear()
        self._proofs.clear()
        logger.info("MFA disabled for %s", self.email)
        return DisableResponse(disabled=True)

    async def regenerate_backup_codes(self, password: str) -> BackupCodesResponse:
        if not hmac.compare_digest(password, self._password):
            raise RegenerationFailed("Invalid password")
        if not self.enabled_methods:
            raise RegenerationFailed("MFA is not enabled")
        codes = generate_backup_codes(self._backup_code_count)
        self._backup_hashes = [hash_code(c) for c in codes]
        return BackupCodesResponse(backup_codes=codes)

    def _dispatch(self, method: MFAMethod, destination: str) -> None:
        sent = SentCode(method, destination, _one_time_code(), self._clock() + CODE_TTL)
        self._live_codes[method] = sent
        self.outbox.append(sent)
        logger.debug("sent %s code", method.value)

    def _consume_live_code(self, method: MFAMethod, code: str) -> None:
        live = self._live_codes.get(method)
        if live is None:
            raise VerificationFailed("No verification code has been sent")
        if self._clock() > live.expires_at:
            del self._live_codes[method]
            raise VerificationFailed("Verification code has expired")
        if not hmac.compare_digest(live.code, code.strip()):
            raise VerificationFailed("Invalid verification code")
        del self._live_codes[method]

    def _enable(self, method: MFAMethod) -> None:
        if method not in self.enabled_methods:
            self.enabled_methods.append(method)
        if self.preferred_method is None:
            self.preferred_method = method
        if self.setup_at is None:
            self.setup_at = self._clock()

    def _record_proof(self, code: str) -> None:
        self._proofs[hash_code(code)] = self._clock() + PROOF_TTL

    def _take_proof(self, token: str) -> bool:
        expires_at = self._proofs.pop(hash_code(token), None)
        return expires_at is not None and self._clock() <= expires_at
