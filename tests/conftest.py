"""Test configuration and common utilities.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
import respx

from mfaflow import MFAClient, MFAMethod, NoticeLevel
from mfaflow.memory import InMemoryCredentialStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator

TOTP_SECRET = "JBSWY3DPEHPK3PXP"
PASSWORD = "correct horse battery staple"


@pytest.fixture
def base_url() -> str:
    """Return base URL for test server.

    Returns:
        str: The base URL for testing.

    """
    return "https://api.mfaflow.test/api"


@pytest.fixture
def api_key() -> str:
    """Return test API key.

    Returns:
        str: The API key for testing.

    """
    return "test-api-key-12345"


@pytest.fixture
async def client(
    base_url: str,
    api_key: str,
) -> AsyncGenerator[MFAClient, None]:
    """Create test client.

    Yields:
        MFAClient: Configured test client.

    """
    async with MFAClient(
        base_url=base_url,
        api_key=api_key,
        timeout=5.0,
        retries=1,
    ) as client:
        yield client


@pytest.fixture
def mock_responses() -> Generator[Any, None, None]:
    """Mock HTTP responses.

    Yields:
        The mock router for HTTP requests.

    """
    with respx.mock:
        yield respx


@pytest.fixture
def store() -> InMemoryCredentialStore:
    """Credential store that hands out a well-known TOTP secret."""
    return InMemoryCredentialStore(
        email="client@example.com",
        password=PASSWORD,
        secret_factory=lambda: TOTP_SECRET,
    )


class RecordingNotifier:
    """Notifier that keeps every notice for assertions."""

    def __init__(self) -> None:
        self.notices: list[tuple[str, str, NoticeLevel]] = []

    def notify(
        self, title: str, description: str, level: NoticeLevel = NoticeLevel.INFO
    ) -> None:
        self.notices.append((title, description, level))

    @property
    def titles(self) -> list[str]:
        return [title for title, _, _ in self.notices]


class RecordingCache:
    """Cache invalidator that counts invalidations."""

    def __init__(self) -> None:
        self.invalidations = 0

    async def invalidate(self) -> None:
        self.invalidations += 1


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def sample_status() -> dict[str, Any]:
    """Sample status response.

    Returns:
        dict[str, Any]: Status payload as the service sends it.

    """
    return {
        "enabled": True,
        "availableMethods": ["totp", "sms"],
        "preferredMethod": "sms",
        "hasBackupCodes": True,
        "backupCodesCount": 7,
        "setupAt": "2024-01-01T00:00:00Z",
    }


@pytest.fixture
def sample_totp_setup() -> dict[str, Any]:
    """Sample TOTP setup response.

    Returns:
        dict[str, Any]: Setup payload with secret, QR code and backup codes.

    """
    return {
        "qrCodeUrl": "data:image/png;base64,iVBORw0KGgo=",
        "manualEntryKey": TOTP_SECRET,
        "backupCodes": [f"ABCD-EFGH-JK{c}{c}" for c in "ABCDEFGHIJ"],
    }


@pytest.fixture
def sample_error_response() -> dict[str, Any]:
    """Sample error response.

    Returns:
        dict[str, Any]: Sample error response data.

    """
    return {
        "error": {
            "code": "INVALID_CODE",
            "message": "Invalid verification code",
            "details": {"field": "code"},
        },
    }


async def enroll(
    store: InMemoryCredentialStore, *methods: MFAMethod, phone_number: str = "+15551234567"
) -> list[str]:
    """Enroll ``methods`` on ``store`` and return any issued backup codes."""
    codes: list[str] = []
    for method in methods:
        result = await store.setup(method, phone_number)
        if method is MFAMethod.TOTP:
            codes = list(result.backup_codes)
            code = store.current_totp()
        else:
            code = store.last_code(method)
        await store.verify_setup(method, code)
    return codes


@pytest.fixture
async def enrolled_store(
    store: InMemoryCredentialStore,
) -> AsyncGenerator[tuple[InMemoryCredentialStore, list[str]], None]:
    """Store with TOTP and SMS enrolled, SMS preferred.

    Yields:
        The store and the backup codes issued with TOTP.

    """
    codes = await enroll(store, MFAMethod.TOTP, MFAMethod.SMS)
    store.preferred_method = MFAMethod.SMS
    yield store, codes
