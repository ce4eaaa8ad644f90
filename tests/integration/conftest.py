"""Fixtures for tests against a running authentication service.

Set ``MFAFLOW_TEST_BASE_URL``, ``MFAFLOW_TEST_EMAIL`` and
``MFAFLOW_TEST_PASSWORD`` to point the tests at a service. They are skipped
when the variables are missing or the service is unreachable.
"""

from __future__ import annotations

import os

import pytest

from mfaflow import MFAClient, TransportError


@pytest.fixture
def credentials() -> tuple[str, str]:
    email = os.environ.get("MFAFLOW_TEST_EMAIL")
    password = os.environ.get("MFAFLOW_TEST_PASSWORD")
    if not email or not password:
        pytest.skip("MFAFLOW_TEST_EMAIL and MFAFLOW_TEST_PASSWORD are not set")
    return email, password


@pytest.fixture
async def integration_client(credentials):
    """Client signed in to the service under test."""
    base_url = os.environ.get("MFAFLOW_TEST_BASE_URL", "http://localhost:5000/api")
    async with MFAClient(base_url=base_url, timeout=10.0, retries=0) as client:
        try:
            await client.auth.login(*credentials)
        except TransportError as e:
            pytest.skip(f"No authentication service running at {base_url}: {e.message}")
        yield client
