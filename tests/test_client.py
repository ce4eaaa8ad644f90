"""Tests for client composition, configuration and the HTTP transport."""

from __future__ import annotations

import httpx
import pydantic
import pytest

from mfaflow import (
    AuthenticationError,
    ClientConfig,
    ConflictError,
    MFAClient,
    MFAFlowError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
    Verifier,
)
from mfaflow._base import BaseClient, RequestConfig
from mfaflow.exceptions import (
    NetworkError,
    VerificationFailed,
    is_retryable_error,
    rejection,
)


def test_client_initialization() -> None:
    """The client exposes the auth and MFA services over one transport."""
    client = MFAClient("https://api.test.com/api/")

    assert client.config.base_url == "https://api.test.com/api"
    assert client.auth._client is client.mfa._client
    assert isinstance(client.mfa, Verifier)


async def test_client_context_manager() -> None:
    async with MFAClient("https://api.test.com") as client:
        assert client.mfa is not None


def test_token_management() -> None:
    client = MFAClient("https://api.test.com", access_token="tok")
    assert client.get_access_token() == "tok"

    client.set_access_token("other")
    assert client.get_access_token() == "other"

    client.clear_access_token()
    assert client.get_access_token() is None


class TestConfig:
    def test_from_env(self) -> None:
        config = ClientConfig.from_env(
            {
                "MFAFLOW_BASE_URL": "https://auth.example.com/api/",
                "MFAFLOW_TIMEOUT": "5",
                "MFAFLOW_RETRIES": "0",
                "MFAFLOW_API_KEY": "key",
                "UNRELATED": "x",
            }
        )

        assert config.base_url == "https://auth.example.com/api"
        assert config.timeout == 5.0
        assert config.retries == 0
        assert config.api_key == "key"
        assert config.access_token is None

    def test_missing_base_url(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ClientConfig.from_env({})

    @pytest.mark.parametrize(
        "overrides", [{"base_url": "  "}, {"timeout": 0}, {"retries": -1}]
    )
    def test_invalid_values(self, overrides) -> None:
        values = {"base_url": "https://auth.example.com", **overrides}
        with pytest.raises(pydantic.ValidationError):
            ClientConfig(**values)

    def test_client_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("MFAFLOW_BASE_URL", "https://auth.example.com")
        monkeypatch.setenv("MFAFLOW_ACCESS_TOKEN", "tok")

        client = MFAClient.from_env()

        assert client.config.base_url == "https://auth.example.com"
        assert client.get_access_token() == "tok"


class TestTransport:
    @pytest.fixture
    async def base(self, base_url, api_key):
        async with BaseClient(ClientConfig(base_url=base_url, api_key=api_key)) as base:
            yield base

    async def test_headers(self, base, mock_responses, base_url, api_key) -> None:
        route = mock_responses.get(f"{base_url}/mfa/status").mock(
            return_value=httpx.Response(200, json={})
        )
        base.set_access_token("tok")

        await base.make_request("GET", "/mfa/status")

        headers = route.calls.last.request.headers
        assert headers["X-API-Key"] == api_key
        assert headers["Authorization"] == "Bearer tok"
        assert headers["User-Agent"].startswith("mfaflow-python/")

    async def test_empty_body(self, base, mock_responses, base_url) -> None:
        mock_responses.post(f"{base_url}/mfa/email/send-code").mock(
            return_value=httpx.Response(204)
        )

        assert await base.make_request("POST", "mfa/email/send-code") == {}

    @pytest.mark.parametrize(
        ("status", "body", "error_type", "message"),
        [
            (400, {"error": {"message": "Bad code", "code": "X"}}, ValidationError, "Bad code"),
            (401, {"error": "Not authenticated"}, AuthenticationError, "Not authenticated"),
            (404, {"message": "Missing"}, NotFoundError, "Missing"),
            (409, {"message": "Exists"}, ConflictError, "Exists"),
            (429, {"message": "Slow down", "retry_after": 30}, RateLimitError, "Slow down"),
            (418, {"message": "Teapot"}, MFAFlowError, "Teapot"),
        ],
    )
    async def test_error_mapping(
        self, base, mock_responses, base_url, status, body, error_type, message
    ) -> None:
        mock_responses.post(f"{base_url}/mfa/disable").mock(
            return_value=httpx.Response(status, json=body)
        )

        with pytest.raises(error_type) as exc_info:
            await base.make_request("POST", "/mfa/disable", config=RequestConfig(retries=0))

        assert exc_info.value.message == message
        assert exc_info.value.status_code == status

    async def test_non_json_error(self, base, mock_responses, base_url) -> None:
        mock_responses.post(f"{base_url}/mfa/disable").mock(
            return_value=httpx.Response(502, text="Bad Gateway")
        )

        with pytest.raises(ServerError) as exc_info:
            await base.make_request("POST", "/mfa/disable", config=RequestConfig(retries=0))

        assert exc_info.value.message == "Bad Gateway"
        assert exc_info.value.status_code == 502

    async def test_client_errors_are_not_retried(self, base, mock_responses, base_url) -> None:
        route = mock_responses.get(f"{base_url}/mfa/status").mock(
            return_value=httpx.Response(400, json={"message": "nope"})
        )

        with pytest.raises(ValidationError):
            await base.make_request("GET", "/mfa/status")

        assert route.call_count == 1


class TestErrorHelpers:
    def test_is_retryable(self) -> None:
        assert is_retryable_error(NetworkError())
        assert is_retryable_error(ServerError())
        assert not is_retryable_error(ValidationError("bad"))
        assert not is_retryable_error(ValueError("bad"))

    def test_rejection_translates_client_errors(self) -> None:
        original = AuthenticationError("Invalid code")

        translated = rejection(original, VerificationFailed)

        assert isinstance(translated, VerificationFailed)
        assert translated.message == "Invalid code"
        assert translated.status_code == 401
        assert translated.__cause__ is original

    @pytest.mark.parametrize(
        "error", [NetworkError(), ServerError(), RateLimitError(), VerificationFailed()]
    )
    def test_rejection_passes_through(self, error) -> None:
        assert rejection(error, VerificationFailed) is error
