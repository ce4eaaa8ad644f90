"""Base HTTP client for the authentication service API.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, NamedTuple, TypeVar
from urllib.parse import urljoin

import httpx
from pydantic import BaseModel

from .config import ClientConfig
from .exceptions import (
    InvalidResponseError,
    MFAFlowError,
    NetworkError,
    TimeoutError as MFATimeoutError,
    create_error_from_response,
    is_retryable_error,
)

logger = logging.getLogger(__name__)

# HTTP Error Status Constants
HTTP_SUCCESS_THRESHOLD = 400

M = TypeVar("M", bound=BaseModel)


class RequestConfig(NamedTuple):
    """Configuration for HTTP requests."""

    json_data: dict[str, Any] | None = None
    params: dict[str, Any] | None = None
    timeout: float | None = None
    retries: int | None = None


# Mutations must reach the server at most once per user action.
NO_RETRY = 0


class BaseClient:
    """Base HTTP client for making API requests."""

    def __init__(self, config: ClientConfig) -> None:
        """Initialize base HTTP client.

        Args:
            config: Connection settings

        """
        self.base_url = config.base_url
        self.timeout = config.timeout
        self.retries = config.retries
        self.api_key = config.api_key
        self._access_token: str | None = config.access_token

        headers = {"User-Agent": config.user_agent}
        if config.api_key:
            headers["X-API-Key"] = config.api_key

        self._client = httpx.AsyncClient(
            timeout=config.timeout,
            headers=headers,
        )

    async def __aenter__(self) -> BaseClient:
        """Async context manager entry.

        Returns:
            The client instance.

        """
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self._client.aclose()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    def set_access_token(self, token: str) -> None:
        """Set the access token for authenticated requests."""
        self._access_token = token

    def clear_access_token(self) -> None:
        """Clear the access token."""
        self._access_token = None

    def get_access_token(self) -> str | None:
        """Get the current access token.

        Returns:
            Current access token or None if not set.

        """
        return self._access_token

    async def make_request(
        self,
        method: str,
        endpoint: str,
        *,
        config: RequestConfig | None = None,
    ) -> dict[str, Any]:
        """Make an HTTP request expecting a JSON object back.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            config: Request configuration

        Returns:
            Parsed JSON response data.

        Raises:
            MFAFlowError: For errors reported by the API
            NetworkError: For network-related errors
            MFATimeoutError: For timeout errors

        """
        return await self._make_request_generic(
            method, endpoint, parser=_parse_json, config=config
        )

    async def _make_request_generic(
        self,
        method: str,
        endpoint: str,
        parser: Callable[[httpx.Response], Any],
        *,
        config: RequestConfig | None = None,
    ) -> Any:
        """Make an HTTP request, retrying only where the config allows it.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            parser: Function to parse the response
            config: Request configuration

        Returns:
            Parsed response data.

        """
        if config is None:
            config = RequestConfig()

        url = urljoin(self.base_url + "/", endpoint.lstrip("/"))
        request_timeout = config.timeout or self.timeout
        request_retries = config.retries if config.retries is not None else self.retries

        headers: dict[str, str] = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"

        attempt = 0
        while True:
            try:
                return await self._attempt_request(
                    method, url, headers, config, request_timeout, parser
                )
            except MFAFlowError as e:
                if attempt >= request_retries or not is_retryable_error(e):
                    raise
                delay = min(2**attempt, 10)
                logger.warning(
                    "%s %s failed (%s), retrying in %ss", method, endpoint, e.code, delay
                )
                attempt += 1
                await asyncio.sleep(delay)

    async def _attempt_request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        config: RequestConfig,
        timeout: float,
        parser: Callable[[httpx.Response], Any],
    ) -> Any:
        """Attempt a single HTTP request.

        Returns:
            Parsed response.

        Raises:
            MFAFlowError: For any failed attempt.

        """
        logger.debug("%s %s", method, url)
        try:
            response = await self._client.request(
                method,
                url,
                json=config.json_data,
                params=config.params,
                headers=headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, url)
            raise MFATimeoutError("Request timeout") from e
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, url, type(e).__name__)
            raise NetworkError("Network error") from e

        if response.status_code < HTTP_SUCCESS_THRESHOLD:
            try:
                return parser(response)
            except ValueError as e:
                logger.warning("%s %s returned an unparseable body", method, url)
                raise InvalidResponseError(status_code=response.status_code) from e

        error_info = self._parse_error_response(response)
        logger.info("%s %s rejected with status %s", method, url, response.status_code)
        raise create_error_from_response(response.status_code, error_info)

    @staticmethod
    def _parse_error_response(response: httpx.Response) -> dict[str, Any]:
        """Parse error response from the API.

        Accepts both ``{"error": {...}}`` and flat ``{"message": ...}`` bodies.

        Returns:
            Parsed error data.

        """
        try:
            error_data = response.json()
        except ValueError:
            return {"message": response.text or response.reason_phrase, "code": "UNKNOWN_ERROR"}
        if not isinstance(error_data, dict):
            return {"message": str(error_data), "code": "UNKNOWN_ERROR"}
        nested = error_data.get("error")
        if isinstance(nested, dict):
            return nested
        if isinstance(nested, str):
            return {"message": nested, **{k: v for k, v in error_data.items() if k != "error"}}
        return error_data


def _parse_json(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    data = response.json()
    return data if isinstance(data, dict) else {"data": data}


def parse_model(model: type[M], data: Any) -> M:
    """Validate a successful response body against its model.

    Raises:
        InvalidResponseError: If the body lacks or mistypes a field.

    """
    try:
        return model.model_validate(data)
    except ValueError as e:
        logger.warning("malformed %s: %s", model.__name__, e)
        raise InvalidResponseError() from e
