"""mfaflow API client using service composition.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

from typing import Self

from ._auth import AuthService
from ._base import BaseClient
from ._mfa import MFAService
from .config import ClientConfig


class MFAClient:
    """Client for the authentication service's login and MFA endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        retries: int = 2,
        api_key: str | None = None,
        access_token: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the API, e.g. ``https://example.com/api``
            timeout: Request timeout in seconds
            retries: Retry attempts for the status query; mutations never retry
            api_key: Optional API key for authentication
            access_token: Optional bearer token of an existing session

        """
        self.config = ClientConfig(
            base_url=base_url,
            timeout=timeout,
            retries=retries,
            api_key=api_key,
            access_token=access_token,
        )
        self._client = BaseClient(self.config)

        self.auth = AuthService(self._client)
        self.mfa = MFAService(self._client)

    @classmethod
    def from_config(cls, config: ClientConfig) -> MFAClient:
        """Build a client from a prepared configuration."""
        return cls(
            config.base_url,
            timeout=config.timeout,
            retries=config.retries,
            api_key=config.api_key,
            access_token=config.access_token,
        )

    @classmethod
    def from_env(cls) -> MFAClient:
        """Build a client from ``MFAFLOW_*`` environment variables."""
        return cls.from_config(ClientConfig.from_env())

    async def __aenter__(self) -> Self:
        """Async context manager entry.

        Returns:
            The client instance.

        """
        await self._client.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self._client.__aexit__(exc_type, exc_val, exc_tb)

    async def close(self) -> None:
        """Close the client and clean up resources."""
        await self._client.close()

    def set_access_token(self, token: str) -> None:
        """Set access token for authenticated requests.

        Args:
            token: Access token to set

        """
        self._client.set_access_token(token)

    def clear_access_token(self) -> None:
        """Clear the stored access token."""
        self._client.clear_access_token()

    def get_access_token(self) -> str | None:
        """Get the current access token.

        Returns:
            Current access token or None if not set.

        """
        return self._client.get_access_token()
