"""Client configuration for mfaflow.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "MFAFLOW_"
DEFAULT_USER_AGENT = "mfaflow-python/1.0.0"


class ClientConfig(BaseModel):
    """Connection settings for the authentication service."""

    base_url: str
    timeout: float = Field(default=30.0, gt=0)
    retries: int = Field(default=2, ge=0)
    api_key: str | None = None
    access_token: str | None = None
    user_agent: str = DEFAULT_USER_AGENT

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "base_url must not be empty"
            raise ValueError(msg)
        return value.rstrip("/")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientConfig:
        """Build a configuration from ``MFAFLOW_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            The parsed configuration.

        """
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for field in ("base_url", "timeout", "retries", "api_key", "access_token"):
            raw = env.get(f"{ENV_PREFIX}{field.upper()}")
            if raw:
                values[field] = raw
        return cls.model_validate(values)
