"""
Exception classes for mfaflow.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from __future__ import annotations

from typing import Any


class MFAFlowError(Exception):
    """Base exception for mfaflow errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Any | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.status_code = status_code


class ValidationError(MFAFlowError):
    """Raised when input validation fails, locally or on the server."""

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", details, 400)


class AuthenticationError(MFAFlowError):
    """Raised when authentication fails."""

    def __init__(
        self, message: str = "Authentication failed", details: Any | None = None
    ) -> None:
        super().__init__(message, "AUTHENTICATION_ERROR", details, 401)


class AuthorizationError(MFAFlowError):
    """Raised when authorization fails."""

    def __init__(
        self, message: str = "Insufficient permissions", details: Any | None = None
    ) -> None:
        super().__init__(message, "AUTHORIZATION_ERROR", details, 403)


class NotFoundError(MFAFlowError):
    """Raised when a resource is not found."""

    def __init__(
        self, message: str = "Resource not found", details: Any | None = None
    ) -> None:
        super().__init__(message, "NOT_FOUND_ERROR", details, 404)


class ConflictError(MFAFlowError):
    """Raised when a resource conflict occurs."""

    def __init__(
        self, message: str = "Resource conflict", details: Any | None = None
    ) -> None:
        super().__init__(message, "CONFLICT_ERROR", details, 409)


class RateLimitError(MFAFlowError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: int | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message, "RATE_LIMIT_ERROR", details, 429)
        self.retry_after = retry_after


class ServerError(MFAFlowError):
    """Raised when a server error occurs."""

    def __init__(
        self,
        message: str = "Internal server error",
        details: Any | None = None,
        status_code: int = 500,
    ) -> None:
        super().__init__(message, "SERVER_ERROR", details, status_code)


class InvalidResponseError(ServerError):
    """Raised when a successful response body cannot be parsed."""

    def __init__(
        self,
        message: str = "Invalid response from server",
        details: Any | None = None,
        status_code: int | None = None,
    ) -> None:
        MFAFlowError.__init__(self, message, "INVALID_RESPONSE", details, status_code)


class TransportError(MFAFlowError):
    """Raised when a request never produced a usable response."""

    def __init__(
        self,
        message: str = "Transport error",
        code: str = "TRANSPORT_ERROR",
        details: Any | None = None,
    ) -> None:
        super().__init__(message, code, details)


class NetworkError(TransportError):
    """Raised when a network error occurs."""

    def __init__(
        self, message: str = "Network error", details: Any | None = None
    ) -> None:
        super().__init__(message, "NETWORK_ERROR", details)


class TimeoutError(TransportError):  # noqa: A001
    """Raised when a request times out."""

    def __init__(
        self, message: str = "Request timeout", details: Any | None = None
    ) -> None:
        super().__init__(message, "TIMEOUT_ERROR", details)


class SetupFailed(MFAFlowError):
    """Raised when the credential store rejects an enrollment setup."""

    def __init__(
        self,
        message: str = "Failed to set up MFA method",
        details: Any | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, "SETUP_FAILED", details, status_code)


class VerificationFailed(MFAFlowError):
    """Raised when a submitted code is rejected."""

    def __init__(
        self,
        message: str = "Invalid verification code",
        details: Any | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, "VERIFICATION_FAILED", details, status_code)


class DisableFailed(MFAFlowError):
    """Raised when disabling MFA is rejected."""

    def __init__(
        self,
        message: str = "Failed to disable MFA",
        details: Any | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, "DISABLE_FAILED", details, status_code)


class RegenerationFailed(MFAFlowError):
    """Raised when backup-code regeneration is rejected."""

    def __init__(
        self,
        message: str = "Failed to generate backup codes",
        details: Any | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, "REGENERATION_FAILED", details, status_code)


class InvalidTransitionError(MFAFlowError):
    """Raised when a state machine operation is invoked from the wrong state."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "INVALID_TRANSITION")


class OperationInProgressError(MFAFlowError):
    """Raised when a second remote call is started while one is pending."""

    def __init__(self, message: str = "Another request is still in progress") -> None:
        super().__init__(message, "OPERATION_IN_PROGRESS")


def create_error_from_response(
    status_code: int,
    error_response: dict[str, Any | None] | None = None,
    default_message: str | None = None,
) -> MFAFlowError:
    """Create an appropriate error instance based on HTTP status code and error response."""
    message = (error_response or {}).get(
        "message", default_message or "An error occurred"
    )
    code = (error_response or {}).get("code", "UNKNOWN_ERROR")
    details = (error_response or {}).get("details")

    message_str = str(message) if message is not None else "An error occurred"
    code_str = str(code) if code is not None else "UNKNOWN_ERROR"

    if status_code == 400:
        return ValidationError(message_str, details)
    elif status_code == 401:
        return AuthenticationError(message_str, details)
    elif status_code == 403:
        return AuthorizationError(message_str, details)
    elif status_code == 404:
        return NotFoundError(message_str, details)
    elif status_code == 409:
        return ConflictError(message_str, details)
    elif status_code == 429:
        retry_after = (error_response or {}).get("retry_after")
        return RateLimitError(message_str, retry_after, details)
    elif status_code >= 500:
        return ServerError(message_str, details, status_code)
    else:
        return MFAFlowError(message_str, code_str, details, status_code)


def rejection(
    error: MFAFlowError,
    kind: type[SetupFailed | VerificationFailed | DisableFailed | RegenerationFailed],
) -> MFAFlowError:
    """Translate a server rejection into the operation's failure type.

    Transport failures and rate limiting pass through unchanged so callers can
    still tell a wrong code from an unreachable server.
    """
    if isinstance(error, (TransportError, RateLimitError, ServerError)):
        return error
    if isinstance(error, kind):
        return error
    translated = kind(error.message, error.details, error.status_code)
    translated.__cause__ = error
    return translated


def is_retryable_error(error: Exception) -> bool:
    """Check if an error is retryable (transport errors and 5xx server errors)."""
    if isinstance(error, TransportError):
        return True

    if isinstance(error, MFAFlowError) and error.status_code:
        return error.status_code >= 500

    return False


def user_message(error: MFAFlowError) -> str:
    """Return the text shown next to the failing control."""
    if isinstance(error, TransportError):
        return "Something went wrong. Please check your connection and try again."
    if isinstance(error, ServerError):
        return "Something went wrong. Please try again."
    return error.message


__all__ = [
    "MFAFlowError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "ServerError",
    "InvalidResponseError",
    "TransportError",
    "NetworkError",
    "TimeoutError",
    "SetupFailed",
    "VerificationFailed",
    "DisableFailed",
    "RegenerationFailed",
    "InvalidTransitionError",
    "OperationInProgressError",
    "create_error_from_response",
    "is_retryable_error",
    "rejection",
    "user_message",
]
