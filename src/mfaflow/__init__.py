"""
mfaflow

Multi-factor authentication enrollment and verification flows for Python
clients of a REST authentication service. Provides the TOTP/SMS/email
enrollment wizard, the verification dialog with backup-code fallback, and
a typed async client for the service's MFA endpoints.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from .account import MFAAccount, RegeneratedBackupCodes
from .backup_codes import render_backup_codes, write_backup_codes
from .client import MFAClient
from .config import ClientConfig
from .enrollment import EnrollmentWizard
from .exceptions import *
from .methods import MFAMethod
from .models import *
from .ports import (
    CacheInvalidator,
    LoggingNotifier,
    NoticeLevel,
    Notifier,
    NullCacheInvalidator,
    Verifier,
)
from .sessions import EnrollmentSession, EnrollmentStep, VerificationSession
from .verification import VerificationDialog, VerificationOutcome

__version__ = "1.0.0"

__all__ = [
    "MFAClient",
    "ClientConfig",
    "MFAMethod",
    # State machines
    "EnrollmentWizard",
    "EnrollmentSession",
    "EnrollmentStep",
    "VerificationDialog",
    "VerificationOutcome",
    "VerificationSession",
    "MFAAccount",
    "RegeneratedBackupCodes",
    # Collaborators
    "Verifier",
    "Notifier",
    "NoticeLevel",
    "CacheInvalidator",
    "LoggingNotifier",
    "NullCacheInvalidator",
    "render_backup_codes",
    "write_backup_codes",
    # Exceptions
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
    # Models
    "MFAStatus",
    "TOTPSetupResponse",
    "SetupAcknowledgement",
    "VerifyResult",
    "BackupCodeVerifyResult",
    "ChallengeResponse",
    "DisableResponse",
    "BackupCodesResponse",
    "LoginResponse",
    "LoginChallengeStatus",
    "LoginVerifyResponse",
    "UserInfo",
]
