"""mfaflow models package.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

from .mfa_models import (
    BackupCodesResponse,
    BackupCodeVerifyResult,
    ChallengeResponse,
    DisableRequest,
    DisableResponse,
    MFAStatus,
    RegenerateBackupCodesRequest,
    SetupAcknowledgement,
    SMSSetupRequest,
    TOTPSetupResponse,
    VerifyCodeRequest,
    VerifyResult,
    WireModel,
)
from .user_models import (
    LoginChallengeStatus,
    LoginResponse,
    LoginVerifyRequest,
    LoginVerifyResponse,
    UserInfo,
)

SetupResult = TOTPSetupResponse | SetupAcknowledgement

__all__ = [
    # MFA models
    "BackupCodesResponse",
    "BackupCodeVerifyResult",
    "ChallengeResponse",
    "DisableRequest",
    "DisableResponse",
    "MFAStatus",
    "RegenerateBackupCodesRequest",
    "SetupAcknowledgement",
    "SetupResult",
    "SMSSetupRequest",
    "TOTPSetupResponse",
    "VerifyCodeRequest",
    "VerifyResult",
    "WireModel",
    # Login models
    "LoginChallengeStatus",
    "LoginResponse",
    "LoginVerifyRequest",
    "LoginVerifyResponse",
    "UserInfo",
]
