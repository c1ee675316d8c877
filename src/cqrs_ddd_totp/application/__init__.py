"""Application layer for TOTP - Services, Commands, Queries, Handlers, Results."""

from cqrs_ddd_totp.application.enrollment import SecretEnrollmentService
from cqrs_ddd_totp.application.challenge import ChallengeIssuer, ChallengeVerifier
from cqrs_ddd_totp.application.pipeline import (
    HookState,
    AuthSucceeded,
    ChallengeResponse,
    HookResult,
    LoginPipelineHook,
)
from cqrs_ddd_totp.application.commands import (
    EnrollTOTP,
    UpdateTOTPEnrollment,
    RemoveTOTPEnrollment,
    VerifyTOTPChallenge,
)
from cqrs_ddd_totp.application.queries import (
    CheckTOTPEnrolled,
    GetTOTPEnrollmentInfo,
)
from cqrs_ddd_totp.application.results import (
    EnrollmentResult,
    RemoveEnrollmentResult,
    ChallengeVerificationResult,
    EnrollmentStatusResult,
    EnrollmentInfoResult,
)
from cqrs_ddd_totp.application.handlers import (
    EnrollTOTPHandler,
    UpdateTOTPEnrollmentHandler,
    RemoveTOTPEnrollmentHandler,
    VerifyTOTPChallengeHandler,
    CheckTOTPEnrolledHandler,
    GetTOTPEnrollmentInfoHandler,
)

__all__ = [
    # Services
    "SecretEnrollmentService",
    "ChallengeIssuer",
    "ChallengeVerifier",
    # Pipeline
    "HookState",
    "AuthSucceeded",
    "ChallengeResponse",
    "HookResult",
    "LoginPipelineHook",
    # Commands
    "EnrollTOTP",
    "UpdateTOTPEnrollment",
    "RemoveTOTPEnrollment",
    "VerifyTOTPChallenge",
    # Queries
    "CheckTOTPEnrolled",
    "GetTOTPEnrollmentInfo",
    # Results
    "EnrollmentResult",
    "RemoveEnrollmentResult",
    "ChallengeVerificationResult",
    "EnrollmentStatusResult",
    "EnrollmentInfoResult",
    # Handlers
    "EnrollTOTPHandler",
    "UpdateTOTPEnrollmentHandler",
    "RemoveTOTPEnrollmentHandler",
    "VerifyTOTPChallengeHandler",
    "CheckTOTPEnrolledHandler",
    "GetTOTPEnrollmentInfoHandler",
]
