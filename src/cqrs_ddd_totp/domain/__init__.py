"""Domain layer for TOTP second-factor authentication."""

from cqrs_ddd_totp.domain.value_objects import (
    TOTPSecret,
    EnrolledSecret,
    VerificationOutcome,
    generate_secret,
    generate_challenge_token,
)
from cqrs_ddd_totp.domain.events import (
    TOTPEnrolled,
    TOTPEnrollmentUpdated,
    TOTPEnrollmentRemoved,
    TOTPChallengeIssued,
    TOTPChallengeVerified,
    TOTPChallengeRejected,
)
from cqrs_ddd_totp.domain.errors import (
    AuthDomainError,
    TOTPError,
    NotEnrolledError,
    StoreError,
    RecordNotFoundError,
    ConfigurationError,
)

__all__ = [
    # Value Objects
    "TOTPSecret",
    "EnrolledSecret",
    "VerificationOutcome",
    "generate_secret",
    "generate_challenge_token",
    # Events
    "TOTPEnrolled",
    "TOTPEnrollmentUpdated",
    "TOTPEnrollmentRemoved",
    "TOTPChallengeIssued",
    "TOTPChallengeVerified",
    "TOTPChallengeRejected",
    # Errors
    "AuthDomainError",
    "TOTPError",
    "NotEnrolledError",
    "StoreError",
    "RecordNotFoundError",
    "ConfigurationError",
]
