"""
TOTP result types.

These represent the outcomes of enrollment and challenge operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass
class EnrollmentResult:
    """Result of enrolling or re-enrolling a TOTP secret."""
    user_id: str
    secret: str  # Base32 secret, shown once for manual entry
    provisioning_uri: Optional[str] = None  # For QR code generation


@dataclass
class RemoveEnrollmentResult:
    """Result of removing an enrollment."""
    user_id: str
    removed: bool = True


@dataclass
class ChallengeVerificationResult:
    """
    Result of answering a TOTP challenge.

    On failure ``user_id`` is None and ``message`` is the generic
    "wrong code", whatever went wrong.
    """
    user_id: Optional[str] = None
    message: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_success(self) -> bool:
        return self.user_id is not None


# ═══════════════════════════════════════════════════════════════
# QUERY RESULTS
# ═══════════════════════════════════════════════════════════════


@dataclass
class EnrollmentStatusResult:
    """Result of CheckTOTPEnrolled query."""
    enabled: bool
    user_id: str


@dataclass
class EnrollmentInfoResult:
    """Result of GetTOTPEnrollmentInfo query."""
    user_id: str


__all__ = [
    "EnrollmentResult",
    "RemoveEnrollmentResult",
    "ChallengeVerificationResult",
    "EnrollmentStatusResult",
    "EnrollmentInfoResult",
]
