"""
Domain events for TOTP second-factor authentication.

Domain events represent facts that have happened in the domain.
They are immutable records of state changes and never carry the
shared secret or a challenge token value.

Uses DomainEvent base class from py-cqrs-ddd-toolkit.
"""

from dataclasses import dataclass
from typing import Dict, Any

from cqrs_ddd.ddd import DomainEvent


class _EnrollmentEvent:
    """Mixin binding events to the TOTPEnrollment aggregate."""

    subject_id: str

    @property
    def aggregate_type(self) -> str:
        return "TOTPEnrollment"

    @property
    def aggregate_id(self) -> str:
        return self.subject_id


@dataclass(frozen=True)
class TOTPEnrolled(_EnrollmentEvent, DomainEvent):
    """Raised when an identity enrolls a shared secret."""

    subject_id: str  # Named to avoid conflict with base class user_id
    secret_provided: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TOTPEnrolled":
        return cls(
            subject_id=data["subject_id"],
            secret_provided=data.get("secret_provided", False),
            event_id=data.get("event_id"),
            correlation_id=data.get("correlation_id"),
            causation_id=data.get("causation_id"),
            user_id=data.get("user_id"),
        )


@dataclass(frozen=True)
class TOTPEnrollmentUpdated(_EnrollmentEvent, DomainEvent):
    """Raised when an identity's shared secret is replaced."""

    subject_id: str
    secret_provided: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TOTPEnrollmentUpdated":
        return cls(
            subject_id=data["subject_id"],
            secret_provided=data.get("secret_provided", False),
            event_id=data.get("event_id"),
            correlation_id=data.get("correlation_id"),
            causation_id=data.get("causation_id"),
            user_id=data.get("user_id"),
        )


@dataclass(frozen=True)
class TOTPEnrollmentRemoved(_EnrollmentEvent, DomainEvent):
    """Raised when an identity's enrollment record is deleted."""

    subject_id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TOTPEnrollmentRemoved":
        return cls(
            subject_id=data["subject_id"],
            event_id=data.get("event_id"),
            correlation_id=data.get("correlation_id"),
            causation_id=data.get("causation_id"),
            user_id=data.get("user_id"),
        )


@dataclass(frozen=True)
class TOTPChallengeIssued(_EnrollmentEvent, DomainEvent):
    """Raised when a primary login is short-circuited into a TOTP challenge."""

    subject_id: str
    strategy: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TOTPChallengeIssued":
        return cls(
            subject_id=data["subject_id"],
            strategy=data.get("strategy", ""),
            event_id=data.get("event_id"),
            correlation_id=data.get("correlation_id"),
            causation_id=data.get("causation_id"),
            user_id=data.get("user_id"),
        )


@dataclass(frozen=True)
class TOTPChallengeVerified(_EnrollmentEvent, DomainEvent):
    """Raised when a challenge token and code were accepted."""

    subject_id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TOTPChallengeVerified":
        return cls(
            subject_id=data["subject_id"],
            event_id=data.get("event_id"),
            correlation_id=data.get("correlation_id"),
            causation_id=data.get("causation_id"),
            user_id=data.get("user_id"),
        )


@dataclass(frozen=True)
class TOTPChallengeRejected(DomainEvent):
    """
    Raised when a verification attempt fails.

    Carries no identity: a rejected attempt may not map to any record.
    """

    reason: str = "wrong code"

    @property
    def aggregate_type(self) -> str:
        return "TOTPEnrollment"

    @property
    def aggregate_id(self) -> str:
        return ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TOTPChallengeRejected":
        return cls(
            reason=data.get("reason", "wrong code"),
            event_id=data.get("event_id"),
            correlation_id=data.get("correlation_id"),
            causation_id=data.get("causation_id"),
            user_id=data.get("user_id"),
        )


__all__ = [
    "TOTPEnrolled",
    "TOTPEnrollmentUpdated",
    "TOTPEnrollmentRemoved",
    "TOTPChallengeIssued",
    "TOTPChallengeVerified",
    "TOTPChallengeRejected",
]
