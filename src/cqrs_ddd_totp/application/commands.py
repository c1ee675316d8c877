"""
TOTP commands.

Commands represent intentions to change state. Each command
is handled by a corresponding handler.

Uses Command base class from py-cqrs-ddd-toolkit.
"""

from dataclasses import dataclass
from typing import Optional

from cqrs_ddd.core import Command


@dataclass(kw_only=True)
class EnrollTOTP(Command):
    """
    Enroll a user in TOTP 2FA (upsert).

    The secret is generated server side unless provided.
    """

    user_id: str
    secret: Optional[str] = None


@dataclass(kw_only=True)
class UpdateTOTPEnrollment(Command):
    """
    Replace the secret of an enrolled user.

    Fails with NotEnrolledError if the user has no enrollment.
    """

    user_id: str
    secret: Optional[str] = None


@dataclass(kw_only=True)
class RemoveTOTPEnrollment(Command):
    """Remove a user's enrollment, pending challenge included."""

    user_id: str


@dataclass(kw_only=True)
class VerifyTOTPChallenge(Command):
    """
    Answer a TOTP challenge.

    The token is consumed by this command whatever the outcome.
    """

    token: str
    code: str


__all__ = [
    "EnrollTOTP",
    "UpdateTOTPEnrollment",
    "RemoveTOTPEnrollment",
    "VerifyTOTPChallenge",
]
