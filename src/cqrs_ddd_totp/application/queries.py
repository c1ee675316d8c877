"""
TOTP queries.

Queries represent read-only requests for data. They do not
modify state and return a result.

Uses Query base class from py-cqrs-ddd-toolkit.
"""

from dataclasses import dataclass

from cqrs_ddd.core import Query


@dataclass(kw_only=True)
class CheckTOTPEnrolled(Query):
    """Check whether a user has an enrolled TOTP secret."""

    user_id: str


@dataclass(kw_only=True)
class GetTOTPEnrollmentInfo(Query):
    """
    Get the public descriptor of a user's enrollment.

    Never returns the secret. Fails with NotEnrolledError if the
    user has no enrollment.
    """

    user_id: str


__all__ = ["CheckTOTPEnrolled", "GetTOTPEnrollmentInfo"]
