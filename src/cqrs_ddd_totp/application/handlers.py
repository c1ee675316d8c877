"""
TOTP command and query handlers.

Handlers adapt the enrollment and challenge services to the
command/query bus and attach domain events to the responses.

NotEnrolledError and StoreError raised by the services propagate to
the caller; a failed challenge verification is a normal result.

Uses CommandHandler/QueryHandler base classes from py-cqrs-ddd-toolkit.
"""

import logging
from typing import Optional

from cqrs_ddd.core import CommandHandler, CommandResponse, QueryHandler, QueryResponse

from cqrs_ddd_totp.application.challenge import ChallengeVerifier
from cqrs_ddd_totp.application.commands import (
    EnrollTOTP,
    UpdateTOTPEnrollment,
    RemoveTOTPEnrollment,
    VerifyTOTPChallenge,
)
from cqrs_ddd_totp.application.enrollment import SecretEnrollmentService
from cqrs_ddd_totp.application.queries import (
    CheckTOTPEnrolled,
    GetTOTPEnrollmentInfo,
)
from cqrs_ddd_totp.application.results import (
    ChallengeVerificationResult,
    EnrollmentInfoResult,
    EnrollmentResult,
    EnrollmentStatusResult,
    RemoveEnrollmentResult,
)
from cqrs_ddd_totp.config import TOTPConfig
from cqrs_ddd_totp.domain.events import (
    TOTPChallengeRejected,
    TOTPChallengeVerified,
    TOTPEnrolled,
    TOTPEnrollmentRemoved,
    TOTPEnrollmentUpdated,
)
from cqrs_ddd_totp.domain.value_objects import EnrolledSecret


logger = logging.getLogger("cqrs_ddd_totp.application.handlers")


def _enrollment_result(
    enrolled: EnrolledSecret, config: TOTPConfig
) -> EnrollmentResult:
    try:
        uri = enrolled.totp_secret().get_provisioning_uri(
            username=enrolled.kuid,
            issuer=config.issuer_name,
            interval=config.period,
        )
    except ValueError as e:
        # Caller-supplied secrets are not validated
        logger.warning(f"No provisioning URI for {enrolled.kuid}: {e}")
        uri = None

    return EnrollmentResult(
        user_id=enrolled.kuid,
        secret=enrolled.secret,
        provisioning_uri=uri,
    )


# ═══════════════════════════════════════════════════════════════
# COMMAND HANDLERS
# ═══════════════════════════════════════════════════════════════


class EnrollTOTPHandler(CommandHandler[EnrollmentResult]):
    """Handle TOTP enrollment (upsert)."""

    def __init__(
        self, enrollment: SecretEnrollmentService, config: Optional[TOTPConfig] = None
    ):
        super().__init__()
        self.enrollment = enrollment
        self.config = config or TOTPConfig()

    async def handle(self, command: EnrollTOTP) -> CommandResponse[EnrollmentResult]:
        await self.enrollment.validate(command.user_id, command.secret)
        enrolled = await self.enrollment.create(command.user_id, command.secret)

        return CommandResponse(
            result=_enrollment_result(enrolled, self.config),
            events=[
                TOTPEnrolled(
                    subject_id=command.user_id,
                    secret_provided=command.secret is not None,
                )
            ],
            correlation_id=command.correlation_id,
            causation_id=command.command_id,
        )


class UpdateTOTPEnrollmentHandler(CommandHandler[EnrollmentResult]):
    """Handle TOTP secret replacement."""

    def __init__(
        self, enrollment: SecretEnrollmentService, config: Optional[TOTPConfig] = None
    ):
        super().__init__()
        self.enrollment = enrollment
        self.config = config or TOTPConfig()

    async def handle(
        self, command: UpdateTOTPEnrollment
    ) -> CommandResponse[EnrollmentResult]:
        await self.enrollment.validate(command.user_id, command.secret)
        enrolled = await self.enrollment.update(command.user_id, command.secret)

        return CommandResponse(
            result=_enrollment_result(enrolled, self.config),
            events=[
                TOTPEnrollmentUpdated(
                    subject_id=command.user_id,
                    secret_provided=command.secret is not None,
                )
            ],
            correlation_id=command.correlation_id,
            causation_id=command.command_id,
        )


class RemoveTOTPEnrollmentHandler(CommandHandler[RemoveEnrollmentResult]):
    """Handle TOTP enrollment removal."""

    def __init__(self, enrollment: SecretEnrollmentService):
        super().__init__()
        self.enrollment = enrollment

    async def handle(
        self, command: RemoveTOTPEnrollment
    ) -> CommandResponse[RemoveEnrollmentResult]:
        await self.enrollment.delete(command.user_id)

        return CommandResponse(
            result=RemoveEnrollmentResult(user_id=command.user_id),
            events=[TOTPEnrollmentRemoved(subject_id=command.user_id)],
            correlation_id=command.correlation_id,
            causation_id=command.command_id,
        )


class VerifyTOTPChallengeHandler(CommandHandler[ChallengeVerificationResult]):
    """
    Handle a TOTP challenge answer.

    Always returns a result: unknown/expired token and wrong code map
    to the same failed ChallengeVerificationResult.
    """

    def __init__(self, verifier: ChallengeVerifier):
        super().__init__()
        self.verifier = verifier

    async def handle(
        self, command: VerifyTOTPChallenge
    ) -> CommandResponse[ChallengeVerificationResult]:
        outcome = await self.verifier.verify(command.token, command.code)

        if outcome.is_success:
            result = ChallengeVerificationResult(user_id=outcome.kuid)
            events = [TOTPChallengeVerified(subject_id=outcome.kuid)]
        else:
            result = ChallengeVerificationResult(message=outcome.message)
            events = [TOTPChallengeRejected(reason=outcome.message)]

        return CommandResponse(
            result=result,
            events=events,
            correlation_id=command.correlation_id,
            causation_id=command.command_id,
        )


# ═══════════════════════════════════════════════════════════════
# QUERY HANDLERS
# ═══════════════════════════════════════════════════════════════


class CheckTOTPEnrolledHandler(QueryHandler[EnrollmentStatusResult]):
    """
    Handle CheckTOTPEnrolled query.

    Returns whether TOTP 2FA is enabled for a user.
    """

    def __init__(self, enrollment: SecretEnrollmentService):
        super().__init__()
        self.enrollment = enrollment

    async def handle(
        self, query: CheckTOTPEnrolled
    ) -> QueryResponse[EnrollmentStatusResult]:
        enabled = await self.enrollment.exists(query.user_id)

        return QueryResponse(
            result=EnrollmentStatusResult(enabled=enabled, user_id=query.user_id)
        )


class GetTOTPEnrollmentInfoHandler(QueryHandler[EnrollmentInfoResult]):
    """Handle GetTOTPEnrollmentInfo query."""

    def __init__(self, enrollment: SecretEnrollmentService):
        super().__init__()
        self.enrollment = enrollment

    async def handle(
        self, query: GetTOTPEnrollmentInfo
    ) -> QueryResponse[EnrollmentInfoResult]:
        info = await self.enrollment.get_info(query.user_id)

        return QueryResponse(result=EnrollmentInfoResult(user_id=info["kuid"]))


__all__ = [
    "EnrollTOTPHandler",
    "UpdateTOTPEnrollmentHandler",
    "RemoveTOTPEnrollmentHandler",
    "VerifyTOTPChallengeHandler",
    "CheckTOTPEnrolledHandler",
    "GetTOTPEnrollmentInfoHandler",
]
