"""
Login pipeline hook.

Called by the host after a successful primary authentication. Either
lets the login through unchanged or short-circuits it into a TOTP
challenge: a 206 partial-success response pointing the client at the
second-factor endpoint, with the challenge token in a header.

Usage:
    hook = LoginPipelineHook(enrollment, issuer, config)

    result = await hook(AuthSucceeded(strategy="local", kuid="user-123"))
    if result.short_circuited:
        return result.response.to_dict()
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from cqrs_ddd_totp.application.challenge import ChallengeIssuer
from cqrs_ddd_totp.application.enrollment import SecretEnrollmentService
from cqrs_ddd_totp.config import TOTPConfig
from cqrs_ddd_totp.domain.events import TOTPChallengeIssued


logger = logging.getLogger("cqrs_ddd_totp.application.pipeline")

PARTIAL_CONTENT = 206


class HookState(str, Enum):
    """Outcome of the hook for one primary-auth event."""

    PASSTHROUGH = "passthrough"
    CHALLENGE_REQUIRED = "challenge_required"


@dataclass(frozen=True)
class AuthSucceeded:
    """Primary authentication succeeded for ``kuid`` using ``strategy``."""

    strategy: str
    kuid: str
    content: Any = None  # Host payload, passed back untouched


@dataclass(frozen=True)
class ChallengeResponse:
    """Short-circuit response replacing the normal login result."""

    headers: dict[str, str]
    status_code: int = PARTIAL_CONTENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": {
                "statusCode": self.status_code,
                "headers": dict(self.headers),
            }
        }


@dataclass(frozen=True)
class HookResult:
    state: HookState
    event: AuthSucceeded
    response: Optional[ChallengeResponse] = None
    events: list = field(default_factory=list)

    @property
    def short_circuited(self) -> bool:
        return self.state == HookState.CHALLENGE_REQUIRED

    @classmethod
    def passthrough(cls, event: AuthSucceeded) -> "HookResult":
        return cls(state=HookState.PASSTHROUGH, event=event)


class LoginPipelineHook:
    """
    Decide, per primary-auth event, whether a TOTP challenge is required.

    Errors raised while looking up the enrollment propagate: the hook
    never lets a login through because the store failed.
    """

    def __init__(
        self,
        enrollment: SecretEnrollmentService,
        issuer: ChallengeIssuer,
        config: Optional[TOTPConfig] = None,
    ):
        self.enrollment = enrollment
        self.issuer = issuer
        self.config = config or TOTPConfig()

    async def __call__(self, event: AuthSucceeded) -> HookResult:
        # Already answering a challenge: never re-challenge
        if event.strategy == self.config.strategy_name:
            return HookResult.passthrough(event)

        if not await self.enrollment.exists(event.kuid):
            return HookResult.passthrough(event)

        token = await self.issuer.issue(event.kuid)
        if token is None:
            # Enrollment removed between the lookup and the issuance
            logger.warning(f"TOTP enrollment of {event.kuid} vanished, passing through")
            return HookResult.passthrough(event)

        logger.info(
            f"Login of {event.kuid} via '{event.strategy}' requires TOTP challenge"
        )
        return HookResult(
            state=HookState.CHALLENGE_REQUIRED,
            event=event,
            response=ChallengeResponse(
                headers={
                    "Location": self.config.challenge_location,
                    self.config.token_header: token,
                }
            ),
            events=[TOTPChallengeIssued(subject_id=event.kuid, strategy=event.strategy)],
        )


__all__ = [
    "HookState",
    "AuthSucceeded",
    "ChallengeResponse",
    "HookResult",
    "LoginPipelineHook",
]
