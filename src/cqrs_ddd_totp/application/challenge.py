"""
Challenge issuance and verification.

Flow:
1. ChallengeIssuer.issue(kuid) after a successful primary login
   → merges ``pending_token`` + ``pending_token_issued_at`` onto the record
2. ChallengeVerifier.verify(token, code)
   → looks the record up by token (not older than the expiration time)
   → invalidates the token with a full replace BEFORE checking the code
   → validates the code against the stored secret

Consuming the token before checking the code means a token backs at most
one verification attempt, whatever its outcome.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from cqrs_ddd_totp.config import TOTPConfig
from cqrs_ddd_totp.domain.value_objects import (
    PENDING_TOKEN_FIELD,
    PENDING_TOKEN_ISSUED_AT_FIELD,
    SECRET_FIELD,
    EnrolledSecret,
    VerificationOutcome,
    generate_challenge_token,
    to_epoch_millis,
)
from cqrs_ddd_totp.infrastructure.ports.record_store import (
    ConditionalReplaceCapability,
    RangeFilter,
    RecordQuery,
    RecordStorePort,
    Refresh,
)


logger = logging.getLogger("cqrs_ddd_totp.application.challenge")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _redact(token: str) -> str:
    return f"{token[:4]}..." if token else "<empty>"


class ChallengeIssuer:
    """
    Mint challenge tokens for enrolled identities.

    Only the most recently issued token of an identity is ever honored:
    issuing overwrites the previous value, and lookup is by exact value.
    """

    def __init__(self, store: RecordStorePort, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    async def issue(self, kuid: str) -> Optional[str]:
        """
        Issue a challenge token.

        Returns:
            The token, or None when the identity is not enrolled
            (no challenge needed, nothing written)
        """
        record = await self.store.get(kuid)
        if not EnrolledSecret.from_record(kuid, record).is_enrolled:
            logger.debug(f"No TOTP enrollment for {kuid}, no challenge issued")
            return None

        token = generate_challenge_token()
        await self.store.update(
            kuid,
            {
                PENDING_TOKEN_FIELD: token,
                PENDING_TOKEN_ISSUED_AT_FIELD: to_epoch_millis(self.clock()),
            },
            refresh=Refresh.WAIT_FOR,
        )

        logger.info(f"Issued TOTP challenge {_redact(token)} for {kuid}")
        return token


class ChallengeVerifier:
    """
    Verify a challenge token together with a TOTP code.

    Unknown token, expired token and wrong code all produce the same
    ``VerificationOutcome.failure()``.

    When the store implements ConditionalReplaceCapability, the token is
    invalidated with a compare-and-swap so that two concurrent attempts
    with the same token cannot both get past the invalidation. Otherwise
    a plain replace is used and that narrow race remains.
    """

    def __init__(
        self,
        store: RecordStorePort,
        config: Optional[TOTPConfig] = None,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.config = config or TOTPConfig()
        self.clock = clock

    async def verify(
        self, token: str, code: str, now: Optional[datetime] = None
    ) -> VerificationOutcome:
        if now is None:
            now = self.clock()
        # Naive datetimes are UTC, as in to_epoch_millis
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        else:
            now = now.astimezone(timezone.utc)

        if not token:
            return VerificationOutcome.failure()

        cutoff = now - self.config.token_expiration
        result = await self.store.search(
            RecordQuery(
                term={PENDING_TOKEN_FIELD: token},
                ranges=(
                    RangeFilter(
                        PENDING_TOKEN_ISSUED_AT_FIELD, gte=to_epoch_millis(cutoff)
                    ),
                ),
                size=1,
            )
        )

        if not result.hits:
            logger.info(f"TOTP challenge {_redact(token)} unknown or expired")
            return VerificationOutcome.failure()

        if result.total > 1:
            logger.warning(
                f"TOTP challenge {_redact(token)} matches {result.total} records"
            )

        hit = result.hits[0]
        enrolled = EnrolledSecret.from_record(hit.id, hit.content)

        if not await self._invalidate(enrolled, token):
            logger.info(f"TOTP challenge {_redact(token)} already consumed")
            return VerificationOutcome.failure()

        if not enrolled.is_enrolled:
            logger.warning(f"Pending TOTP challenge without secret for {hit.id}")
            return VerificationOutcome.failure()

        try:
            valid = enrolled.totp_secret().verify_code(
                code,
                valid_window=self.config.window,
                interval=self.config.period,
                for_time=now,
            )
        except ValueError as e:
            # binascii.Error: stored secret is not valid base32
            logger.warning(f"Stored TOTP secret for {hit.id} is malformed: {e}")
            valid = False

        if not valid:
            logger.info(f"Wrong TOTP code for {hit.id}")
            return VerificationOutcome.failure()

        logger.info(f"TOTP challenge verified for {hit.id}")
        return VerificationOutcome.success(hit.id)

    async def _invalidate(self, enrolled: EnrolledSecret, token: str) -> bool:
        """
        Drop the pending token, keeping only the secret.

        The swap expects both the token and the secret that was read, so a
        secret changed meanwhile is never overwritten with the stale one.
        """
        if not isinstance(self.store, ConditionalReplaceCapability):
            await self.store.replace(
                enrolled.kuid, self._without_token(enrolled), refresh=Refresh.WAIT_FOR
            )
            return True

        if await self._swap(enrolled, token):
            return True

        # Lost the race. If the token survived a secret change, still
        # consume it against the current secret.
        current = EnrolledSecret.from_record(
            enrolled.kuid, await self.store.get(enrolled.kuid)
        )
        if current.pending_token == token:
            await self._swap(current, token)
        return False

    async def _swap(self, enrolled: EnrolledSecret, token: str) -> bool:
        return await self.store.replace_if(
            enrolled.kuid,
            self._without_token(enrolled),
            {PENDING_TOKEN_FIELD: token, SECRET_FIELD: enrolled.secret},
            refresh=Refresh.WAIT_FOR,
        )

    @staticmethod
    def _without_token(enrolled: EnrolledSecret) -> dict:
        return {SECRET_FIELD: enrolled.secret} if enrolled.is_enrolled else {}


__all__ = ["ChallengeIssuer", "ChallengeVerifier", "utcnow"]
