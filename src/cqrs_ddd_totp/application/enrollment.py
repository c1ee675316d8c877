"""
Secret enrollment.

CRUD over the per-identity shared secret. All operations are keyed by
the identity id (kuid) and write with ``Refresh.WAIT_FOR`` so that a
read issued right after returns the new state.
"""

import logging
from typing import Any, Optional

from cqrs_ddd_totp.domain.errors import NotEnrolledError
from cqrs_ddd_totp.domain.value_objects import (
    SECRET_FIELD,
    EnrolledSecret,
    generate_secret,
)
from cqrs_ddd_totp.infrastructure.ports.record_store import RecordStorePort, Refresh


logger = logging.getLogger("cqrs_ddd_totp.application.enrollment")


class SecretEnrollmentService:
    """
    Manage enrollment records.

    Usage:
        enrollment = SecretEnrollmentService(store)

        record = await enrollment.create("user-123")
        if await enrollment.exists("user-123"):
            ...
    """

    def __init__(self, store: RecordStorePort):
        self.store = store

    async def get(self, kuid: str) -> Optional[EnrolledSecret]:
        record = await self.store.get(kuid)
        if record is None:
            return None
        return EnrolledSecret.from_record(kuid, record)

    async def exists(self, kuid: str) -> bool:
        """True iff a record exists and its secret is set."""
        enrolled = await self.get(kuid)
        return enrolled is not None and enrolled.is_enrolled

    async def create(self, kuid: str, secret: Optional[str] = None) -> EnrolledSecret:
        """
        Enroll an identity (upsert).

        Args:
            kuid: Identity id
            secret: Caller-supplied base32 secret; generated when omitted

        Returns:
            The stored record
        """
        record = await self.store.create_or_replace(
            kuid,
            {SECRET_FIELD: secret or generate_secret()},
            refresh=Refresh.WAIT_FOR,
        )
        logger.info(
            f"Enrolled TOTP secret for {kuid} "
            f"({'provided' if secret else 'generated'})"
        )
        return EnrolledSecret.from_record(kuid, record)

    async def update(self, kuid: str, secret: Optional[str] = None) -> EnrolledSecret:
        """
        Replace the secret of an enrolled identity.

        Merge semantics: a pending challenge on the record is left untouched.

        Raises:
            NotEnrolledError: If the identity has no record
        """
        if await self.store.get(kuid) is None:
            raise NotEnrolledError(kuid=kuid)

        record = await self.store.update(
            kuid,
            {SECRET_FIELD: secret or generate_secret()},
            refresh=Refresh.WAIT_FOR,
        )
        logger.info(f"Updated TOTP secret for {kuid}")
        return EnrolledSecret.from_record(kuid, record)

    async def delete(self, kuid: str) -> None:
        """
        Remove the record entirely, pending challenge included.

        Raises:
            NotEnrolledError: If the identity has no record
        """
        if await self.store.get(kuid) is None:
            raise NotEnrolledError(kuid=kuid)

        await self.store.delete(kuid, refresh=Refresh.WAIT_FOR)
        logger.info(f"Removed TOTP enrollment for {kuid}")

    async def get_info(self, kuid: str) -> dict[str, Any]:
        """
        Public descriptor of the enrollment; never exposes the secret.

        Raises:
            NotEnrolledError: If the identity has no record
        """
        enrolled = await self.get(kuid)
        if enrolled is None:
            raise NotEnrolledError(kuid=kuid)
        return enrolled.to_info()

    async def validate(self, *args: Any, **kwargs: Any) -> bool:
        """
        Validate enrollment input.

        Any caller-supplied secret is accepted as is.
        """
        return True


__all__ = ["SecretEnrollmentService"]
