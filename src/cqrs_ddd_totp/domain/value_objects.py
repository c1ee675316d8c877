"""
Domain value objects for TOTP second-factor authentication.

Value objects are immutable and have no identity: they are defined
only by their attributes.

Uses ValueObject base class from py-cqrs-ddd-toolkit.
"""

import base64
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

import pyotp
from cqrs_ddd.ddd import ValueObject


# Field names as they appear in the record store
SECRET_FIELD = "secret"
PENDING_TOKEN_FIELD = "pending_token"
PENDING_TOKEN_ISSUED_AT_FIELD = "pending_token_issued_at"

SECRET_BYTES = 16
CHALLENGE_TOKEN_BYTES = 16


def generate_secret() -> str:
    """
    Generate a new shared secret.

    16 bytes from the OS CSPRNG, base32-encoded without padding
    (authenticator apps reject the ``=`` padding characters).
    """
    raw = secrets.token_bytes(SECRET_BYTES)
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def generate_challenge_token() -> str:
    """Generate an unpredictable 128-bit challenge token (URL-safe text)."""
    return secrets.token_urlsafe(CHALLENGE_TOKEN_BYTES)


def to_epoch_millis(moment: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def from_epoch_millis(value: Union[int, float]) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


# ═══════════════════════════════════════════════════════════════
# TOTP SECRET
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TOTPSecret(ValueObject):
    """
    TOTP secret for time-based OTP using pyotp.

    Used for authenticator app-based 2FA (Google Authenticator, Authy, etc.).
    """

    secret: str  # Base32 encoded secret

    @classmethod
    def generate(cls) -> "TOTPSecret":
        """Generate a new random TOTP secret."""
        return cls(secret=generate_secret())

    def to_bytes(self) -> bytes:
        """
        Decode the base32 text to the raw key bytes.

        Raises:
            binascii.Error: If the stored text is not valid base32
        """
        padded = self.secret + "=" * (-len(self.secret) % 8)
        return base64.b32decode(padded, casefold=True)

    def _totp(self, interval: int) -> pyotp.TOTP:
        # Normalized through the raw bytes so that malformed text fails early
        normalized = base64.b32encode(self.to_bytes()).decode("ascii").rstrip("=")
        return pyotp.TOTP(normalized, interval=interval)

    def get_provisioning_uri(
        self, username: str, issuer: str, interval: int = 30
    ) -> str:
        """
        Generate a provisioning URI for QR code display.

        Users scan this with their authenticator app to set up 2FA.
        """
        return self._totp(interval).provisioning_uri(name=username, issuer_name=issuer)

    def verify_code(
        self,
        code: str,
        valid_window: int = 1,
        interval: int = 30,
        for_time: Optional[datetime] = None,
    ) -> bool:
        """
        Verify a TOTP code against this secret.

        Args:
            code: The 6-digit code from the user's authenticator app
            valid_window: Number of time steps before/after current to accept
            interval: Seconds per time step
            for_time: Reference time (defaults to now)

        Returns:
            True if the code is valid
        """
        if for_time is None:
            for_time = datetime.now(timezone.utc)
        return self._totp(interval).verify(
            str(code), for_time=for_time, valid_window=valid_window
        )

    def code_at(self, for_time: datetime, interval: int = 30) -> str:
        """Get the code for a given time (useful for testing)."""
        return self._totp(interval).at(for_time)


# ═══════════════════════════════════════════════════════════════
# ENROLLED SECRET RECORD
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class EnrolledSecret(ValueObject):
    """
    Per-identity enrollment record.

    ``pending_token`` and ``pending_token_issued_at`` are present only
    between challenge issuance and its first verification attempt.
    """

    kuid: str
    secret: Optional[str] = None
    pending_token: Optional[str] = None
    pending_token_issued_at: Optional[datetime] = None

    @property
    def is_enrolled(self) -> bool:
        return bool(self.secret)

    @property
    def has_pending_challenge(self) -> bool:
        return self.pending_token is not None

    def totp_secret(self) -> TOTPSecret:
        return TOTPSecret(secret=self.secret or "")

    @classmethod
    def from_record(
        cls, kuid: str, record: Optional[dict[str, Any]]
    ) -> "EnrolledSecret":
        """Build from the opaque store record (issued-at in epoch millis)."""
        record = record or {}
        issued_at = record.get(PENDING_TOKEN_ISSUED_AT_FIELD)
        return cls(
            kuid=kuid,
            secret=record.get(SECRET_FIELD),
            pending_token=record.get(PENDING_TOKEN_FIELD),
            pending_token_issued_at=(
                from_epoch_millis(issued_at) if issued_at is not None else None
            ),
        )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the opaque store record, omitting absent fields."""
        record: dict[str, Any] = {}
        if self.secret is not None:
            record[SECRET_FIELD] = self.secret
        if self.pending_token is not None:
            record[PENDING_TOKEN_FIELD] = self.pending_token
            if self.pending_token_issued_at is not None:
                record[PENDING_TOKEN_ISSUED_AT_FIELD] = to_epoch_millis(
                    self.pending_token_issued_at
                )
        return record

    def to_info(self) -> dict[str, Any]:
        """Minimal public descriptor; never exposes the secret."""
        return {"kuid": self.kuid}


@dataclass(frozen=True)
class VerificationOutcome(ValueObject):
    """
    Result of a challenge verification.

    ``kuid`` is None on failure; the message is the same
    for unknown, expired and wrong-code attempts.
    """

    kuid: Optional[str] = None
    message: Optional[str] = None

    WRONG_CODE = "wrong code"

    @property
    def is_success(self) -> bool:
        return self.kuid is not None

    @classmethod
    def success(cls, kuid: str) -> "VerificationOutcome":
        return cls(kuid=kuid)

    @classmethod
    def failure(cls) -> "VerificationOutcome":
        return cls(kuid=None, message=cls.WRONG_CODE)

    def to_dict(self) -> dict[str, Any]:
        if self.is_success:
            return {"kuid": self.kuid}
        return {"kuid": None, "message": self.message}


__all__ = [
    "SECRET_FIELD",
    "PENDING_TOKEN_FIELD",
    "PENDING_TOKEN_ISSUED_AT_FIELD",
    "generate_secret",
    "generate_challenge_token",
    "to_epoch_millis",
    "from_epoch_millis",
    "TOTPSecret",
    "EnrolledSecret",
    "VerificationOutcome",
]
