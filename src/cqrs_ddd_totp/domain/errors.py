"""
Domain errors for the TOTP second-factor system.

These errors provide a consistent interface for reporting failures
across the enrollment service, the store adapters and configuration.

A failed challenge verification is NOT an error: it is a normal
result value (see ``VerificationOutcome``).
"""

from typing import Optional, Any


class AuthDomainError(Exception):
    """Base class for all TOTP domain errors."""

    def __init__(
        self,
        message: str,
        code: str = "AUTH_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class TOTPError(AuthDomainError):
    """Base class for TOTP-related precondition errors."""

    pass


class NotEnrolledError(TOTPError):
    """Raised when an operation targets an identity with no enrolled secret."""

    def __init__(
        self,
        message: str = "TOTP is not enabled for this user",
        code: str = "NOT_ENROLLED",
        details: Optional[dict[str, Any]] = None,
        kuid: Optional[str] = None,
    ):
        if kuid is not None:
            details = {**(details or {}), "kuid": kuid}
        super().__init__(message, code, details)
        self.kuid = kuid


class StoreError(AuthDomainError):
    """Raised when the record store fails (network, consistency, ...)."""

    def __init__(
        self,
        message: str = "Record store failure",
        code: str = "STORE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


class RecordNotFoundError(StoreError):
    """Raised when a write requires an existing record that is missing."""

    def __init__(
        self,
        message: str = "Record not found",
        code: str = "RECORD_NOT_FOUND",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


class ConfigurationError(AuthDomainError):
    """Raised when the TOTP configuration is malformed."""

    def __init__(
        self,
        message: str,
        code: str = "CONFIGURATION_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
