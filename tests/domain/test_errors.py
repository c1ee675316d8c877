"""
Tests for Domain Errors.
"""

from cqrs_ddd_totp.domain.errors import (
    AuthDomainError,
    ConfigurationError,
    NotEnrolledError,
    RecordNotFoundError,
    StoreError,
    TOTPError,
)


def test_auth_domain_error():
    err = AuthDomainError("msg", "CODE", {"a": 1})

    assert str(err) == "msg"
    assert err.message == "msg"
    assert err.code == "CODE"
    assert err.details == {"a": 1}


def test_auth_domain_error_defaults():
    err = AuthDomainError("msg")

    assert err.code == "AUTH_ERROR"
    assert err.details == {}


def test_not_enrolled_error():
    err = NotEnrolledError(kuid="user-123")

    assert isinstance(err, TOTPError)
    assert isinstance(err, AuthDomainError)
    assert err.code == "NOT_ENROLLED"
    assert err.message == "TOTP is not enabled for this user"
    assert err.kuid == "user-123"
    assert err.details == {"kuid": "user-123"}


def test_not_enrolled_error_keeps_details():
    err = NotEnrolledError(details={"op": "delete"}, kuid="u1")
    assert err.details == {"op": "delete", "kuid": "u1"}


def test_store_errors():
    err = RecordNotFoundError(details={"kuid": "u1"})

    assert isinstance(err, StoreError)
    assert err.code == "RECORD_NOT_FOUND"
    assert StoreError().code == "STORE_ERROR"


def test_configuration_error():
    err = ConfigurationError("bad window")

    assert err.code == "CONFIGURATION_ERROR"
    assert str(err) == "bad window"
