"""
Tests for Application Handlers.
"""

import pytest
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

from cqrs_ddd_totp.application.handlers import (
    EnrollTOTPHandler,
    UpdateTOTPEnrollmentHandler,
    RemoveTOTPEnrollmentHandler,
    VerifyTOTPChallengeHandler,
    CheckTOTPEnrolledHandler,
    GetTOTPEnrollmentInfoHandler,
)
from cqrs_ddd_totp.application.commands import (
    EnrollTOTP,
    UpdateTOTPEnrollment,
    RemoveTOTPEnrollment,
    VerifyTOTPChallenge,
)
from cqrs_ddd_totp.application.queries import CheckTOTPEnrolled, GetTOTPEnrollmentInfo
from cqrs_ddd_totp.config import TOTPConfig
from cqrs_ddd_totp.domain.errors import NotEnrolledError
from cqrs_ddd_totp.domain.events import (
    TOTPChallengeRejected,
    TOTPChallengeVerified,
    TOTPEnrolled,
    TOTPEnrollmentRemoved,
    TOTPEnrollmentUpdated,
)
from cqrs_ddd_totp.domain.value_objects import TOTPSecret


KNOWN_SECRET = "JBSWY3DPEHPK3PXP"


# ═══════════════════════════════════════════════════════════════
# ENROLLMENT
# ═══════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_enroll_totp(enrollment, store):
    handler = EnrollTOTPHandler(enrollment, TOTPConfig(issuer_name="Acme"))
    command = EnrollTOTP(user_id="user-123")

    response = await handler.handle(command)

    result = response.result
    assert result.user_id == "user-123"
    assert await store.get("user-123") == {"secret": result.secret}

    params = parse_qs(urlparse(result.provisioning_uri).query)
    assert params["secret"] == [result.secret]
    assert params["issuer"] == ["Acme"]

    (event,) = response.events
    assert isinstance(event, TOTPEnrolled)
    assert event.subject_id == "user-123"
    assert event.secret_provided is False
    assert response.causation_id == command.command_id
    assert response.correlation_id == command.correlation_id


@pytest.mark.asyncio
async def test_enroll_totp_with_secret(enrollment):
    handler = EnrollTOTPHandler(enrollment)

    response = await handler.handle(EnrollTOTP(user_id="u1", secret=KNOWN_SECRET))

    assert response.result.secret == KNOWN_SECRET
    assert response.events[0].secret_provided is True


@pytest.mark.asyncio
async def test_enroll_totp_malformed_secret_has_no_uri(enrollment, store):
    handler = EnrollTOTPHandler(enrollment)

    response = await handler.handle(EnrollTOTP(user_id="u1", secret="not base32!"))

    assert response.result.provisioning_uri is None
    assert await store.get("u1") == {"secret": "not base32!"}


@pytest.mark.asyncio
async def test_enroll_totp_calls_validate(enrollment):
    enrollment.validate = AsyncMock(return_value=True)
    handler = EnrollTOTPHandler(enrollment)

    await handler.handle(EnrollTOTP(user_id="u1", secret=KNOWN_SECRET))

    enrollment.validate.assert_awaited_once_with("u1", KNOWN_SECRET)


@pytest.mark.asyncio
async def test_update_enrollment(enrollment, store):
    await enrollment.create("user-123")
    handler = UpdateTOTPEnrollmentHandler(enrollment)

    response = await handler.handle(
        UpdateTOTPEnrollment(user_id="user-123", secret=KNOWN_SECRET)
    )

    assert response.result.secret == KNOWN_SECRET
    assert isinstance(response.events[0], TOTPEnrollmentUpdated)
    assert await store.get("user-123") == {"secret": KNOWN_SECRET}


@pytest.mark.asyncio
async def test_update_enrollment_not_enrolled(enrollment):
    handler = UpdateTOTPEnrollmentHandler(enrollment)

    with pytest.raises(NotEnrolledError):
        await handler.handle(UpdateTOTPEnrollment(user_id="ghost"))


@pytest.mark.asyncio
async def test_remove_enrollment(enrollment, store):
    await enrollment.create("user-123")
    handler = RemoveTOTPEnrollmentHandler(enrollment)

    response = await handler.handle(RemoveTOTPEnrollment(user_id="user-123"))

    assert response.result.removed is True
    assert isinstance(response.events[0], TOTPEnrollmentRemoved)
    assert await store.get("user-123") is None


@pytest.mark.asyncio
async def test_remove_enrollment_not_enrolled(enrollment):
    handler = RemoveTOTPEnrollmentHandler(enrollment)

    with pytest.raises(NotEnrolledError):
        await handler.handle(RemoveTOTPEnrollment(user_id="ghost"))


# ═══════════════════════════════════════════════════════════════
# CHALLENGE
# ═══════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_verify_challenge_success(enrollment, issuer, verifier, clock):
    await enrollment.create("user-123", KNOWN_SECRET)
    token = await issuer.issue("user-123")
    code = TOTPSecret(secret=KNOWN_SECRET).code_at(clock.now)
    handler = VerifyTOTPChallengeHandler(verifier)

    response = await handler.handle(VerifyTOTPChallenge(token=token, code=code))

    assert response.result.is_success
    assert response.result.user_id == "user-123"
    assert response.result.message is None
    (event,) = response.events
    assert isinstance(event, TOTPChallengeVerified)
    assert event.subject_id == "user-123"


@pytest.mark.asyncio
async def test_verify_challenge_failure(verifier):
    handler = VerifyTOTPChallengeHandler(verifier)

    response = await handler.handle(VerifyTOTPChallenge(token="nope", code="123456"))

    assert not response.result.is_success
    assert response.result.user_id is None
    assert response.result.message == "wrong code"
    (event,) = response.events
    assert isinstance(event, TOTPChallengeRejected)
    assert event.reason == "wrong code"


# ═══════════════════════════════════════════════════════════════
# QUERIES
# ═══════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_check_enrolled(enrollment):
    handler = CheckTOTPEnrolledHandler(enrollment)

    before = await handler.handle(CheckTOTPEnrolled(user_id="user-123"))
    await enrollment.create("user-123")
    after = await handler.handle(CheckTOTPEnrolled(user_id="user-123"))

    assert before.result.enabled is False
    assert after.result.enabled is True
    assert after.result.user_id == "user-123"


@pytest.mark.asyncio
async def test_get_enrollment_info(enrollment):
    await enrollment.create("user-123")
    handler = GetTOTPEnrollmentInfoHandler(enrollment)

    response = await handler.handle(GetTOTPEnrollmentInfo(user_id="user-123"))

    assert response.result.user_id == "user-123"
    assert not hasattr(response.result, "secret")


@pytest.mark.asyncio
async def test_get_enrollment_info_not_enrolled(enrollment):
    handler = GetTOTPEnrollmentInfoHandler(enrollment)

    with pytest.raises(NotEnrolledError):
        await handler.handle(GetTOTPEnrollmentInfo(user_id="ghost"))
