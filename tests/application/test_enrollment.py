"""
Tests for SecretEnrollmentService.
"""

import pytest

from cqrs_ddd_totp.application.enrollment import SecretEnrollmentService
from cqrs_ddd_totp.domain.errors import NotEnrolledError, StoreError
from cqrs_ddd_totp.infrastructure.ports.record_store import Refresh


KNOWN_SECRET = "JBSWY3DPEHPK3PXP"


@pytest.mark.asyncio
async def test_create_generates_secret(enrollment, store):
    enrolled = await enrollment.create("user-123")

    assert enrolled.kuid == "user-123"
    assert enrolled.is_enrolled
    assert len(enrolled.totp_secret().to_bytes()) == 16
    assert await store.get("user-123") == {"secret": enrolled.secret}


@pytest.mark.asyncio
async def test_create_with_provided_secret(enrollment, store):
    enrolled = await enrollment.create("user-123", KNOWN_SECRET)

    assert enrolled.secret == KNOWN_SECRET
    assert await store.get("user-123") == {"secret": KNOWN_SECRET}


@pytest.mark.asyncio
async def test_create_is_upsert(enrollment, store):
    await store.create_or_replace(
        "user-123",
        {"secret": "OLD", "pending_token": "tok", "pending_token_issued_at": 1},
    )

    await enrollment.create("user-123", KNOWN_SECRET)

    assert await store.get("user-123") == {"secret": KNOWN_SECRET}


@pytest.mark.asyncio
async def test_exists(enrollment, store):
    assert await enrollment.exists("user-123") is False

    await enrollment.create("user-123")
    assert await enrollment.exists("user-123") is True


@pytest.mark.asyncio
async def test_exists_false_for_record_without_secret(enrollment, store):
    await store.create_or_replace("user-123", {})
    assert await enrollment.exists("user-123") is False


@pytest.mark.asyncio
async def test_update_preserves_pending_challenge(enrollment, store):
    await store.create_or_replace(
        "user-123",
        {"secret": "OLD", "pending_token": "tok", "pending_token_issued_at": 1},
    )

    enrolled = await enrollment.update("user-123", KNOWN_SECRET)

    assert enrolled.secret == KNOWN_SECRET
    assert await store.get("user-123") == {
        "secret": KNOWN_SECRET,
        "pending_token": "tok",
        "pending_token_issued_at": 1,
    }


@pytest.mark.asyncio
async def test_update_generates_secret_when_omitted(enrollment):
    first = await enrollment.create("user-123")
    second = await enrollment.update("user-123")

    assert second.is_enrolled
    assert second.secret != first.secret


@pytest.mark.asyncio
async def test_update_not_enrolled(enrollment, store):
    with pytest.raises(NotEnrolledError) as exc:
        await enrollment.update("ghost", KNOWN_SECRET)

    assert exc.value.kuid == "ghost"
    assert await store.get("ghost") is None


@pytest.mark.asyncio
async def test_delete_removes_whole_record(enrollment, store):
    await store.create_or_replace(
        "user-123",
        {"secret": KNOWN_SECRET, "pending_token": "tok", "pending_token_issued_at": 1},
    )

    await enrollment.delete("user-123")

    assert await store.get("user-123") is None
    assert await enrollment.exists("user-123") is False


@pytest.mark.asyncio
async def test_delete_not_enrolled(enrollment):
    with pytest.raises(NotEnrolledError):
        await enrollment.delete("ghost")


@pytest.mark.asyncio
async def test_get_info(enrollment):
    await enrollment.create("user-123", KNOWN_SECRET)

    info = await enrollment.get_info("user-123")

    assert info == {"kuid": "user-123"}
    assert KNOWN_SECRET not in str(info)


@pytest.mark.asyncio
async def test_get_info_not_enrolled(enrollment):
    with pytest.raises(NotEnrolledError):
        await enrollment.get_info("ghost")


@pytest.mark.asyncio
async def test_validate_always_true(enrollment):
    assert await enrollment.validate() is True
    assert await enrollment.validate("user-123", "not base32!") is True


@pytest.mark.asyncio
async def test_writes_wait_for_visibility(mock_store):
    service = SecretEnrollmentService(mock_store)

    await service.create("user-123", KNOWN_SECRET)

    mock_store.create_or_replace.assert_awaited_once_with(
        "user-123", {"secret": KNOWN_SECRET}, refresh=Refresh.WAIT_FOR
    )


@pytest.mark.asyncio
async def test_store_error_propagates(mock_store):
    mock_store.get.side_effect = StoreError("down")
    service = SecretEnrollmentService(mock_store)

    with pytest.raises(StoreError):
        await service.exists("user-123")
