"""
Pytest configuration for py-cqrs-ddd-totp tests.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from cqrs_ddd_totp.application.challenge import ChallengeIssuer, ChallengeVerifier
from cqrs_ddd_totp.application.enrollment import SecretEnrollmentService
from cqrs_ddd_totp.application.pipeline import LoginPipelineHook
from cqrs_ddd_totp.config import TOTPConfig
from cqrs_ddd_totp.infrastructure.adapters.memory import InMemoryRecordStore
from cqrs_ddd_totp.infrastructure.ports.record_store import RecordStorePort


KNOWN_SECRET = "JBSWY3DPEHPK3PXP"

# Aligned on a 30s step boundary
NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def config():
    return TOTPConfig()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def enrollment(store):
    return SecretEnrollmentService(store)


@pytest.fixture
def issuer(store, clock):
    return ChallengeIssuer(store, clock=clock)


@pytest.fixture
def verifier(store, config, clock):
    return ChallengeVerifier(store, config, clock=clock)


@pytest.fixture
def hook(enrollment, issuer, config):
    return LoginPipelineHook(enrollment, issuer, config)


# -----------------------------------------------------------------------------
# MOCKS
# -----------------------------------------------------------------------------


@pytest.fixture
def mock_store():
    """Store without the conditional replace capability."""
    mock = MagicMock(spec=RecordStorePort)
    mock.bootstrap = AsyncMock()
    mock.get = AsyncMock(return_value=None)
    mock.create_or_replace = AsyncMock(side_effect=lambda kuid, record, **kw: dict(record))
    mock.update = AsyncMock()
    mock.replace = AsyncMock(side_effect=lambda kuid, record, **kw: dict(record))
    mock.delete = AsyncMock()
    mock.search = AsyncMock()
    return mock
