"""Concrete record store adapters (in-memory, Redis, SQLAlchemy)."""

from cqrs_ddd_totp.infrastructure.adapters.memory import InMemoryRecordStore
from cqrs_ddd_totp.infrastructure.adapters.redis_store import RedisRecordStore
from cqrs_ddd_totp.infrastructure.adapters.sqlalchemy_storage import (
    # Models
    Base as SQLAlchemyBase,
    TOTPEnrollmentModel,
    # Adapters
    SQLAlchemyRecordStore,
)

__all__ = [
    "InMemoryRecordStore",
    "RedisRecordStore",
    "SQLAlchemyBase",
    "TOTPEnrollmentModel",
    "SQLAlchemyRecordStore",
]
