"""
SQLAlchemy record store (production).

Stores one row per enrolled identity. Every write commits before
returning, so ``Refresh.WAIT_FOR`` holds for any backend with
read-committed isolation.

Requirements:
- sqlalchemy[asyncio]
- asyncpg (or another async driver)

Usage:
    from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

    engine = create_async_engine("postgresql+asyncpg://...")
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    store = SQLAlchemyRecordStore(session_factory, engine=engine)
    await store.bootstrap(STORAGE_MAPPING)
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    String,
    Text,
    and_,
    delete as sa_delete,
    func,
    select,
    update as sa_update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import declarative_base

from cqrs_ddd_totp.domain.errors import RecordNotFoundError, StoreError
from cqrs_ddd_totp.domain.value_objects import (
    PENDING_TOKEN_FIELD,
    PENDING_TOKEN_ISSUED_AT_FIELD,
    SECRET_FIELD,
)
from cqrs_ddd_totp.infrastructure.ports.record_store import (
    ConditionalReplaceCapability,
    RecordQuery,
    RecordStorePort,
    Refresh,
    SearchResult,
    StoredRecord,
)


logger = logging.getLogger("cqrs_ddd_totp.infrastructure.adapters.sqlalchemy")

Base = declarative_base()

# Type for async session factory
AsyncSessionFactory = Callable[[], AsyncSession]

RECORD_COLUMNS = (SECRET_FIELD, PENDING_TOKEN_FIELD, PENDING_TOKEN_ISSUED_AT_FIELD)


# ═══════════════════════════════════════════════════════════════
# SQLALCHEMY MODEL
# ═══════════════════════════════════════════════════════════════


class TOTPEnrollmentModel(Base):
    """
    SQLAlchemy model for TOTP enrollment records.

    The secret MUST be encrypted at rest in production: extend this
    class and override the column with an encrypted type.
    """

    __tablename__ = "totp_enrollments"

    kuid = Column(String(255), primary_key=True, nullable=False)
    secret = Column(Text, nullable=True)

    # Pending challenge
    pending_token = Column(String(64), nullable=True, index=True)
    pending_token_issued_at = Column(BigInteger, nullable=True)  # epoch millis

    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = {"comment": "TOTP enrollments and pending challenges."}


# ═══════════════════════════════════════════════════════════════
# SQLALCHEMY RECORD STORE
# ═══════════════════════════════════════════════════════════════


class SQLAlchemyRecordStore(RecordStorePort, ConditionalReplaceCapability):
    """
    SQLAlchemy implementation of RecordStorePort.

    ``replace_if`` is a single conditional UPDATE, so two concurrent
    verifications of the same token cannot both invalidate it.
    """

    def __init__(
        self,
        session_factory: AsyncSessionFactory,
        model_class: type = TOTPEnrollmentModel,
        engine: Optional[Any] = None,
    ):
        self.session_factory = session_factory
        self.model_class = model_class
        self.engine = engine

    @asynccontextmanager
    async def _session_scope(self):
        """Provide a transactional scope for database operations."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError(f"Database operation failed: {e}") from e
            except Exception:
                await session.rollback()
                raise

    def _column(self, name: str):
        if name not in RECORD_COLUMNS:
            raise StoreError(
                f"Unknown record field: {name}", details={"field": name}
            )
        return getattr(self.model_class, name)

    def _check_fields(self, record: Mapping[str, Any]) -> None:
        for name in record:
            self._column(name)

    @staticmethod
    def _to_record(model: Any) -> dict[str, Any]:
        record = {}
        for name in RECORD_COLUMNS:
            value = getattr(model, name)
            if value is not None:
                record[name] = value
        return record

    async def _select(self, db: AsyncSession, kuid: str) -> Optional[Any]:
        stmt = select(self.model_class).where(self.model_class.kuid == kuid)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def bootstrap(self, mapping: Mapping[str, Any]) -> None:
        unknown = set(mapping.get("properties", {})) - set(RECORD_COLUMNS)
        if unknown:
            raise StoreError(
                f"No column for declared fields: {sorted(unknown)}",
                details={"fields": sorted(unknown)},
            )

        if self.engine is None:
            logger.debug("No engine configured, skipping schema creation")
            return
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(self.model_class.metadata.create_all)
        except SQLAlchemyError as e:
            raise StoreError(f"Schema creation failed: {e}") from e
        logger.info(f"Ensured table {self.model_class.__tablename__}")

    async def get(self, kuid: str) -> Optional[dict[str, Any]]:
        async with self._session_scope() as db:
            model = await self._select(db, kuid)
            if model is None:
                return None
            return self._to_record(model)

    async def create_or_replace(
        self,
        kuid: str,
        record: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        self._check_fields(record)

        async with self._session_scope() as db:
            existing = await self._select(db, kuid)
            if existing:
                for name in RECORD_COLUMNS:
                    setattr(existing, name, record.get(name))
            else:
                db.add(
                    self.model_class(
                        kuid=kuid,
                        created_at=datetime.now(timezone.utc),
                        **{name: record.get(name) for name in RECORD_COLUMNS},
                    )
                )

        logger.debug(f"Created or replaced record: {kuid}")
        return dict(record)

    async def update(
        self,
        kuid: str,
        partial: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        self._check_fields(partial)

        async with self._session_scope() as db:
            existing = await self._select(db, kuid)
            if existing is None:
                raise RecordNotFoundError(
                    f"Record not found: {kuid}", details={"kuid": kuid}
                )
            for name, value in partial.items():
                setattr(existing, name, value)
            merged = self._to_record(existing)

        logger.debug(f"Updated record: {kuid}")
        return merged

    async def replace(
        self,
        kuid: str,
        record: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        self._check_fields(record)

        async with self._session_scope() as db:
            existing = await self._select(db, kuid)
            if existing is None:
                raise RecordNotFoundError(
                    f"Record not found: {kuid}", details={"kuid": kuid}
                )
            for name in RECORD_COLUMNS:
                setattr(existing, name, record.get(name))

        logger.debug(f"Replaced record: {kuid}")
        return dict(record)

    async def replace_if(
        self,
        kuid: str,
        record: Mapping[str, Any],
        expected: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> bool:
        self._check_fields(record)
        conditions = [self.model_class.kuid == kuid]
        conditions.extend(
            self._column(name) == value for name, value in expected.items()
        )

        async with self._session_scope() as db:
            stmt = (
                sa_update(self.model_class)
                .where(and_(*conditions))
                .values(**{name: record.get(name) for name in RECORD_COLUMNS})
            )
            result = await db.execute(stmt)
            swapped = result.rowcount == 1

        logger.debug(f"Conditional replace of {kuid}: swapped={swapped}")
        return swapped

    async def delete(self, kuid: str, refresh: Refresh = Refresh.WAIT_FOR) -> None:
        async with self._session_scope() as db:
            stmt = sa_delete(self.model_class).where(self.model_class.kuid == kuid)
            result = await db.execute(stmt)
            if result.rowcount == 0:
                raise RecordNotFoundError(
                    f"Record not found: {kuid}", details={"kuid": kuid}
                )

        logger.debug(f"Deleted record: {kuid}")

    async def search(self, query: RecordQuery) -> SearchResult:
        conditions = [self._column(name) == value for name, value in query.term.items()]
        for range_filter in query.ranges:
            column = self._column(range_filter.field)
            if range_filter.gte is not None:
                conditions.append(column >= range_filter.gte)
            if range_filter.lte is not None:
                conditions.append(column <= range_filter.lte)

        async with self._session_scope() as db:
            count_stmt = select(func.count()).select_from(self.model_class)
            stmt = select(self.model_class)
            if conditions:
                count_stmt = count_stmt.where(and_(*conditions))
                stmt = stmt.where(and_(*conditions))
            total = (await db.execute(count_stmt)).scalar_one()
            result = await db.execute(stmt.limit(query.size))
            hits = [
                StoredRecord(id=model.kuid, content=self._to_record(model))
                for model in result.scalars().all()
            ]

        return SearchResult(total=total, hits=hits)


__all__ = [
    "Base",
    "TOTPEnrollmentModel",
    "SQLAlchemyRecordStore",
    "RECORD_COLUMNS",
]
