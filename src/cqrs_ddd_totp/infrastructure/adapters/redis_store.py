"""
Redis record store (production).

Layout:
    {prefix}record:{kuid}   -> JSON record
    {prefix}token:{token}   -> kuid (index for challenge token lookups)

Records and their token index are written in one MULTI/EXEC transaction.
Every write WATCHes the record key: a concurrent change aborts the
transaction. Plain writes retry against the fresh value, ``replace_if``
reports the lost race.

Requires: redis (redis.asyncio)
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Mapping, Optional

from redis.exceptions import RedisError, WatchError

from cqrs_ddd_totp.domain.errors import RecordNotFoundError, StoreError
from cqrs_ddd_totp.domain.value_objects import PENDING_TOKEN_FIELD
from cqrs_ddd_totp.infrastructure.ports.record_store import (
    ConditionalReplaceCapability,
    RecordQuery,
    RecordStorePort,
    Refresh,
    SearchResult,
    StoredRecord,
)


logger = logging.getLogger("cqrs_ddd_totp.infrastructure.adapters.redis")

WATCH_ATTEMPTS = 3


def _decode(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else value


@asynccontextmanager
async def _translate_errors(operation: str, kuid: Optional[str] = None):
    """Re-raise backend failures as StoreError."""
    try:
        yield
    except RedisError as e:
        logger.error(f"Redis {operation} failed for {kuid}: {e}")
        raise StoreError(
            f"Redis {operation} failed: {e}",
            details={"operation": operation, "kuid": kuid},
        ) from e


class RedisRecordStore(RecordStorePort, ConditionalReplaceCapability):
    """
    Redis implementation of RecordStorePort.

    Enrollment records have no TTL: they live until explicitly deleted.
    Expired challenge tokens are excluded by the range filter at search
    time and overwritten by the next issuance.

    With ``wait_replicas > 0``, writes made with ``Refresh.WAIT_FOR``
    block on ``WAIT`` until that many replicas acknowledged them, so reads
    served by replicas observe the write.

    Usage:
        import redis.asyncio as redis

        client = redis.Redis.from_url("redis://localhost:6379")
        store = RedisRecordStore(client)
    """

    def __init__(
        self,
        redis_client: Any,
        prefix: str = "auth:totp:",
        wait_replicas: int = 0,
        wait_timeout_ms: int = 1000,
    ):
        self._redis = redis_client
        self._prefix = prefix
        self._wait_replicas = wait_replicas
        self._wait_timeout_ms = wait_timeout_ms

    def _record_key(self, kuid: str) -> str:
        return f"{self._prefix}record:{kuid}"

    def _token_key(self, token: str) -> str:
        return f"{self._prefix}token:{token}"

    async def bootstrap(self, mapping: Mapping[str, Any]) -> None:
        # Schemaless: nothing to declare
        logger.debug(f"Redis record store ready (prefix={self._prefix})")

    async def get(self, kuid: str) -> Optional[dict[str, Any]]:
        async with _translate_errors("get", kuid):
            data = await self._redis.get(self._record_key(kuid))
        if data is None:
            return None
        return json.loads(data)

    async def create_or_replace(
        self,
        kuid: str,
        record: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        new = await self._watched_write(
            "create_or_replace", kuid, lambda existing: dict(record), refresh
        )
        logger.debug(f"Created or replaced Redis record: {kuid}")
        return new

    async def update(
        self,
        kuid: str,
        partial: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        def merge(existing: Optional[dict[str, Any]]) -> dict[str, Any]:
            self._require(kuid, existing)
            return {**existing, **dict(partial)}

        merged = await self._watched_write("update", kuid, merge, refresh)
        logger.debug(f"Updated Redis record: {kuid}")
        return merged

    async def replace(
        self,
        kuid: str,
        record: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        def swap(existing: Optional[dict[str, Any]]) -> dict[str, Any]:
            self._require(kuid, existing)
            return dict(record)

        new = await self._watched_write("replace", kuid, swap, refresh)
        logger.debug(f"Replaced Redis record: {kuid}")
        return new

    async def replace_if(
        self,
        kuid: str,
        record: Mapping[str, Any],
        expected: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> bool:
        key = self._record_key(kuid)
        new = dict(record)

        async with _translate_errors("replace_if", kuid):
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                data = await pipe.get(key)
                if data is None:
                    return False
                existing = json.loads(data)
                if any(existing.get(k) != v for k, v in expected.items()):
                    return False

                pipe.multi()
                self._queue_write(pipe, kuid, existing, new)
                try:
                    await pipe.execute()
                except WatchError:
                    logger.info(f"Concurrent change aborted replace of {kuid}")
                    return False

            await self._wait_for_visibility(refresh)

        logger.debug(f"Conditionally replaced Redis record: {kuid}")
        return True

    async def delete(self, kuid: str, refresh: Refresh = Refresh.WAIT_FOR) -> None:
        def drop(existing: Optional[dict[str, Any]]) -> None:
            self._require(kuid, existing)

        await self._watched_write("delete", kuid, drop, refresh)
        logger.debug(f"Deleted Redis record: {kuid}")

    async def search(self, query: RecordQuery) -> SearchResult:
        async with _translate_errors("search"):
            if PENDING_TOKEN_FIELD in query.term:
                # Indexed lookup
                kuid = await self._redis.get(
                    self._token_key(query.term[PENDING_TOKEN_FIELD])
                )
                candidates = [_decode(kuid)] if kuid is not None else []
            else:
                pattern = self._record_key("*")
                offset = len(self._record_key(""))
                candidates = [
                    _decode(key)[offset:]
                    async for key in self._redis.scan_iter(match=pattern)
                ]

        hits = []
        for kuid in candidates:
            record = await self.get(kuid)
            if record is not None and query.matches(record):
                hits.append(StoredRecord(id=kuid, content=record))

        return SearchResult(total=len(hits), hits=hits[: query.size])

    @staticmethod
    def _require(kuid: str, existing: Optional[dict[str, Any]]) -> None:
        if existing is None:
            raise RecordNotFoundError(
                f"Record not found: {kuid}", details={"kuid": kuid}
            )

    def _queue_write(
        self,
        pipe: Any,
        kuid: str,
        existing: Optional[dict[str, Any]],
        new: Optional[dict[str, Any]],
    ) -> None:
        old_token = (existing or {}).get(PENDING_TOKEN_FIELD)
        new_token = (new or {}).get(PENDING_TOKEN_FIELD)

        if new is None:
            pipe.delete(self._record_key(kuid))
        else:
            pipe.set(self._record_key(kuid), json.dumps(new))
        if old_token and old_token != new_token:
            pipe.delete(self._token_key(old_token))
        if new_token:
            pipe.set(self._token_key(new_token), kuid)

    async def _watched_write(
        self,
        operation: str,
        kuid: str,
        build: Callable[[Optional[dict[str, Any]]], Optional[dict[str, Any]]],
        refresh: Refresh,
    ) -> Optional[dict[str, Any]]:
        """
        Read-modify-write a record under WATCH.

        ``build`` receives the stored record (or None) and returns the record
        to write, or None to delete it. A concurrent change to the record
        aborts the transaction and the whole cycle is retried against the
        fresh value, so a write never resurrects a token consumed meanwhile.
        """
        key = self._record_key(kuid)

        async with _translate_errors(operation, kuid):
            for attempt in range(1, WATCH_ATTEMPTS + 1):
                async with self._redis.pipeline(transaction=True) as pipe:
                    await pipe.watch(key)
                    data = await pipe.get(key)
                    existing = json.loads(data) if data is not None else None
                    new = build(existing)

                    pipe.multi()
                    self._queue_write(pipe, kuid, existing, new)
                    try:
                        await pipe.execute()
                    except WatchError:
                        logger.info(
                            f"Concurrent change to {kuid} aborted {operation} "
                            f"(attempt {attempt}/{WATCH_ATTEMPTS})"
                        )
                        continue

                await self._wait_for_visibility(refresh)
                return new

        logger.warning(f"Redis {operation} of {kuid} kept conflicting, giving up")
        raise StoreError(
            f"Redis {operation} of {kuid} aborted by concurrent changes",
            details={"operation": operation, "kuid": kuid},
        )

    async def _wait_for_visibility(self, refresh: Refresh) -> None:
        if refresh != Refresh.WAIT_FOR or self._wait_replicas <= 0:
            return
        acknowledged = await self._redis.wait(
            self._wait_replicas, self._wait_timeout_ms
        )
        if acknowledged < self._wait_replicas:
            raise StoreError(
                f"Write acknowledged by {acknowledged}/{self._wait_replicas} replicas",
                details={"acknowledged": acknowledged},
            )


__all__ = ["RedisRecordStore"]
