"""
In-memory record store (development/testing).

Every write is immediately visible to subsequent reads, and no await
happens between the check and the write of ``replace_if``, so it is
atomic with respect to other coroutines on the same event loop.
"""

import copy
import logging
from typing import Any, Dict, Mapping, Optional

from cqrs_ddd_totp.domain.errors import RecordNotFoundError
from cqrs_ddd_totp.infrastructure.ports.record_store import (
    ConditionalReplaceCapability,
    RecordQuery,
    RecordStorePort,
    Refresh,
    SearchResult,
    StoredRecord,
)


logger = logging.getLogger("cqrs_ddd_totp.infrastructure.adapters.memory")


class InMemoryRecordStore(RecordStorePort, ConditionalReplaceCapability):
    """
    In-memory implementation of RecordStorePort.

    Suitable for development and testing. Records are deep-copied in and
    out so callers can never mutate stored state by accident.

    Usage:
        store = InMemoryRecordStore()
        await store.create_or_replace("user-123", {"secret": "JBSWY3DPEHPK3PXP"})
    """

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}
        self.mapping: Dict[str, Any] = {}

    async def bootstrap(self, mapping: Mapping[str, Any]) -> None:
        self.mapping = dict(mapping)
        logger.debug(
            f"In-memory record store ready "
            f"({len(self.mapping.get('properties', {}))} declared fields)"
        )

    async def get(self, kuid: str) -> Optional[dict[str, Any]]:
        record = self._records.get(kuid)
        return copy.deepcopy(record) if record is not None else None

    async def create_or_replace(
        self,
        kuid: str,
        record: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        self._records[kuid] = copy.deepcopy(dict(record))
        logger.debug(f"Created or replaced record: {kuid}")
        return copy.deepcopy(self._records[kuid])

    async def update(
        self,
        kuid: str,
        partial: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        existing = self._require(kuid)
        existing.update(copy.deepcopy(dict(partial)))
        logger.debug(f"Updated record: {kuid} ({', '.join(sorted(partial))})")
        return copy.deepcopy(existing)

    async def replace(
        self,
        kuid: str,
        record: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        self._require(kuid)
        self._records[kuid] = copy.deepcopy(dict(record))
        logger.debug(f"Replaced record: {kuid}")
        return copy.deepcopy(self._records[kuid])

    async def replace_if(
        self,
        kuid: str,
        record: Mapping[str, Any],
        expected: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> bool:
        existing = self._records.get(kuid)
        if existing is None:
            return False
        if any(existing.get(name) != value for name, value in expected.items()):
            return False
        self._records[kuid] = copy.deepcopy(dict(record))
        logger.debug(f"Conditionally replaced record: {kuid}")
        return True

    async def delete(self, kuid: str, refresh: Refresh = Refresh.WAIT_FOR) -> None:
        self._require(kuid)
        del self._records[kuid]
        logger.debug(f"Deleted record: {kuid}")

    async def search(self, query: RecordQuery) -> SearchResult:
        matches = [
            StoredRecord(id=kuid, content=copy.deepcopy(record))
            for kuid, record in self._records.items()
            if query.matches(record)
        ]
        return SearchResult(total=len(matches), hits=matches[: query.size])

    def _require(self, kuid: str) -> Dict[str, Any]:
        record = self._records.get(kuid)
        if record is None:
            raise RecordNotFoundError(
                f"Record not found: {kuid}", details={"kuid": kuid}
            )
        return record

    def clear(self) -> None:
        """Clear all records (for testing)."""
        self._records.clear()


__all__ = ["InMemoryRecordStore"]
