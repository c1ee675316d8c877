"""
Record Store Port.

Defines the interface for the document store holding one enrollment
record per identity. Records are opaque mappings keyed by the identity
id (kuid).

Two write semantics are distinct:
- ``update`` merges the given fields onto the existing record
- ``replace`` drops every field not present in the new record

Supports multiple backends: in-memory (dev), Redis (prod), SQLAlchemy (prod).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, runtime_checkable


class Refresh(str, Enum):
    """Visibility mode of a write."""

    WAIT_FOR = "wait_for"  # Return only once subsequent reads observe the write
    FALSE = "false"  # Fire and forget


@dataclass(frozen=True)
class RangeFilter:
    """Numeric range filter on one field (bounds are inclusive)."""

    field: str
    gte: Optional[float] = None
    lte: Optional[float] = None

    def matches(self, value: Any) -> bool:
        if value is None:
            return False
        if self.gte is not None and value < self.gte:
            return False
        if self.lte is not None and value > self.lte:
            return False
        return True


@dataclass(frozen=True)
class RecordQuery:
    """
    Exact-match terms and numeric ranges, combined with logical AND.

    Example:
        RecordQuery(
            term={"pending_token": token},
            ranges=(RangeFilter("pending_token_issued_at", gte=cutoff),),
        )
    """

    term: Mapping[str, Any] = field(default_factory=dict)
    ranges: tuple[RangeFilter, ...] = ()
    size: int = 10

    def matches(self, record: Mapping[str, Any]) -> bool:
        for name, expected in self.term.items():
            if record.get(name) != expected:
                return False
        return all(r.matches(record.get(r.field)) for r in self.ranges)


@dataclass(frozen=True)
class StoredRecord:
    """A record together with its id."""

    id: str
    content: dict[str, Any]


@dataclass(frozen=True)
class SearchResult:
    """Search response: total number of matches and the returned hits."""

    total: int
    hits: list[StoredRecord] = field(default_factory=list)


@runtime_checkable
class RecordStorePort(Protocol):
    """
    Port for the enrollment record store.

    Implementations raise ``StoreError`` for backend failures and
    ``RecordNotFoundError`` when ``update``/``replace``/``delete``
    target a missing record. The core never retries.
    """

    async def bootstrap(self, mapping: Mapping[str, Any]) -> None:
        """
        Declare the storage schema (idempotent).

        Args:
            mapping: ``{"properties": {field: {"type": ...}}}`` of the record
        """
        ...

    async def get(self, kuid: str) -> Optional[dict[str, Any]]:
        """Get a record by id, or None if it does not exist."""
        ...

    async def create_or_replace(
        self,
        kuid: str,
        record: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        """Create the record, replacing any existing one."""
        ...

    async def update(
        self,
        kuid: str,
        partial: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        """Merge fields onto an existing record; returns the merged record."""
        ...

    async def replace(
        self,
        kuid: str,
        record: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> dict[str, Any]:
        """Replace an existing record entirely."""
        ...

    async def delete(self, kuid: str, refresh: Refresh = Refresh.WAIT_FOR) -> None:
        """Delete an existing record."""
        ...

    async def search(self, query: RecordQuery) -> SearchResult:
        """Search records matching all filters of the query."""
        ...


@runtime_checkable
class ConditionalReplaceCapability(Protocol):
    """
    Optional capability: compare-and-swap replace.

    Stores implementing this let the challenge verifier invalidate a
    token only if it is still the one it looked up, which closes the
    race between two concurrent verifications of the same token.

    Usage:
        if isinstance(store, ConditionalReplaceCapability):
            swapped = await store.replace_if(kuid, record, {"pending_token": t})
    """

    async def replace_if(
        self,
        kuid: str,
        record: Mapping[str, Any],
        expected: Mapping[str, Any],
        refresh: Refresh = Refresh.WAIT_FOR,
    ) -> bool:
        """
        Replace the record only if every ``expected`` field still matches.

        Returns:
            True if the record was replaced, False if it was missing or changed
        """
        ...
