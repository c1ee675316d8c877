"""Port interfaces (Protocols) for infrastructure adapters."""

from cqrs_ddd_totp.infrastructure.ports.record_store import (
    RecordStorePort,
    ConditionalReplaceCapability,
    RecordQuery,
    RangeFilter,
    SearchResult,
    StoredRecord,
    Refresh,
)

__all__ = [
    # Record Store
    "RecordStorePort",
    "ConditionalReplaceCapability",
    "RecordQuery",
    "RangeFilter",
    "SearchResult",
    "StoredRecord",
    "Refresh",
]
