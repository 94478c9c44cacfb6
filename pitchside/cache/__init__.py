"""
Envelope cache with per-kind TTLs, request coalescing and self-healing match detail.
"""
from .core import CacheEnvelope, CacheMeta, CacheSource, RecordKind, is_fresh
from .ttl_policies import (
    TTL_CONFIG,
    get_ttl_for_kind,
    is_kind_fresh,
    missing_detail_parts,
)
from .coalescer import RequestCoalescer
from .store import EnvelopeStore
from .manager import (
    AggregateResult,
    AggregationCache,
    MatchDetail,
    MatchNotFound,
    get_aggregation_cache,
)

__all__ = [
    # Core types
    "CacheEnvelope",
    "CacheMeta",
    "CacheSource",
    "RecordKind",
    "is_fresh",
    # TTL policies
    "TTL_CONFIG",
    "get_ttl_for_kind",
    "is_kind_fresh",
    "missing_detail_parts",
    # Coalescing
    "RequestCoalescer",
    # Persistence
    "EnvelopeStore",
    # Manager
    "AggregateResult",
    "AggregationCache",
    "MatchDetail",
    "MatchNotFound",
    "get_aggregation_cache",
]
