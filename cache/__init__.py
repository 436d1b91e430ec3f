"""
Cache package for query results, request coalescing and invalidation rules.
"""

from .coalescer import RequestCoalescer
from .invalidation import INVALIDATION_RULES, MutationType, get_invalidation_keys
from .keys import create_cache_key, create_global_cache_key, partition_of
from .memory import TTLCache
from .query_cache import QueryCache, query_cache

__all__ = [
    "RequestCoalescer",
    "MutationType",
    "INVALIDATION_RULES",
    "get_invalidation_keys",
    "create_cache_key",
    "create_global_cache_key",
    "partition_of",
    "TTLCache",
    "QueryCache",
    "query_cache",
]
