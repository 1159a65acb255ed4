"""Eviction policies for the relevance cache."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta

from code_reference_optimizer.config.settings import EvictionPolicyName
from code_reference_optimizer.models.context import CacheEntry


@dataclass
class EvictionContext:
    """Cache-wide values a policy may consult."""

    now: datetime
    window: timedelta
    relevance_threshold: float
    average_access_count: float


class EvictionPolicy(ABC):
    """Predicate deciding whether an entry should be swept."""

    name: EvictionPolicyName

    @abstractmethod
    def should_evict(self, entry: CacheEntry, ctx: EvictionContext) -> bool:
        """Return True if entry should be evicted."""
        pass


class LRUPolicy(EvictionPolicy):
    """Evict entries not accessed within the expiration window."""

    name: EvictionPolicyName = "lru"

    def should_evict(self, entry: CacheEntry, ctx: EvictionContext) -> bool:
        return entry.last_accessed < ctx.now - ctx.window


class LFUPolicy(EvictionPolicy):
    """Evict entries accessed far less often than average."""

    name: EvictionPolicyName = "lfu"

    def should_evict(self, entry: CacheEntry, ctx: EvictionContext) -> bool:
        return entry.access_count < ctx.average_access_count * 0.1


class TTLPolicy(EvictionPolicy):
    """Evict entries idle for more than twice the expiration window."""

    name: EvictionPolicyName = "ttl"

    def should_evict(self, entry: CacheEntry, ctx: EvictionContext) -> bool:
        return ctx.now - entry.last_accessed > ctx.window * 2


class FIFOPolicy(EvictionPolicy):
    """Evict entries whose relevance is under half the admission threshold."""

    name: EvictionPolicyName = "fifo"

    def should_evict(self, entry: CacheEntry, ctx: EvictionContext) -> bool:
        return entry.context.relevance_score < ctx.relevance_threshold * 0.5


_POLICIES: dict[str, type[EvictionPolicy]] = {
    "lru": LRUPolicy,
    "lfu": LFUPolicy,
    "ttl": TTLPolicy,
    "fifo": FIFOPolicy,
}


def get_policy(name: str) -> EvictionPolicy:
    """Get the policy for name; unknown names fall back to FIFO."""
    return _POLICIES.get(name, FIFOPolicy)()
