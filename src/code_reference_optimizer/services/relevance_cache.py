"""Relevance-aware, size-bounded cache for extracted code contexts."""

import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from code_reference_optimizer.config.settings import CacheSettings
from code_reference_optimizer.models.context import (
    CacheEntry,
    CacheStats,
    CodeContext,
    OptimizeResult,
    RankedEntry,
)
from code_reference_optimizer.services.eviction import (
    EvictionContext,
    EvictionPolicy,
    get_policy,
)
from code_reference_optimizer.utils.scoring import (
    entry_size,
    recency_weight,
    truncate_to_token_budget,
    value_score,
)

logger = logging.getLogger(__name__)

OPTIMIZE_UTILIZATION_THRESHOLD = 0.8
OPTIMIZE_EVICT_FRACTION = 0.2
CAPACITY_HEADROOM_FRACTION = 0.1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RelevanceCache:
    """Cache of code contexts with relevance-weighted eviction.

    Entries are admitted only when their relevance reaches the configured
    threshold, truncated to the per-entry token ceiling, and evicted lowest
    value first when the size capacity would be exceeded. Value combines
    relevance, recency of access and log-scaled access frequency.

    The cache is not thread-safe; it expects one logical request at a time,
    as within a single asyncio event loop.
    """

    def __init__(
        self,
        settings: CacheSettings | None = None,
        policy: EvictionPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize relevance cache.

        Args:
            settings: Cache settings (defaults if omitted)
            policy: Eviction policy override (default from settings)
            clock: Source of timezone-aware "now" values
        """
        self.settings = settings or CacheSettings()
        self.policy = policy or get_policy(self.settings.eviction_policy)
        self.window = timedelta(seconds=self.settings.expiration_seconds)
        self._clock = clock or _utcnow

        # key -> CacheEntry (context plus access bookkeeping)
        self._entries: dict[str, CacheEntry] = {}
        self._stats = CacheStats()

    @property
    def capacity(self) -> int:
        return self.settings.max_size_bytes

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    async def get(self, key: str) -> CodeContext | None:
        """Get a cached context and record the access.

        Entries whose context is older than the expiration window are
        dropped and reported as a miss.

        Args:
            key: Cache key

        Returns:
            The cached context, or None on a miss
        """
        entry = self._entries.get(key)
        now = self._clock()

        if entry is not None and now - entry.context.timestamp > self.window:
            logger.debug(f"Cache entry expired: {key}")
            self._evict(key)
            entry = None

        if entry is None:
            self._record_miss()
            return None

        entry.access_count += 1
        entry.last_accessed = now
        self._record_hit()
        return entry.context

    async def set(self, key: str, context: CodeContext) -> bool:
        """Admit or replace a context.

        Oversized contexts are truncated to the per-entry token ceiling.
        Contexts below the relevance threshold, or larger than the whole
        cache, are silently not stored.

        Args:
            key: Cache key
            context: Context to cache

        Returns:
            True if the context was stored
        """
        ratio = self.settings.token_estimation_ratio
        tokens = CodeContext.count_tokens(context.extracted_code, context.imports, ratio)
        if context.token_count != tokens:
            context = context.with_content(ratio=ratio)
        if tokens > self.settings.max_tokens_per_entry:
            context = truncate_to_token_budget(context, self.settings.max_tokens_per_entry, ratio)

        if context.relevance_score < self.settings.relevance_threshold:
            logger.debug(
                f"Skipping low-relevance context {key} "
                f"({context.relevance_score:.2f} < {self.settings.relevance_threshold:.2f})"
            )
            return False

        size = entry_size(context)
        if size > self.capacity:
            logger.debug(f"Skipping context {key}: size {size} exceeds capacity {self.capacity}")
            return False

        previous = self._entries.pop(key, None)
        access_count = 0
        if previous is not None:
            self._stats.total_size -= previous.size
            access_count = previous.access_count

        self.ensure_capacity(size)
        while len(self._entries) >= self.settings.max_entries:
            self._evict(self._ranked(ascending=True)[0].key)

        self._entries[key] = CacheEntry(
            key=key,
            context=context,
            size=size,
            access_count=access_count,
            last_accessed=self._clock(),
        )
        self._stats.total_size += size
        self._stats.total_entries = len(self._entries)
        return True

    async def get_by_file_path(self, file_path: str) -> list[CodeContext]:
        """Get every cached context for a file, most valuable first.

        Contexts are ordered by relevance times the recency weight of their
        creation timestamp. Each returned entry counts as accessed. Expired
        entries are evicted first, as on get.
        """
        now = self._clock()
        self._purge_expired(now)
        matches: list[CodeContext] = []

        for entry in self._entries.values():
            if entry.context.file_path == file_path:
                entry.access_count += 1
                entry.last_accessed = now
                matches.append(entry.context)

        return sorted(
            matches,
            key=lambda c: c.relevance_score * recency_weight(c.timestamp, now, self.window),
            reverse=True,
        )

    async def invalidate(self, file_path: str) -> int:
        """Remove every entry for a file.

        Returns:
            Number of entries removed
        """
        keys = [k for k, e in self._entries.items() if e.context.file_path == file_path]
        for key in keys:
            self._remove(key)
        return len(keys)

    async def clear(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries removed
        """
        count = len(self._entries)
        self._entries.clear()
        self._stats.total_entries = 0
        self._stats.total_size = 0
        return count

    def stats(self) -> CacheStats:
        """Get a snapshot of the cache statistics."""
        return CacheStats(**vars(self._stats))

    def ranked_entries(self) -> list[RankedEntry]:
        """Unexpired entries with their value scores, highest first."""
        self._purge_expired(self._clock())
        return self._ranked(ascending=False)

    async def optimize(self) -> OptimizeResult:
        """Proactively evict low-value entries.

        When utilisation exceeds 80% the lowest-ranked 20% of entries are
        evicted. Every remaining entry is then checked against the active
        eviction policy. Expired entries are evicted before either step and
        count towards the removed total.
        """
        initial_entries = len(self._entries)
        initial_size = self._stats.total_size
        self._purge_expired(self._clock())

        if self._stats.total_size / self.capacity > OPTIMIZE_UTILIZATION_THRESHOLD:
            ranked = self._ranked(ascending=True)
            for entry in ranked[: math.floor(len(ranked) * OPTIMIZE_EVICT_FRACTION)]:
                self._evict(entry.key)

        ctx = self._eviction_context()
        for key in [k for k, e in self._entries.items() if self.policy.should_evict(e, ctx)]:
            self._evict(key)

        removed = initial_entries - len(self._entries)
        if removed:
            logger.info(f"Cache optimisation removed {removed} entries")

        return OptimizeResult(
            removed_count=removed,
            space_freed=initial_size - self._stats.total_size,
            new_hit_rate=self._stats.hit_rate,
        )

    def ensure_capacity(self, required_size: int) -> int:
        """Evict lowest-value entries until required_size fits.

        When space is short, frees the shortfall plus 10% of capacity so the
        next few admissions do not each trigger eviction.

        Returns:
            Size freed
        """
        available = self.capacity - self._stats.total_size
        if available >= required_size:
            return 0

        target = required_size - available + self.capacity * CAPACITY_HEADROOM_FRACTION
        freed = 0
        for entry in self._ranked(ascending=True):
            if freed >= target:
                break
            freed += self._evict(entry.key)

        logger.debug(f"Freed {freed} of cache space (target {target:.0f})")
        return freed

    def _ranked(self, ascending: bool) -> list[RankedEntry]:
        now = self._clock()
        ranked = [
            RankedEntry(
                key=key,
                context=entry.context,
                score=value_score(
                    entry.context.relevance_score,
                    recency_weight(entry.last_accessed, now, self.window),
                    entry.access_count,
                ),
            )
            for key, entry in self._entries.items()
        ]
        ranked.sort(key=lambda r: r.score, reverse=not ascending)
        return ranked

    def _eviction_context(self) -> EvictionContext:
        count = len(self._entries)
        total_accesses = sum(e.access_count for e in self._entries.values())
        return EvictionContext(
            now=self._clock(),
            window=self.window,
            relevance_threshold=self.settings.relevance_threshold,
            average_access_count=total_accesses / count if count else 0.0,
        )

    def _purge_expired(self, now: datetime) -> int:
        expired = [k for k, e in self._entries.items() if now - e.context.timestamp > self.window]
        for key in expired:
            logger.debug(f"Cache entry expired: {key}")
            self._evict(key)
        return len(expired)

    def _evict(self, key: str) -> int:
        size = self._remove(key)
        self._stats.eviction_count += 1
        return size

    def _remove(self, key: str) -> int:
        entry = self._entries.pop(key)
        self._stats.total_size -= entry.size
        self._stats.total_entries = len(self._entries)
        return entry.size

    def _record_hit(self) -> None:
        # Running fractions: "total requests" is the sum of the two rates,
        # so hit_rate + miss_rate need not equal 1.
        total = self._stats.hit_rate + self._stats.miss_rate
        self._stats.hit_rate = (self._stats.hit_rate * total + 1) / (total + 1)
        self._stats.hit_count += 1

    def _record_miss(self) -> None:
        total = self._stats.hit_rate + self._stats.miss_rate
        self._stats.miss_rate = (self._stats.miss_rate * total + 1) / (total + 1)
        self._stats.miss_count += 1
