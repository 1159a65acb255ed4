"""Orchestration of context extraction, caching and diff analysis."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import TypeVar

from code_reference_optimizer.config.settings import Settings
from code_reference_optimizer.exceptions import ValidationError
from code_reference_optimizer.models.context import (
    CacheReport,
    CodeContext,
    ImportOptimization,
    OptimizeResult,
)
from code_reference_optimizer.models.diff import ChangeType, DiffAnalysis, SymbolChange
from code_reference_optimizer.parsers.base import ImportAnalyzer, SourceParser
from code_reference_optimizer.services.relevance_cache import RelevanceCache
from code_reference_optimizer.services.snapshot_store import SnapshotStore
from code_reference_optimizer.utils.scoring import (
    estimate_tokens,
    make_cache_key,
    relevance_score,
    truncate_to_token_budget,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OptimizerService:
    """Service producing minimal code contexts and updates for a file."""

    def __init__(
        self,
        parser: SourceParser,
        import_analyzer: ImportAnalyzer,
        cache: RelevanceCache,
        snapshots: SnapshotStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize optimizer service.

        Args:
            parser: Source parser collaborator
            import_analyzer: Import analysis collaborator
            cache: Context cache
            snapshots: Snapshot store used for diff analysis
            settings: Application settings
            clock: Returns the current UTC time (default: system clock)
        """
        self.parser = parser
        self.import_analyzer = import_analyzer
        self.cache = cache
        self.snapshots = snapshots
        self.settings = settings or Settings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def _ratio(self) -> int:
        return self.settings.cache.token_estimation_ratio

    async def extract_code_context(
        self,
        file_path: str,
        target_symbols: list[str] | None = None,
        include_imports: bool | None = None,
        max_tokens: int | None = None,
    ) -> CodeContext:
        """Extract the minimal context for a file, cache first.

        Cached contexts older than the staleness window are recomputed.

        Args:
            file_path: Source file path
            target_symbols: Symbols to extract (None = all)
            include_imports: Attach the imports the code needs
            max_tokens: Token budget for the returned context

        Returns:
            Context truncated to max_tokens
        """
        if include_imports is None:
            include_imports = self.settings.extraction.include_imports
        budget = max_tokens or self.settings.extraction.max_tokens

        key = make_cache_key(file_path, target_symbols, include_imports)
        cached = await self.cache.get(key)
        if cached is not None and not self.is_stale(cached):
            return truncate_to_token_budget(cached, budget, self._ratio)

        parsed = await self._call(self.parser.parse_file(file_path))
        extracted = await self._call(self.parser.extract_context(parsed, target_symbols))

        imports: list[str] = []
        if include_imports:
            used = [
                name
                for name in [*extracted.symbols, *extracted.dependencies]
                if name in extracted.code
            ]
            imports = await self._call(
                self.import_analyzer.get_minimal_imports(file_path, used)
            )

        context = CodeContext.build(
            file_path,
            extracted.code,
            imports,
            ratio=self._ratio,
            symbols=extracted.symbols,
            dependencies=extracted.dependencies,
            relevance_score=relevance_score(extracted.symbols, target_symbols),
            timestamp=self._clock(),
        )
        await self.cache.set(key, context)

        return truncate_to_token_budget(context, budget, self._ratio)

    async def get_cached_context(
        self, file_path: str, cache_key: str | None = None
    ) -> CodeContext | None:
        """Get a cached context by key, or the most valuable one for a file."""
        if cache_key:
            return await self.cache.get(cache_key)

        contexts = await self.cache.get_by_file_path(file_path)
        return contexts[0] if contexts else None

    def monitor_cache(self, file_path: str | None = None, limit: int = 10) -> CacheReport:
        """Get cache statistics and the top-ranked entries.

        Args:
            file_path: Only report entries for this file
            limit: Maximum entries to report
        """
        ranked = self.cache.ranked_entries()
        if file_path:
            ranked = [r for r in ranked if r.context.file_path == file_path]
        return CacheReport(stats=self.cache.stats(), entries=ranked[:limit])

    async def analyze_code_diff(
        self, file_path: str, old_content: str, new_content: str
    ) -> DiffAnalysis:
        """Compare two versions of a file at symbol and line level.

        Args:
            file_path: File path (selects the language)
            old_content: Previous content
            new_content: Current content

        Returns:
            Symbol changes, line hunks and a minimal update text
        """
        self.snapshots.snapshot_from_content(file_path, old_content)
        self.snapshots.symbol_snapshot(
            file_path, await self._symbol_code(old_content, file_path)
        )
        new_symbols = await self._symbol_code(new_content, file_path)

        changes = self.snapshots.symbol_diff(file_path, new_symbols)
        for change in changes:
            if change.type == ChangeType.REMOVED:
                change.line_number = _line_of(old_content, change.old_code or "")
            else:
                change.line_number = _line_of(new_content, change.code)

        line_changes = self.snapshots.diff_against_current(file_path, new_content)
        minimal_update = _render_update(changes)

        return DiffAnalysis(
            changes=changes,
            affected_symbols=[c.symbol for c in changes],
            minimal_update=minimal_update,
            token_savings=(
                estimate_tokens(new_content, self._ratio)
                - estimate_tokens(minimal_update, self._ratio)
            ),
            line_changes=line_changes,
            summary=self.snapshots.diff_engine.summarize(line_changes),
        )

    async def optimize_imports(
        self, file_path: str, used_symbols: list[str] | None = None
    ) -> ImportOptimization:
        """Reduce a file's imports to those needed by used_symbols."""
        original = await self._call(self.import_analyzer.extract_imports(file_path))
        optimized = await self._call(
            self.import_analyzer.get_minimal_imports(file_path, used_symbols or [])
        )
        removed = [imp for imp in original if imp not in optimized]

        return ImportOptimization(
            optimized_imports=optimized,
            removed_imports=removed,
            token_savings=(
                estimate_tokens("\n".join(original), self._ratio)
                - estimate_tokens("\n".join(optimized), self._ratio)
            ),
        )

    async def optimize_cache(self) -> OptimizeResult:
        """Run a cache optimisation pass."""
        return await self.cache.optimize()

    async def clear_cache(self, file_path: str | None = None) -> int:
        """Clear cached contexts for one file, or all of them.

        Returns:
            Number of entries removed
        """
        self.import_analyzer.clear_cache()
        if file_path:
            return await self.cache.invalidate(file_path)
        return await self.cache.clear()

    def is_stale(self, context: CodeContext) -> bool:
        """Check whether a cached context is past the staleness window."""
        max_age = timedelta(seconds=self.settings.extraction.stale_after_seconds)
        return self._clock() - context.timestamp > max_age

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(
            awaitable, timeout=self.settings.performance.timeout_seconds
        )

    async def _symbol_code(self, content: str, file_path: str) -> dict[str, str]:
        """Map each top-level symbol in content to its source code."""
        try:
            parsed = await self._call(self.parser.parse_content(content, file_path))
            extracted = await self._call(self.parser.extract_context(parsed))
            symbols: dict[str, str] = {}
            for symbol in extracted.symbols:
                single = await self._call(self.parser.extract_context(parsed, [symbol]))
                if single.code:
                    symbols[symbol] = single.code
        except ValidationError as e:
            logger.warning(f"Failed to extract symbols from {file_path}: {e}")
            return {}

        return symbols


def _line_of(text: str, code: str) -> int:
    """1-based line where code starts in text, or 0 if not found."""
    first = code.split("\n")[0]
    if not first:
        return 0
    for number, line in enumerate(text.split("\n"), 1):
        if line == first:
            return number
    return 0


def _render_update(changes: list[SymbolChange]) -> str:
    blocks = []
    for change in changes:
        action = "REMOVE" if change.type == ChangeType.REMOVED else "UPDATE"
        blocks.append(f"# {action} {change.symbol} at line {change.line_number}\n{change.code}")
    return "\n\n".join(blocks)
