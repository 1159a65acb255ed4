"""Cache keying, size accounting and value scoring.

All functions here are pure: identical inputs always produce identical
outputs, which keeps cache keys and ranking scores assertable in tests.
"""

import json
import math
from datetime import datetime, timedelta

from code_reference_optimizer.models.context import CodeContext

ALL_SYMBOLS = "all"
WITH_IMPORTS = "with-imports"
NO_IMPORTS = "no-imports"

RELEVANCE_WEIGHT = 0.4
RECENCY_WEIGHT = 0.3
FREQUENCY_WEIGHT = 0.3


def make_cache_key(
    file_path: str,
    target_symbols: list[str] | None = None,
    include_imports: bool = False,
) -> str:
    """Compose a cache key for an extraction request.

    Symbols are sorted so that requests differing only in symbol order
    share a key.

    Args:
        file_path: Source file path
        target_symbols: Requested symbols (None or empty = all symbols)
        include_imports: Whether imports were requested

    Returns:
        Key of the form ``path:symbols:imports-flag``
    """
    symbols_key = ",".join(sorted(target_symbols)) if target_symbols else ALL_SYMBOLS
    imports_key = WITH_IMPORTS if include_imports else NO_IMPORTS
    return f"{file_path}:{symbols_key}:{imports_key}"


def estimate_tokens(text: str, ratio: int = 4) -> int:
    """Estimate token count as ``ceil(len(text) / ratio)``."""
    return math.ceil(len(text) / ratio)


def entry_size(context: CodeContext) -> int:
    """Approximate the stored size of a context.

    Character counts stand in for bytes: code, concatenated imports and the
    JSON form of the symbol/dependency lists.
    """
    code_size = len(context.extracted_code)
    imports_size = len("".join(context.imports))
    metadata_size = len(
        json.dumps(
            {"symbols": context.symbols, "dependencies": context.dependencies},
            separators=(",", ":"),
        )
    )
    return code_size + imports_size + metadata_size


def recency_weight(timestamp: datetime, now: datetime, window: timedelta) -> float:
    """Linear decay from 1.0 (now) to 0.0 (one window ago or older)."""
    age = (now - timestamp).total_seconds()
    return max(0.0, 1.0 - age / window.total_seconds())


def value_score(relevance: float, recency: float, access_count: int) -> float:
    """Composite value of a cache entry used for ranking and eviction."""
    frequency = math.log(access_count + 1) / 10
    return (
        relevance * RELEVANCE_WEIGHT
        + recency * RECENCY_WEIGHT
        + frequency * FREQUENCY_WEIGHT
    )


def relevance_score(symbols: list[str], target_symbols: list[str] | None) -> float:
    """Fraction of requested symbols found in an extraction (1.0 if none requested)."""
    if not target_symbols:
        return 1.0
    found = set(symbols)
    matching = [symbol for symbol in target_symbols if symbol in found]
    return len(matching) / len(target_symbols)


def truncate_to_token_budget(
    context: CodeContext, max_tokens: int, ratio: int = 4
) -> CodeContext:
    """Trim extracted code to whole lines so the token estimate fits a budget.

    Lines are kept greedily from the top while the estimate for
    ``code + imports`` stays within ``max_tokens``. A context already within
    budget (estimated from its content, not the stored count) is returned
    unchanged, so truncating twice is a no-op.

    Args:
        context: Context to truncate
        max_tokens: Token budget
        ratio: Characters per token

    Returns:
        The original context or a truncated copy
    """
    if CodeContext.count_tokens(context.extracted_code, context.imports, ratio) <= max_tokens:
        return context

    imports_length = len("\n".join(context.imports))
    kept: list[str] = []
    code_length = 0

    for line in context.extracted_code.split("\n"):
        candidate = code_length + len(line) + (1 if kept else 0)
        if math.ceil((candidate + imports_length) / ratio) > max_tokens:
            break
        kept.append(line)
        code_length = candidate

    return context.with_content(extracted_code="\n".join(kept), ratio=ratio)
