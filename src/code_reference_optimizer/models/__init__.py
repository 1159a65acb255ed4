"""Data models for Code Reference Optimizer."""

from code_reference_optimizer.models.context import (
    CacheEntry,
    CacheReport,
    CacheStats,
    CodeContext,
    ExtractedContext,
    ImportOptimization,
    OptimizeResult,
    RankedEntry,
)
from code_reference_optimizer.models.diff import (
    ChangeType,
    DiffAnalysis,
    DiffChange,
    DiffStats,
    MinimalUpdate,
    SymbolChange,
)

__all__ = [
    # Context models
    "CodeContext",
    "ExtractedContext",
    "CacheEntry",
    "CacheStats",
    "RankedEntry",
    "OptimizeResult",
    "CacheReport",
    "ImportOptimization",
    # Diff models
    "ChangeType",
    "DiffChange",
    "SymbolChange",
    "DiffStats",
    "MinimalUpdate",
    "DiffAnalysis",
]
