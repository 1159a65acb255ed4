"""Context extraction and cache MCP tools."""

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from code_reference_optimizer.models.context import CodeContext, RankedEntry
from code_reference_optimizer.services.optimizer_service import OptimizerService
from code_reference_optimizer.tools import create_error_response, error_from_exception


def _context_to_dict(context: CodeContext) -> dict[str, Any]:
    return context.model_dump(mode="json")


def _ranked_to_dict(entry: RankedEntry) -> dict[str, Any]:
    return {
        "key": entry.key,
        "file_path": entry.context.file_path,
        "token_count": entry.context.token_count,
        "relevance_score": entry.context.relevance_score,
        "timestamp": entry.context.timestamp.isoformat(),
        "score": entry.score,
    }


async def extract_code_context(
    service: OptimizerService,
    file_path: str,
    target_symbols: list[str] | None = None,
    include_imports: bool | None = None,
    max_tokens: int | None = None,
) -> dict[str, Any]:
    """Extract minimal code context for a file.

    Args:
        service: Optimizer service instance
        file_path: Path of the source file
        target_symbols: Symbols to extract (default: all)
        include_imports: Include the imports the extracted code needs
        max_tokens: Token budget for the returned context

    Returns:
        Extracted context with token count and relevance score
    """
    if not file_path or not file_path.strip():
        return create_error_response(
            message="file_path cannot be empty",
            error_type="ValidationError",
        )

    if max_tokens is not None and max_tokens < 1:
        return create_error_response(
            message="max_tokens must be >= 1",
            error_type="ValidationError",
        )

    try:
        context = await service.extract_code_context(
            file_path=file_path,
            target_symbols=target_symbols,
            include_imports=include_imports,
            max_tokens=max_tokens,
        )
    except Exception as e:
        return error_from_exception(e, "extract code context")

    return _context_to_dict(context)


async def get_cached_context(
    service: OptimizerService,
    file_path: str,
    cache_key: str | None = None,
) -> dict[str, Any]:
    """Get a cached context for a file.

    Args:
        service: Optimizer service instance
        file_path: Path of the source file
        cache_key: Exact cache key (default: most relevant entry for the file)

    Returns:
        Cached context or an indication that none is cached
    """
    context = await service.get_cached_context(file_path, cache_key)
    if context is None:
        return {"found": False, "file_path": file_path}

    return {"found": True, **_context_to_dict(context)}


async def monitor_cache(
    service: OptimizerService,
    file_path: str | None = None,
    limit: int = 10,
) -> dict[str, Any]:
    """Report cache statistics and top entries.

    Args:
        service: Optimizer service instance
        file_path: Only report entries for this file
        limit: Maximum entries to report (1-100)

    Returns:
        Statistics and ranked entries
    """
    if limit < 1 or limit > 100:
        return create_error_response(
            message="limit must be between 1 and 100",
            error_type="ValidationError",
        )

    report = service.monitor_cache(file_path=file_path, limit=limit)
    return {
        "stats": asdict(report.stats),
        "entries": [_ranked_to_dict(entry) for entry in report.entries],
    }


async def optimize_cache(service: OptimizerService) -> dict[str, Any]:
    """Evict low-value cache entries.

    Args:
        service: Optimizer service instance

    Returns:
        Removed entry count, freed space and current hit rate
    """
    result = await service.optimize_cache()
    return asdict(result)


async def clear_cache(
    service: OptimizerService,
    file_path: str | None = None,
) -> dict[str, Any]:
    """Clear cached contexts.

    Args:
        service: Optimizer service instance
        file_path: Only clear entries for this file (default: all)

    Returns:
        Number of cleared entries and timestamp
    """
    cleared_count = await service.clear_cache(file_path)
    return {
        "cleared_count": cleared_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
