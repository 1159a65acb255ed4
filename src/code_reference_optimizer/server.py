"""MCP server implementation for Code Reference Optimizer."""

from typing import Any

from mcp.server.fastmcp import FastMCP

from code_reference_optimizer.config.settings import Settings
from code_reference_optimizer.parsers.python import PythonImportAnalyzer, PythonSourceParser
from code_reference_optimizer.services.diff_engine import DiffEngine
from code_reference_optimizer.services.optimizer_service import OptimizerService
from code_reference_optimizer.services.relevance_cache import RelevanceCache
from code_reference_optimizer.services.snapshot_store import SnapshotStore
from code_reference_optimizer.tools import context_tools, diff_tools, import_tools

# Initialize FastMCP server
mcp = FastMCP("code-reference-optimizer")

# Global service instances (initialized in main)
optimizer_service: OptimizerService | None = None
diff_engine: DiffEngine | None = None


async def initialize_services(settings: Settings) -> None:
    """Initialize all services.

    Args:
        settings: Application settings
    """
    global optimizer_service, diff_engine

    diff_engine = DiffEngine()
    optimizer_service = OptimizerService(
        parser=PythonSourceParser(max_file_size=settings.performance.max_file_size),
        import_analyzer=PythonImportAnalyzer(),
        cache=RelevanceCache(settings.cache),
        snapshots=SnapshotStore(diff_engine),
        settings=settings,
    )


async def shutdown_services() -> None:
    """Release service state."""
    global optimizer_service, diff_engine
    if optimizer_service:
        await optimizer_service.clear_cache()
        optimizer_service.snapshots.clear()
    optimizer_service = None
    diff_engine = None


# Context Tools
@mcp.tool()
async def extract_code_context(
    file_path: str,
    target_symbols: list[str] | None = None,
    include_imports: bool | None = None,
    max_tokens: int | None = None,
) -> dict[str, Any]:
    """Extract minimal code context (code, symbols, imports) from a file.

    Args:
        file_path: Path of the source file
        target_symbols: Symbols to extract (default: all top-level symbols)
        include_imports: Include only the imports the extracted code needs
        max_tokens: Token budget for the returned context

    Returns:
        Extracted context with token count and relevance score
    """
    if not optimizer_service:
        raise RuntimeError("Services not initialized")
    return await context_tools.extract_code_context(
        optimizer_service, file_path, target_symbols, include_imports, max_tokens
    )


@mcp.tool()
async def get_cached_context(file_path: str, cache_key: str | None = None) -> dict[str, Any]:
    """Get a previously extracted context from the cache.

    Args:
        file_path: Path of the source file
        cache_key: Exact cache key (default: most relevant entry for the file)

    Returns:
        Cached context, or found=false
    """
    if not optimizer_service:
        raise RuntimeError("Services not initialized")
    return await context_tools.get_cached_context(optimizer_service, file_path, cache_key)


@mcp.tool()
async def monitor_cache(file_path: str | None = None, limit: int = 10) -> dict[str, Any]:
    """Report cache statistics and the highest-value entries.

    Args:
        file_path: Only report entries for this file
        limit: Maximum entries to report (1-100)

    Returns:
        Statistics and ranked entries
    """
    if not optimizer_service:
        raise RuntimeError("Services not initialized")
    return await context_tools.monitor_cache(optimizer_service, file_path, limit)


@mcp.tool()
async def optimize_cache() -> dict[str, Any]:
    """Evict low-value cache entries.

    Returns:
        Removed entry count, freed space and current hit rate
    """
    if not optimizer_service:
        raise RuntimeError("Services not initialized")
    return await context_tools.optimize_cache(optimizer_service)


@mcp.tool()
async def clear_cache(file_path: str | None = None) -> dict[str, Any]:
    """Clear cached contexts.

    Args:
        file_path: Only clear entries for this file (default: all)

    Returns:
        Number of cleared entries and timestamp
    """
    if not optimizer_service:
        raise RuntimeError("Services not initialized")
    return await context_tools.clear_cache(optimizer_service, file_path)


# Diff Tools
@mcp.tool()
async def analyze_code_diff(file_path: str, old_content: str, new_content: str) -> dict[str, Any]:
    """Analyze changes between two versions of a file and build a minimal update.

    Args:
        file_path: File path (selects the language)
        old_content: Previous content
        new_content: Current content

    Returns:
        Symbol changes, affected symbols, minimal update and token savings
    """
    if not optimizer_service:
        raise RuntimeError("Services not initialized")
    return await diff_tools.analyze_code_diff(optimizer_service, file_path, old_content, new_content)


@mcp.tool()
async def compute_diff(
    old_content: str,
    new_content: str,
    with_context: bool = False,
    context_lines: int | None = None,
) -> dict[str, Any]:
    """Compute line-level hunks between two texts.

    Args:
        old_content: Previous text
        new_content: Current text
        with_context: Widen hunks with surrounding lines (display only)
        context_lines: Number of surrounding lines (default: configured value)

    Returns:
        Hunks, line statistics and a summary
    """
    if not diff_engine or not optimizer_service:
        raise RuntimeError("Services not initialized")
    if with_context and context_lines is None:
        context_lines = optimizer_service.settings.diff.context_lines
    return await diff_tools.compute_diff(
        diff_engine,
        old_content,
        new_content,
        context_lines,
        max_content_size=optimizer_service.settings.performance.max_file_size,
    )


@mcp.tool()
async def apply_diff(original_content: str, changes: list[dict[str, Any]]) -> dict[str, Any]:
    """Apply hunks from compute_diff to the original text.

    Args:
        original_content: Text the hunks were computed against
        changes: Hunks to apply

    Returns:
        The reconstructed text
    """
    if not diff_engine or not optimizer_service:
        raise RuntimeError("Services not initialized")
    return await diff_tools.apply_diff(
        diff_engine,
        original_content,
        changes,
        max_content_size=optimizer_service.settings.performance.max_file_size,
    )


# Import Tools
@mcp.tool()
async def optimize_imports(file_path: str, used_symbols: list[str] | None = None) -> dict[str, Any]:
    """Reduce a file's imports to those needed by the used symbols.

    Args:
        file_path: Path of the source file
        used_symbols: Names actually used

    Returns:
        Optimized imports, removed imports and token savings
    """
    if not optimizer_service:
        raise RuntimeError("Services not initialized")
    return await import_tools.optimize_imports(optimizer_service, file_path, used_symbols)


def create_server() -> FastMCP:
    """Create and return MCP server instance.

    Returns:
        FastMCP server instance
    """
    return mcp
