"""Import optimization MCP tools."""

from typing import Any

from code_reference_optimizer.services.optimizer_service import OptimizerService
from code_reference_optimizer.tools import create_error_response, error_from_exception


async def optimize_imports(
    service: OptimizerService,
    file_path: str,
    used_symbols: list[str] | None = None,
) -> dict[str, Any]:
    """Reduce a file's imports to those its used symbols need.

    Args:
        service: Optimizer service instance
        file_path: Path of the source file
        used_symbols: Names actually used (default: none, so every import is removable)

    Returns:
        Optimized imports, removed imports and token savings
    """
    if not file_path or not file_path.strip():
        return create_error_response(
            message="file_path cannot be empty",
            error_type="ValidationError",
        )

    try:
        result = await service.optimize_imports(file_path, used_symbols)
    except Exception as e:
        return error_from_exception(e, "optimize imports")

    return {
        "optimized_imports": result.optimized_imports,
        "removed_imports": result.removed_imports,
        "token_savings": result.token_savings,
    }
