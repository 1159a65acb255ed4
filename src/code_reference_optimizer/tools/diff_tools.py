"""Diff analysis MCP tools."""

from dataclasses import asdict
from typing import Any

import pydantic

from code_reference_optimizer.models.diff import DiffChange
from code_reference_optimizer.services.diff_engine import DiffEngine
from code_reference_optimizer.services.optimizer_service import OptimizerService
from code_reference_optimizer.tools import (
    content_too_large,
    create_error_response,
    error_from_exception,
)


def _change_to_dict(change: DiffChange) -> dict[str, Any]:
    return change.model_dump(mode="json", exclude_none=True)


async def analyze_code_diff(
    service: OptimizerService,
    file_path: str,
    old_content: str,
    new_content: str,
) -> dict[str, Any]:
    """Analyze symbol-level changes between two versions of a file.

    Args:
        service: Optimizer service instance
        file_path: File path (selects the language)
        old_content: Previous content
        new_content: Current content

    Returns:
        Symbol changes, affected symbols, minimal update and token savings
    """
    if not file_path or not file_path.strip():
        return create_error_response(
            message="file_path cannot be empty",
            error_type="ValidationError",
        )
    oversized = content_too_large(
        service.settings.performance.max_file_size,
        old_content=old_content,
        new_content=new_content,
    )
    if oversized:
        return oversized

    try:
        analysis = await service.analyze_code_diff(file_path, old_content, new_content)
    except Exception as e:
        return error_from_exception(e, "analyze code diff")

    return {
        "changes": [
            c.model_dump(mode="json", include={"type", "symbol", "code", "line_number"})
            for c in analysis.changes
        ],
        "affected_symbols": analysis.affected_symbols,
        "minimal_update": analysis.minimal_update,
        "token_savings": analysis.token_savings,
        "line_changes": [_change_to_dict(c) for c in analysis.line_changes],
        "summary": analysis.summary,
    }


async def compute_diff(
    engine: DiffEngine,
    old_content: str,
    new_content: str,
    context_lines: int | None = None,
    max_content_size: int | None = None,
) -> dict[str, Any]:
    """Compute line-level hunks between two texts.

    Args:
        engine: Diff engine instance
        old_content: Previous text
        new_content: Current text
        context_lines: Widen hunks with this many surrounding lines (display only)
        max_content_size: Reject either text above this many bytes

    Returns:
        Hunks, line statistics and a summary
    """
    if context_lines is not None and context_lines < 0:
        return create_error_response(
            message="context_lines must be >= 0",
            error_type="ValidationError",
        )
    oversized = content_too_large(
        max_content_size, old_content=old_content, new_content=new_content
    )
    if oversized:
        return oversized

    changes = engine.diff(old_content, new_content)
    shown = changes if context_lines is None else engine.contextual(
        old_content, new_content, context_lines
    )
    return {
        "changes": [_change_to_dict(c) for c in shown],
        "stats": asdict(engine.stats(changes)),
        "summary": engine.summarize(changes),
    }


async def apply_diff(
    engine: DiffEngine,
    original_content: str,
    changes: list[dict[str, Any]],
    max_content_size: int | None = None,
) -> dict[str, Any]:
    """Apply hunks to a text.

    Args:
        engine: Diff engine instance
        original_content: Text the hunks were computed against
        changes: Hunks as returned by compute_diff (without context_lines)
        max_content_size: Reject original_content above this many bytes

    Returns:
        The reconstructed text
    """
    oversized = content_too_large(max_content_size, original_content=original_content)
    if oversized:
        return oversized

    try:
        hunks = [DiffChange.model_validate(c) for c in changes]
    except pydantic.ValidationError as e:
        return create_error_response(
            message=f"Invalid hunk: {e.errors()[0]['msg']}",
            error_type="ValidationError",
        )

    try:
        content = engine.apply(original_content, hunks)
    except Exception as e:
        return error_from_exception(e, "apply diff")

    return {"content": content, "applied_changes": len(hunks)}
