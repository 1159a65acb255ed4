"""MCP tool definitions."""

import asyncio
from datetime import datetime, timezone
from typing import Any

from code_reference_optimizer.exceptions import NotFoundError, ValidationError

__all__ = ["content_too_large", "create_error_response", "error_from_exception"]


def create_error_response(
    message: str, error_type: str, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Build the envelope tools return instead of raising.

    Args:
        message: Message shown to the client
        error_type: Exception class name the client can branch on
        details: Extra context, omitted from the envelope when empty

    Returns:
        Envelope with error=True and a UTC timestamp
    """
    envelope: dict[str, Any] = {"error": True, "error_type": error_type, "message": message}
    if details:
        envelope["details"] = details
    envelope["timestamp"] = datetime.now(timezone.utc).isoformat()
    return envelope


def content_too_large(limit: int | None, **contents: str) -> dict[str, Any] | None:
    """Reject the first text argument whose UTF-8 size exceeds limit.

    Args:
        limit: Maximum size in bytes (None disables the check)
        contents: Text arguments by parameter name

    Returns:
        ValidationError envelope, or None when every text fits
    """
    if limit is None:
        return None
    for name, content in contents.items():
        size = len(content.encode("utf-8"))
        if size > limit:
            return create_error_response(
                message=f"{name} is {size} bytes, over the {limit} byte limit",
                error_type="ValidationError",
                details={"field": name, "size": size, "limit": limit},
            )
    return None


def error_from_exception(e: Exception, action: str) -> dict[str, Any]:
    """Map a service exception to an error response.

    Args:
        e: Exception raised by a service
        action: What was being attempted, for the fallback message

    Returns:
        Structured error response dictionary
    """
    if isinstance(e, NotFoundError):
        return create_error_response(message=str(e), error_type="NotFoundError")
    if isinstance(e, ValidationError):
        return create_error_response(message=str(e), error_type=type(e).__name__)
    if isinstance(e, FileNotFoundError):
        return create_error_response(
            message=f"File not found: {e.filename}", error_type="NotFoundError"
        )
    if isinstance(e, asyncio.TimeoutError):
        return create_error_response(
            message=f"Timed out while trying to {action}", error_type="TimeoutError"
        )
    return create_error_response(
        message=f"Failed to {action}: {str(e)}",
        error_type="RuntimeError",
    )
