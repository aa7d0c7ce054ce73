"""
Structured error logging helpers.

Errors are written through the standard logging setup in
``nuggets.core.logging``, so they also land in ``logs/errors/`` as JSONL.

Usage:
    from nuggets.utils.error_logger import log_error

    log_error("tag_service", error, operation="resolve_tag", context={"name": name})
"""

from typing import Any

from nuggets.core.logging import get_logger


def _extract_http_details(response: Any) -> dict[str, Any]:
    """Pull status, url and a body preview out of an HTTP response object."""
    details: dict[str, Any] = {}
    status_code = getattr(response, "status_code", None)
    if status_code is not None:
        details["status_code"] = status_code
    url = getattr(response, "url", None)
    if url is not None:
        details["url"] = str(url)
    text = getattr(response, "text", None)
    if isinstance(text, str):
        details["response_body"] = text[:1000]
    return details


def log_error(
    component: str,
    error: Exception,
    *,
    operation: str | None = None,
    context: dict[str, Any] | None = None,
    http_response: Any | None = None,
    item_id: str | int | None = None,
) -> None:
    """Log error with full context to both console and JSONL.

    Args:
        component: Component name for identifying the source of errors.
        error: The exception that occurred.
        operation: Name of the operation that failed.
        context: Additional context data.
        http_response: HTTP response object (if applicable).
        item_id: ID of the item being processed (if applicable).
    """
    logger = get_logger(f"error.{component}")

    full_context = dict(context or {})
    if http_response is not None:
        full_context["http"] = _extract_http_details(http_response)

    operation_str = f" during {operation}" if operation else ""
    item_str = f" (item: {item_id})" if item_id else ""

    logger.error(
        "%s error%s%s: %s",
        component,
        operation_str,
        item_str,
        error,
        exc_info=error,
        extra={
            "component": component,
            "operation": operation,
            "context_data": full_context or None,
            "item_id": item_id,
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def log_http_error(
    component: str,
    url: str,
    *,
    response: Any | None = None,
    error: Exception | None = None,
    operation: str | None = None,
) -> None:
    """Log HTTP-specific errors with response details."""
    if error is None:
        status_code = getattr(response, "status_code", "unknown")
        error = Exception(f"HTTP error for {url} (status: {status_code})")

    log_error(
        component,
        error,
        operation=operation or "http_request",
        context={"url": url},
        http_response=response,
    )
