import json
import logging
import os
import re
import sys
import traceback
from datetime import UTC, datetime
from functools import lru_cache
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from nuggets.core.settings import get_settings

_STANDARD_LOG_RECORD_KEYS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys())
_STANDARD_LOG_RECORD_KEYS.update({"message", "asctime"})
_STRUCTURED_LOG_KEYS = {
    "component",
    "operation",
    "item_id",
    "context_data",
    "error_type",
    "error_message",
}
_SENSITIVE_KEY_PARTS = (
    "authorization",
    "cookie",
    "api-key",
    "apikey",
    "api_key",
    "token",
    "password",
    "secret",
    "jwt",
)


def _sanitize_filename(value: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9._-]+", "_", value.strip().lower())
    return cleaned.strip("._-") or "nuggets"


def _redact_value(value: Any) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if any(part in key.lower() for part in _SENSITIVE_KEY_PARTS):
                out[key] = "<redacted>"
            else:
                out[key] = _redact_value(v)
        return out

    if isinstance(value, list):
        return [_redact_value(v) for v in value]

    if isinstance(value, tuple):
        return tuple(_redact_value(v) for v in value)

    if isinstance(value, str):
        return re.sub(
            r"(?i)\bbearer\s+[a-z0-9\-._~+/]+=*",
            "Bearer <redacted>",
            value,
        )

    return value


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_LOG_RECORD_KEYS and key not in _STRUCTURED_LOG_KEYS
    }


def _merge_context_data(context_data: Any, extra_fields: dict[str, Any]) -> Any:
    if not extra_fields:
        return context_data
    if context_data is None:
        return extra_fields
    if isinstance(context_data, dict):
        merged = dict(extra_fields)
        merged.update(context_data)
        return merged
    return {"context_data": context_data, **extra_fields}


def _build_json_payload(record: logging.LogRecord, *, include_error: bool) -> dict[str, Any]:
    message = _redact_value(record.getMessage())
    component = getattr(record, "component", None)
    if not isinstance(component, str) or not component.strip():
        component = record.name

    context_data = _merge_context_data(
        getattr(record, "context_data", None), _extract_extra_fields(record)
    )

    payload: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "component": component,
        "operation": getattr(record, "operation", None),
        "message": message,
        "context_data": _redact_value(context_data) if context_data is not None else None,
        "item_id": getattr(record, "item_id", None),
        "source_file": record.filename,
        "source_line": record.lineno,
        "source_function": record.funcName,
        "process": record.process,
    }

    if include_error:
        exc_type, exc_value, exc_tb = record.exc_info or (None, None, None)
        payload["error_type"] = (
            getattr(record, "error_type", None)
            or (exc_type.__name__ if exc_type else None)
            or "LogError"
        )
        payload["error_message"] = (
            getattr(record, "error_message", None)
            or (str(exc_value) if exc_value else None)
            or str(message)
        )
        if exc_type and exc_value and exc_tb:
            payload["stack_trace"] = "".join(
                traceback.format_exception(exc_type, exc_value, exc_tb)
            )

    return {k: v for k, v in payload.items() if v is not None}


def _build_error_json_payload(record: logging.LogRecord) -> dict[str, Any]:
    return _build_json_payload(record, include_error=True)


def _build_structured_json_payload(record: logging.LogRecord) -> dict[str, Any]:
    return _build_json_payload(record, include_error=False)


class _JsonLineErrorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(_build_error_json_payload(record), ensure_ascii=False, default=str)


class _JsonLineStructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(_build_structured_json_payload(record), ensure_ascii=False, default=str)


class _ConsoleStructuredFormatter(logging.Formatter):
    """Console formatter that appends operation/context to structured records."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        suffix_parts = []
        operation = getattr(record, "operation", None)
        if operation:
            suffix_parts.append(f"operation={operation}")
        context_data = _merge_context_data(
            getattr(record, "context_data", None), _extract_extra_fields(record)
        )
        if context_data:
            suffix_parts.append(
                "context=" + json.dumps(_redact_value(context_data), ensure_ascii=False, default=str)
            )
        if not suffix_parts:
            return base
        return f"{base} | {' '.join(suffix_parts)}"


class _StructuredLogFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "context_data", None) is not None:
            return True
        if getattr(record, "item_id", None) is not None:
            return True
        if getattr(record, "operation", None) is not None:
            return True
        return bool(_extract_extra_fields(record))


def _rotate_jsonl_namer(default_name: str) -> str:
    marker = ".jsonl."
    if marker not in default_name:
        return default_name
    before, after = default_name.split(marker, 1)
    return f"{before}_{after}.jsonl"


def _create_jsonl_handler(
    *, directory: Path, logger_name: str, kind: str, formatter: logging.Formatter
) -> logging.Handler:
    directory.mkdir(parents=True, exist_ok=True)
    base_file = directory / f"{_sanitize_filename(logger_name)}_{kind}_{os.getpid()}.jsonl"

    handler = TimedRotatingFileHandler(
        filename=str(base_file),
        when="D",
        interval=1,
        backupCount=0,
        encoding="utf-8",
        delay=True,
        utc=True,
    )
    handler.setFormatter(formatter)
    handler.suffix = "%Y%m%d_%H%M%S"
    handler.namer = _rotate_jsonl_namer
    return handler


@lru_cache
def setup_logging(name: str | None = None, level: str | None = None) -> logging.Logger:
    """
    Set up logging configuration for the entire application.

    Args:
        name: Logger name (defaults to app name from settings)
        level: Log level (defaults to settings.log_level)

    Returns:
        Configured logger instance
    """
    settings = get_settings()
    logger_name = name or settings.app_name
    log_level = getattr(logging, (level or settings.log_level).upper())

    # Configure the root logger so all child loggers inherit handlers
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        _ConsoleStructuredFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(console_handler)

    error_handler = _create_jsonl_handler(
        directory=settings.logs_dir / "errors",
        logger_name=logger_name,
        kind="errors",
        formatter=_JsonLineErrorFormatter(),
    )
    error_handler.setLevel(logging.ERROR)
    root_logger.addHandler(error_handler)

    structured_handler = _create_jsonl_handler(
        directory=settings.logs_dir / "structured",
        logger_name=logger_name,
        kind="structured",
        formatter=_JsonLineStructuredFormatter(),
    )
    structured_handler.addFilter(_StructuredLogFilter())
    root_logger.addHandler(structured_handler)

    app_logger = logging.getLogger(logger_name)
    app_logger.setLevel(log_level)
    return app_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)
