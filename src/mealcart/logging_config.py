"""Logging setup shared by the API and the shopping-list engine.

Every record is tagged with the request, user and plan date it was emitted
for. Development output is one readable line per record; production output
is one JSON object per record.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar, Token
from datetime import date, datetime, timezone
from typing import Any

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[str | None] = ContextVar("user_id", default=None)
plan_date_ctx: ContextVar[str | None] = ContextVar("plan_date", default=None)

# field name -> (context variable, short label for text output)
_CONTEXT_FIELDS: dict[str, tuple[ContextVar[str | None], str]] = {
    "request_id": (request_id_ctx, "req"),
    "user_id": (user_id_ctx, "user"),
    "plan_date": (plan_date_ctx, "plan"),
}

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}


def current_context() -> dict[str, str]:
    """Get the context fields that are set for the running request."""
    return {name: value for name, (var, _) in _CONTEXT_FIELDS.items() if (value := var.get())}


def _as_text(value: str | date | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()


class StructuredJsonFormatter(logging.Formatter):
    """One JSON object per record, for log shipping in production."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **current_context(),
            **getattr(record, "extra_data", {}),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        payload["location"] = f"{record.filename}:{record.lineno} in {record.funcName}"
        return json.dumps(payload, default=str)


class ContextualFormatter(logging.Formatter):
    """Readable single-line format for local development."""

    def format(self, record: logging.LogRecord) -> str:
        tags = [
            f"{label}={value[:8] if name == 'request_id' else value}"
            for name, (var, label) in _CONTEXT_FIELDS.items()
            if (value := var.get())
        ]
        suffix = f" [{', '.join(tags)}]" if tags else ""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        line = f"{timestamp} | {record.levelname:<8} | {record.name}{suffix} | {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that copies the current context onto each record."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **current_context()}
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger for the given module name."""
    return ContextLogger(logging.getLogger(name), {})


def _wants_json() -> bool:
    if os.getenv("LOG_FORMAT", "").lower() == "json":
        return True
    return os.getenv("ENVIRONMENT", "development") == "production" and not sys.stdout.isatty()


def configure_logging(
    log_level: str = "INFO",
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """
    Install handlers on the root logger.

    Args:
        log_level: Minimum level. ``LOG_LEVEL`` in the environment wins.
        json_format: Force JSON or text output. Detected from ``LOG_FORMAT``
            and ``ENVIRONMENT`` when None.
        log_file: Also write records to this file.
    """
    level_name = os.getenv("LOG_LEVEL", log_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    if json_format is None:
        json_format = _wants_json()
    formatter = StructuredJsonFormatter() if json_format else ContextualFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root.addHandler(handler)

    logging.getLogger("mealcart").setLevel(level)
    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    get_logger(__name__).info(
        f"Logging configured: level={level_name}, format={'json' if json_format else 'text'}"
    )


def set_context(
    request_id: str | None = None,
    user_id: str | None = None,
    plan_date: str | date | None = None,
) -> None:
    """Tag all following records of this context. None leaves a field as is."""
    values = {"request_id": request_id, "user_id": user_id, "plan_date": _as_text(plan_date)}
    for name, value in values.items():
        if value is not None:
            _CONTEXT_FIELDS[name][0].set(value)


def clear_context() -> None:
    """Remove every context field."""
    for var, _ in _CONTEXT_FIELDS.values():
        var.set(None)


class LoggingContext:
    """
    Scope context fields to a block.

    Fields set on entry are restored to their previous values on exit, so
    nested blocks (a plan build inside a request) compose.

    Example:
        with LoggingContext(user_id="alice", plan_date=date(2024, 3, 4)):
            logger.info("Building shopping list")
    """

    def __init__(
        self,
        request_id: str | None = None,
        user_id: str | None = None,
        plan_date: str | date | None = None,
    ):
        self.values = {"request_id": request_id, "user_id": user_id, "plan_date": _as_text(plan_date)}
        self._tokens: dict[str, Token] = {}

    def __enter__(self) -> "LoggingContext":
        for name, value in self.values.items():
            if value is not None:
                self._tokens[name] = _CONTEXT_FIELDS[name][0].set(value)
        return self

    def __exit__(self, *args: Any) -> None:
        for name, token in self._tokens.items():
            _CONTEXT_FIELDS[name][0].reset(token)
        self._tokens.clear()
