"""
Structured JSON logging.

Every record is one JSON line. Fields passed via ``extra=`` that are listed
in JsonFormatter.EXTRA_FIELDS are copied into the payload; the current
request id is attached automatically while a request is being served.
"""
import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from quizgen.core.config import settings

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# Third-party loggers that log every HTTP call at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def bind_request_id(request_id: str | None) -> None:
    _request_id.set(request_id)


def current_request_id() -> str | None:
    return _request_id.get()


class JsonFormatter(logging.Formatter):
    """Renders records as JSON with the image pipeline's context fields."""

    EXTRA_FIELDS = (
        # http
        "request_id", "path", "method", "status_code", "latency_ms",
        # image generation
        "provider", "kind", "index", "attempt", "max_attempts", "delay_ms",
        "window", "windows", "completed", "total",
        "success_count", "failure_count", "failure_type", "error",
        # storage / questions
        "bucket", "storage_path", "quiz_id", "question_count",
    )

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "env": settings.app_env,
        }
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if "request_id" not in payload and current_request_id():
            payload["request_id"] = current_request_id()

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None) -> None:
    """Install JSON handlers on the root logger (stderr, plus a rotating file if LOG_FILE is set)."""
    formatter = JsonFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(
            RotatingFileHandler(
                settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    root.handlers = handlers
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
