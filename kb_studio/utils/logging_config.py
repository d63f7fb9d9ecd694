"""Structured logging configuration.

Two output formats are supported: a human-readable line format for local
work and a JSON format for log shipping. The format defaults to the
LOG_FORMAT setting. Callers attach structured context through
``extra={"extra_fields": {...}}``; the JSON formatter merges it into the
record and the standard formatter appends it as ``key=value`` pairs.
"""

import json
import logging
import sys
from typing import Any

from kb_studio.utils.config import get_settings


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """One JSON object per record, tagged with app name and environment."""
        settings = get_settings()

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "app_name": settings.APP_NAME,
            "environment": settings.ENVIRONMENT,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Text formatter that appends structured context to the message."""

    def __init__(self) -> None:
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        """Format the record, then append any ``extra_fields`` as key=value pairs."""
        line = super().format(record)
        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            context = " ".join(f"{key}={value}" for key, value in extra_fields.items())
            line = f"{line} | {context}"
        return line


_logging_configured = False


def _is_stdout_handler(handler: logging.Handler) -> bool:
    return isinstance(handler, logging.StreamHandler) and handler.stream is sys.stdout


def setup_logging(use_json: bool | None = None, force_reconfigure: bool = False) -> None:
    """Install the stdout handler on the root logger at LOG_LEVEL.

    Runs once per process unless ``force_reconfigure`` is set.

    Args:
        use_json: Force JSON (True) or text (False) output. None uses LOG_FORMAT.
        force_reconfigure: Replace an existing configuration.
    """
    global _logging_configured

    if _logging_configured and not force_reconfigure:
        return

    settings = get_settings()
    if use_json is None:
        use_json = settings.LOG_FORMAT == "json"

    root_logger = logging.getLogger()

    # Only our own handler is replaced; handlers installed by test runners stay
    for handler in [h for h in root_logger.handlers if _is_stdout_handler(h)]:
        root_logger.removeHandler(handler)

    log_level = getattr(logging, settings.LOG_LEVEL)
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JsonFormatter() if use_json else StandardFormatter())
    root_logger.addHandler(console_handler)

    # LiteLLM and httpx are chatty at INFO
    for noisy in ("LiteLLM", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    _logging_configured = True

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s, format=%s",
        settings.LOG_LEVEL,
        "json" if use_json else "standard",
    )


def get_logger(name: str) -> logging.Logger:
    """Named logger; configures logging on first use."""
    if not _logging_configured:
        setup_logging()
    return logging.getLogger(name)


def reset_logging() -> None:
    """Drop the stdout handler and mark logging unconfigured (used by tests)."""
    global _logging_configured

    root_logger = logging.getLogger()
    for handler in [h for h in root_logger.handlers if _is_stdout_handler(h)]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)
    _logging_configured = False
