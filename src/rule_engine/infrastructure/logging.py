"""Structured logging utilities with context management."""

import contextvars
import sys
from typing import Any

from loguru import logger

from src.config import LoggingConfig

# Fields every record carries; "-" when no evaluation is in progress
_CONTEXT_KEYS = ("recipient_id", "rule_id")

# Recipient and rule of the evaluation running in this context
evaluation_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "evaluation_context", default={}
)


class LoggingContext:
    """
    Scope a recipient and/or rule onto every log record emitted inside it.

    Only `recipient_id` and `rule_id` are accepted, since those are the
    fields the sinks format. Fields left as None keep the enclosing value.

    Example:
        with LoggingContext(recipient_id="u1"):
            with LoggingContext(rule_id=7):
                logger.info("Rule matched")  # tagged u1:7
    """

    def __init__(self, *, recipient_id: str | None = None, rule_id: int | str | None = None):
        self.fields = {
            key: value
            for key, value in (("recipient_id", recipient_id), ("rule_id", rule_id))
            if value is not None
        }
        self._token: contextvars.Token | None = None

    def __enter__(self) -> "LoggingContext":
        self._token = evaluation_context.set({**evaluation_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            evaluation_context.reset(self._token)
            self._token = None


def get_logging_context() -> dict[str, Any]:
    """Recipient / rule currently in scope (only the fields that are set)."""
    return dict(evaluation_context.get())


def _context_filter(record) -> bool:
    """Stamp the recipient / rule in scope onto the record extras."""
    context = evaluation_context.get()
    for key in _CONTEXT_KEYS:
        record["extra"][key] = context.get(key, "-")
    return True


def configure_structured_logging(config: LoggingConfig | None = None) -> None:
    """
    Configure loguru to include context variables in all log messages.

    This should be called once at application startup.
    """
    config = config or LoggingConfig()

    logger.remove()

    logger.add(
        sink=sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[recipient_id]}</cyan>:<cyan>{extra[rule_id]}</cyan> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        filter=_context_filter,
        level=config.level.upper(),
        colorize=True,
    )

    if config.file:
        logger.add(
            sink=config.file,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra} | {name}:{function}:{line} | {message}",
            filter=_context_filter,
            level="INFO",
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            serialize=False,
        )
