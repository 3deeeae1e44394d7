"""
Structured Logging Utilities

Provides utilities for adding structured context to log messages, so every
line a transcode job writes can be attributed to that job.
"""

import logging
from typing import Any, Dict, Optional
from contextlib import contextmanager
from contextvars import ContextVar


# Context variable for task-scoped logging context
_logging_context: ContextVar[Dict[str, Any]] = ContextVar('logging_context', default={})


class StructuredLogger:
    """
    Wrapper around standard logger that adds structured context.

    Context values are passed as `extra` and also rendered as a
    `[key=value ...]` suffix so they show up with the plain formatter.

    Usage:
        logger = StructuredLogger(__name__)
        logger.info("Stage finished", extra={"stage": "download"})
    """

    def __init__(self, name: str):
        """
        Initialize structured logger.

        Args:
            name: Logger name (typically __name__)
        """
        self.logger = logging.getLogger(name)

    def _add_context(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Merge the ContextVar context with per-call extra values."""
        context = _logging_context.get().copy()
        if extra:
            context.update(extra)
        return context

    @staticmethod
    def _render(message: str, context: Dict[str, Any]) -> str:
        if not context:
            return message
        fields = ' '.join(f"{k}={v}" for k, v in context.items())
        return f"{message} [{fields}]"

    def _log(self, level: int, message: str, extra: Optional[Dict[str, Any]], exc_info: bool = False):
        context = self._add_context(extra)
        self.logger.log(
            level,
            self._render(message, context),
            extra={"context": context},
            exc_info=exc_info,
        )

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log(logging.DEBUG, message, extra)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log(logging.INFO, message, extra)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log(logging.WARNING, message, extra)

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        self._log(logging.ERROR, message, extra, exc_info=exc_info)


@contextmanager
def logging_context(**kwargs):
    """
    Temporarily extend the logging context for a block.

    Each asyncio task runs in a copy of its creator's context, so values set
    inside a transcode job never leak into other jobs.

    Example:
        with logging_context(job_id="a1b2", source_key="e1/1000-abcdef.webm"):
            ...
    """
    token = _logging_context.set({**_logging_context.get(), **kwargs})
    try:
        yield
    finally:
        _logging_context.reset(token)
