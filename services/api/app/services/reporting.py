from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class ErrorReporter(Protocol):
    """Receives failures that must not interrupt the caller (e.g. cart write-through)."""

    def report(self, error: BaseException, *, context: str, **details: Any) -> None: ...


class LoggingErrorReporter:
    def report(self, error: BaseException, *, context: str, **details: Any) -> None:
        logger.error(
            "%s failed: %s",
            context,
            error,
            exc_info=(type(error), error, error.__traceback__),
            extra={"details": details},
        )
