"""Structured logging for the synthesis pipeline.

Everything logs through structlog. ``setup_logging`` wires the renderer
from Settings (console lines for development, JSON lines for batch runs).
Worker threads share one configuration; per-session fields travel in
context variables bound by ``LogContext``.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Optional

import structlog

if TYPE_CHECKING:
    from codesight.config import Settings

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _processors(include_timestamp: bool, json_format: bool) -> list:
    chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    if include_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    chain.append(structlog.processors.format_exc_info)
    chain.append(
        structlog.processors.JSONRenderer(sort_keys=True)
        if json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    return chain


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    include_timestamp: bool = True,
) -> None:
    """Configure structlog on top of the stdlib root logger.

    Args:
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL
        json_format: Render one JSON object per line
        include_timestamp: Add a UTC ISO timestamp to every event

    Raises:
        ValueError: On an unknown level name
    """
    level_name = level.upper()
    if level_name not in _LEVELS:
        raise ValueError(f"Unknown log level {level!r}, expected one of {', '.join(_LEVELS)}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level_name, force=True)

    structlog.configure(
        processors=_processors(include_timestamp, json_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_logging(settings: Optional["Settings"] = None) -> None:
    """Configure logging from CODESIGHT_LOG_LEVEL and CODESIGHT_LOG_JSON."""
    if settings is None:
        from codesight.config import get_settings

        settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)


def get_logger(name: Optional[str] = None, **context) -> structlog.BoundLogger:
    """Return a structlog logger, bound to ``context`` when given."""
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


class LogContext:
    """Bind context variables for the duration of a block.

    Values shadowed by the block (e.g. an outer session_id) are restored on
    exit rather than removed.

    Usage:
        with LogContext(session_id="sess-123"):
            logger.info("Synthesizing session")
    """

    def __init__(self, **context):
        self.context = context
        self._tokens = None

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._tokens is not None:
            structlog.contextvars.reset_contextvars(**self._tokens)
            self._tokens = None


@contextmanager
def log_operation(
    operation: str,
    logger: Optional[structlog.BoundLogger] = None,
    **context,
):
    """Log start and outcome of an operation, with its wall time.

    The yielded dict collects result fields; they are logged with the
    completion event. Exceptions are logged and re-raised.

    Example:
        with log_operation("run_batch", session_count=12) as op:
            outcomes = ...
            op["failed"] = 1
    """
    log = (logger or get_logger()).bind(operation=operation, **context)
    result = {"success": False, "error": None}
    started = time.perf_counter()

    log.info(f"{operation} started")
    try:
        yield result
    except Exception as e:
        result["error"] = str(e)
        result["duration_ms"] = int((time.perf_counter() - started) * 1000)
        log.error(f"{operation} failed", error_type=type(e).__name__, **result)
        raise

    result["success"] = True
    result["duration_ms"] = int((time.perf_counter() - started) * 1000)
    log.info(f"{operation} completed", **result)


class SynthesisLogger:
    """Progress logger for one session's synthesis run.

    Keeps running counters so the summary line carries totals.
    """

    def __init__(self, session_id: str, interaction_count: int):
        self.log = get_logger().bind(session_id=session_id, interaction_count=interaction_count)
        self.processed = 0
        self.failed = 0

    def session_started(self, flow_count: int) -> None:
        self.log.info("Session synthesis started", flow_count=flow_count)

    def interaction_processed(self, index: int, kind: str, quality: float) -> None:
        self.processed += 1
        self.log.debug("Interaction processed", interaction_index=index, kind=kind, quality=quality)

    def interaction_failed(self, index: int, error: Exception) -> None:
        self.failed += 1
        self.log.warning(
            "Interaction skipped",
            interaction_index=index,
            error_type=type(error).__name__,
            error=str(error),
        )

    def budget_exhausted(self, index: int, budget_seconds: Optional[float]) -> None:
        self.log.warning(
            "Session time budget exhausted, emitting partial output",
            stopped_after_index=index,
            budget_seconds=budget_seconds,
        )

    def session_completed(self, emitted: int, dropped: int, partial: bool) -> None:
        self.log.info(
            "Session synthesis completed",
            processed=self.processed,
            failed=self.failed,
            emitted=emitted,
            dropped_below_bar=dropped,
            partial=partial,
        )
