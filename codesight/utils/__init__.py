"""Utility modules for the synthesis pipeline.

Provides:
- Structured logging configuration
"""

from .logging import (
    LogContext,
    SynthesisLogger,
    configure_logging,
    get_logger,
    log_operation,
    setup_logging,
)

__all__ = [
    "configure_logging",
    "setup_logging",
    "get_logger",
    "LogContext",
    "log_operation",
    "SynthesisLogger",
]
