"""Structured logging module using structlog."""

from .structured_logger import (
    LoggerMixin,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = ["LoggerMixin", "bind_context", "clear_context", "configure_logging", "get_logger"]
