"""Observability: logging configuration for fluxkit."""

from .logging import JsonFormatter, TextFormatter, configure_logging, get_logger, include_traceback

__all__ = ["JsonFormatter", "TextFormatter", "configure_logging", "get_logger", "include_traceback"]
