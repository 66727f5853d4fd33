"""Logging configuration for fargate_stack."""

from fargate_stack.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
