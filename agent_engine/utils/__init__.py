"""Utility modules."""

from .logging import get_logger, configure_root_logger

__all__ = ["get_logger", "configure_root_logger"]
