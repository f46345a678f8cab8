"""Utility modules for power assertions and logging."""

from .keep_awake import PowerAssertions
from .logging_config import setup_logging

__all__ = ["PowerAssertions", "setup_logging"]
