"""
Core Package - Competency Engine
competency_engine/core/__init__.py

Core infrastructure: exceptions, logging.
"""

from competency_engine.core.exceptions import (
    InvalidAnchorTableException,
    InvalidExportConfigException,
    ScoringException,
)
from competency_engine.core.logging import configure_logging, get_logger

__all__ = [
    # Exceptions
    "InvalidAnchorTableException",
    "InvalidExportConfigException",
    "ScoringException",
    # Logging
    "configure_logging",
    "get_logger",
]
