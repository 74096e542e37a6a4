"""
Custom Exceptions - Competency Engine
competency_engine/core/exceptions.py

Configuration errors raised when a calculator is constructed. Evaluation
data never raises: invalid records are excluded from the aggregate instead.
"""


class ScoringException(Exception):
    """Base exception for scoring configuration errors."""

    pass


class InvalidAnchorTableException(ScoringException):
    """Grade anchor table is incomplete or not strictly increasing."""

    def __init__(self, message: str = "Invalid grade anchor table"):
        self.message = message
        super().__init__(message)


class InvalidExportConfigException(ScoringException):
    """Export delimiter or column selection cannot produce a valid table."""

    def __init__(self, message: str = "Invalid export configuration"):
        self.message = message
        super().__init__(message)
