"""
Custom exception classes and error handling utilities.
"""

from typing import Optional, Dict, Any
import traceback


class PriceTrendMonitorError(Exception):
    """Base exception for all price trend monitor errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DatabaseError(PriceTrendMonitorError):
    """Exception raised during database operations."""
    pass


class ConfigurationError(PriceTrendMonitorError):
    """Exception raised for configuration-related issues."""
    pass


class ValidationError(PriceTrendMonitorError):
    """Exception raised for data validation failures."""
    pass


class ProductNotFoundError(PriceTrendMonitorError):
    """Exception raised when a tracked product does not exist."""
    pass


class ChartGenerationError(PriceTrendMonitorError):
    """Exception raised when a price chart cannot be rendered."""
    pass


def handle_error(
    error: Exception,
    logger,
    context: Optional[Dict[str, Any]] = None,
    reraise: bool = True
) -> None:
    """
    Handle and log errors with context information.

    Args:
        error: The exception that occurred
        logger: Logger instance to use for logging
        context: Additional context information
        reraise: Whether to reraise the exception after logging
    """
    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "traceback": traceback.format_exc(),
        **(context or {})
    }

    if isinstance(error, PriceTrendMonitorError):
        error_context.update(error.details)

    logger.error("Error occurred: %s", error_context)

    if reraise:
        raise error
