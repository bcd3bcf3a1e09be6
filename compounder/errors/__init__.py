"""
Error handling and exception classes.

Every error raised inside a compounding cycle derives from CompounderError and
surfaces to the top of the cycle; nothing is retried within the same cycle.

Example usage:
    from compounder.errors import TransportError, classify_error
"""

from compounder.errors.exceptions import (
    CompounderError, TransportError, ConversionError, OptimizationFailure,
    IntegrityError, EmptyInputError, ConfigurationError
)
from compounder.errors.classification import classify_error, get_error_code, ErrorCategory, ClassifiedError

__all__ = [
    "CompounderError", "TransportError", "ConversionError", "OptimizationFailure",
    "IntegrityError", "EmptyInputError", "ConfigurationError",
    "classify_error", "get_error_code", "ErrorCategory", "ClassifiedError",
]
