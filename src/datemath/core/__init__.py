"""Core modules for datemath.

Configuration, error types and logging shared by the parser and evaluator.
"""

from .config_manager import BusinessCalendar, ConfigManager, EvaluationConfig, FiscalYearStart
from .error_handler import (
    ConfigurationError,
    DateMathError,
    DateMathOverflowError,
    DateMathRangeError,
    DateMathSemanticError,
    DateMathSyntaxError,
    ErrorHandler,
    ErrorSeverity,
)
from .logging_manager import LoggingManager

__all__ = [
    "BusinessCalendar",
    "ConfigManager",
    "EvaluationConfig",
    "FiscalYearStart",
    "ConfigurationError",
    "DateMathError",
    "DateMathOverflowError",
    "DateMathRangeError",
    "DateMathSemanticError",
    "DateMathSyntaxError",
    "ErrorHandler",
    "ErrorSeverity",
    "LoggingManager",
]
