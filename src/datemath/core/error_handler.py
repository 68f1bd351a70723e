"""Error Handling for datemath

Exception hierarchy raised by the parser and configuration layer, plus a
small handler that maps errors to severities and logs them.
"""

import logging
from enum import Enum
from typing import Iterable, Optional, Tuple


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DateMathError(Exception):
    """Base exception class for datemath."""

    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.MEDIUM):
        self.message = message
        self.severity = severity
        super().__init__(self.message)


class ConfigurationError(DateMathError):
    """Error raised when evaluation configuration is invalid."""
    pass


class DateMathSyntaxError(DateMathError):
    """Raised when the input does not match the expression grammar.

    The message format is stable and callers may match on it:
    ``syntax error: unexpected <kind>, expecting <kinds> at character <n> starting with "<text>"``
    """

    def __init__(self, unexpected: str, expected: Iterable[str], character: int, excerpt: str):
        self.unexpected = unexpected
        self.expected: Tuple[str, ...] = tuple(expected)
        self.character = character
        self.excerpt = excerpt

        message = f"syntax error: unexpected {unexpected}"
        if self.expected:
            message += ", expecting " + " or ".join(self.expected)
        message += f' at character {character} starting with "{excerpt}"'
        super().__init__(message)


class DateMathRangeError(DateMathError):
    """Raised when a well-formed literal names an impossible date or time."""

    def __init__(self, field: str, value: int, bound: str, character: int, excerpt: str):
        self.field = field
        self.value = value
        self.bound = bound
        self.character = character
        self.excerpt = excerpt

        message = f"{field} {value} out of bounds"
        if bound:
            message += f" {bound}"
        message += f' at character {character} starting with "{excerpt}"'
        super().__init__(message)


class DateMathSemanticError(DateMathError):
    """Raised when a well-formed operation cannot be applied, such as rounding to business days."""

    def __init__(self, reason: str, character: int, excerpt: str):
        self.reason = reason
        self.character = character
        self.excerpt = excerpt
        super().__init__(f'{reason} at character {character} starting with "{excerpt}"')


class DateMathOverflowError(DateMathError):
    """Raised when evaluation leaves the representable range of years 1 to 9999."""

    def __init__(self, expression: str, operation: str):
        self.expression = expression
        self.operation = operation
        super().__init__(f"result of {operation} in {expression!r} is outside years 1-9999")


class ErrorHandler:
    """Maps exceptions to severities and logs them."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize error handler.

        Args:
            logger: Logger to report through, defaults to this module's logger
        """
        self.logger = logger or logging.getLogger(__name__)

    def handle_error(self, error: Exception, context: Optional[str] = None) -> ErrorSeverity:
        """Log an error at the level matching its severity.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            The severity the error was reported with
        """
        severity = self.get_error_severity(error)
        self._log_error(error, self._format_error_message(error, context), severity)

        return severity

    def get_error_severity(self, error: Exception) -> ErrorSeverity:
        """Determine error severity based on exception type.

        Args:
            error: The exception to analyze

        Returns:
            Appropriate severity level
        """
        if isinstance(error, DateMathError):
            return error.severity

        severity_map = {
            ValueError: ErrorSeverity.MEDIUM,
            TypeError: ErrorSeverity.HIGH,
            OverflowError: ErrorSeverity.HIGH,
            MemoryError: ErrorSeverity.CRITICAL,
            KeyboardInterrupt: ErrorSeverity.LOW,
        }

        return severity_map.get(type(error), ErrorSeverity.MEDIUM)

    def _format_error_message(self, error: Exception, context: Optional[str] = None) -> str:
        message = str(error)
        if context:
            message = f"{context}: {message}"

        return message

    def _log_error(self, error: Exception, message: str, severity: ErrorSeverity):
        log_methods = {
            ErrorSeverity.LOW: self.logger.info,
            ErrorSeverity.MEDIUM: self.logger.warning,
            ErrorSeverity.HIGH: self.logger.error,
            ErrorSeverity.CRITICAL: self.logger.critical,
        }

        # Parse failures are ordinary input errors, tracebacks only for the rest
        log_methods[severity](message, exc_info=not isinstance(error, DateMathError))
