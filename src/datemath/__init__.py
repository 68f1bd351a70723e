"""datemath - Date Math Expression Parser and Evaluator

Parses expressions such as ``now-1d/d`` or ``2014-11-18||+3M/M`` and evaluates
them against a reference instant, timezone and calendar configuration.
"""

__version__ = "0.1.0"
__author__ = "datemath contributors"
__description__ = "Date math expression parser and evaluator"

from .api import evaluate, parse, parse_and_evaluate
from .core.config_manager import BusinessCalendar, ConfigManager, EvaluationConfig, FiscalYearStart
from .core.error_handler import (
    ConfigurationError,
    DateMathError,
    DateMathOverflowError,
    DateMathRangeError,
    DateMathSemanticError,
    DateMathSyntaxError,
)
from .processors.expression import Delta, Expression, LiteralAnchor, NowAnchor, Round, Unit

__all__ = [
    "parse",
    "evaluate",
    "parse_and_evaluate",
    "EvaluationConfig",
    "FiscalYearStart",
    "BusinessCalendar",
    "ConfigManager",
    "DateMathError",
    "DateMathSyntaxError",
    "DateMathRangeError",
    "DateMathSemanticError",
    "DateMathOverflowError",
    "ConfigurationError",
    "Expression",
    "NowAnchor",
    "LiteralAnchor",
    "Delta",
    "Round",
    "Unit",
]
