"""Public entry points.

Two-step use parses once and evaluates many times::

    expression = parse("now-1d/d")
    start = evaluate(expression, now=reference)

One-step use does both::

    parse_and_evaluate("2014-11-18||+3M")
"""

from datetime import datetime
from typing import Optional, Union

from .core.config_manager import EvaluationConfig
from .processors.evaluator import Evaluator
from .processors.expression import Expression
from .processors.grammar_parser import GrammarParser


def parse(text: Union[str, bytes]) -> Expression:
    """Parse a date math expression.

    Raises:
        DateMathSyntaxError: The text does not match the grammar
        DateMathRangeError: A date literal names an impossible date or time
    """
    return GrammarParser(text).parse()


def evaluate(expression: Expression, config: Optional[EvaluationConfig] = None, **overrides) -> datetime:
    """Evaluate a parsed expression to an aware UTC datetime.

    Keyword overrides (``now``, ``timezone``, ``round_up``, ``business_day``,
    ``fiscal_year_start``, ``start_of_week``) replace fields of ``config``.
    """
    return Evaluator(config, **overrides).evaluate(expression)


def parse_and_evaluate(text: Union[str, bytes], config: Optional[EvaluationConfig] = None,
                       **overrides) -> datetime:
    """Parse and evaluate in one call."""
    return evaluate(parse(text), config, **overrides)
