"""Expression Processors

Token stream, grammar parser, expression tree and evaluator.
"""

from .evaluator import Evaluator
from .expression import Delta, Expression, LiteralAnchor, NowAnchor, Round, Unit
from .grammar_parser import GrammarParser
from .lexer import Lexer, Token, TokenKind

__all__ = [
    "Evaluator",
    "Expression",
    "NowAnchor",
    "LiteralAnchor",
    "Delta",
    "Round",
    "Unit",
    "GrammarParser",
    "Lexer",
    "Token",
    "TokenKind",
]
