"""Token stream for date math expressions.

Tokens are produced lazily by :meth:`Lexer.next`; once the input is exhausted
every further call returns an end-of-input token.
"""

import re
from dataclasses import dataclass
from enum import Enum

from ..core.logging_manager import LoggingManager
from .expression import UNIT_SYMBOLS


class TokenKind(Enum):
    """Token classes. Values are the names used in syntax error messages."""
    DIGIT = "tDIGIT"
    NOW = "tNOW"
    UNIT = "tUNIT"
    PLUS = "tPLUS"
    MINUS = "tMINUS"
    BACKSLASH = "tBACKSLASH"
    PIPES = "tPIPES"
    TIME_DELIMITER = "tTIME_DELIMITER"
    COLON = "tCOLON"
    DOT = "tDOT"
    OFFSET = "tOFFSET"
    EOF = "tEOF"
    INVALID = "tINVALID_TOKEN"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Token:
    """A classified lexeme and its 0-based starting offset."""
    kind: TokenKind
    text: str
    offset: int

    @property
    def end(self) -> int:
        return self.offset + len(self.text)

    @property
    def character(self) -> int:
        """1-based position reported in error messages."""
        return self.end + 1

    def split(self, size: int):
        """Split a digit run after ``size`` digits into (head, rest)."""
        head = Token(self.kind, self.text[:size], self.offset)
        rest = Token(self.kind, self.text[size:], self.offset + size)
        return head, rest


_DIGITS = re.compile(r"[0-9]+")
_NUMERIC_OFFSET = re.compile(r"[+-][0-9]{2}:[0-9]{2}")

_SINGLE_CHARACTER_TOKENS = {
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "/": TokenKind.BACKSLASH,
    ":": TokenKind.COLON,
    ".": TokenKind.DOT,
    "T": TokenKind.TIME_DELIMITER,
}


class Lexer:
    """Splits an expression into tokens on demand."""

    KEYWORD_NOW = "now"

    def __init__(self, text: str):
        self.text = text
        self.position = 0
        # Offsets like +03:00 are only recognised inside a time of day
        self._in_time = False
        self._math_phase = False
        self.logger = LoggingManager.get_logger(__name__)

    def __iter__(self):
        while True:
            token = self.next()
            yield token
            if token.kind is TokenKind.EOF:
                return

    def next(self) -> Token:
        """Return the next token, or an EOF token once input is exhausted."""
        text, start = self.text, self.position
        if start >= len(text):
            return Token(TokenKind.EOF, "", len(text))

        char = text[start]

        if "0" <= char <= "9":
            match = _DIGITS.match(text, start)
            return self._emit(TokenKind.DIGIT, match.end())

        if char == "n":
            return self._lex_keyword(self.KEYWORD_NOW, TokenKind.NOW)

        if char == "|":
            if text.startswith("||", start):
                self._in_time = False
                self._math_phase = True
                return self._emit(TokenKind.PIPES, start + 2)
            return self._emit(TokenKind.INVALID, start + 1)

        if self._in_time and not self._math_phase:
            if char == "Z":
                self._in_time = False
                return self._emit(TokenKind.OFFSET, start + 1)
            match = _NUMERIC_OFFSET.match(text, start)
            if match:
                self._in_time = False
                return self._emit(TokenKind.OFFSET, match.end())

        if char == "f":
            if text[start + 1:start + 2] in ("y", "Q"):
                return self._emit(TokenKind.UNIT, start + 2)
            return self._emit(TokenKind.INVALID, min(start + 2, len(text)))

        if char in UNIT_SYMBOLS:
            return self._emit(TokenKind.UNIT, start + 1)

        kind = _SINGLE_CHARACTER_TOKENS.get(char)
        if kind is not None:
            if not self._math_phase and kind in (TokenKind.TIME_DELIMITER, TokenKind.COLON):
                self._in_time = True
            return self._emit(kind, start + 1)

        return self._emit(TokenKind.INVALID, start + 1)

    def _lex_keyword(self, keyword: str, kind: TokenKind) -> Token:
        """Match ``keyword`` character by character.

        A mismatching character is included in the invalid token; running out
        of input yields whatever was read.
        """
        start = self.position
        end = start
        for expected in keyword:
            if end >= len(self.text):
                return self._emit(TokenKind.INVALID, end)
            end += 1
            if self.text[end - 1] != expected:
                return self._emit(TokenKind.INVALID, end)
        if kind is TokenKind.NOW:
            self._math_phase = True
        return self._emit(kind, end)

    def _emit(self, kind: TokenKind, end: int) -> Token:
        token = Token(kind, self.text[self.position:end], self.position)
        self.position = end
        if kind is TokenKind.INVALID:
            self.logger.debug(f"Invalid token {token.text!r} at offset {token.offset}")
        return token
