"""Grammar parser for date math expressions.

Grammar::

    expression    := anchor ( '||' math )? | 'now' math
    anchor        := 'now' | epoch-millis | date-literal | time
    date-literal  := year ('-' month ('-' day ('T' time)?)?)?
    time          := hour (':' minute (':' second ('.' fraction)?)?)? offset?
    offset        := 'Z' | ('+' | '-') hh ':' mm
    math          := operation*
    operation     := ('+' | '-') digits? unit | '/' unit

The parser is recursive descent with one token of lookahead. Fixed-width
fields take their digits from the front of a digit run and push the rest
back, so error positions line up with individual digits.
"""

import calendar
from typing import List, Optional, Sequence, Tuple, Union

from dateutil.tz import tzoffset, tzutc

from ..core.error_handler import DateMathRangeError, DateMathSemanticError, DateMathSyntaxError
from ..core.logging_manager import LoggingManager
from .expression import Delta, Expression, LiteralAnchor, NowAnchor, Operation, Round, Unit
from .lexer import Lexer, Token, TokenKind

# Shortest digit run read as epoch milliseconds rather than a year
EPOCH_MILLIS_MIN_DIGITS = 10
# 9999-12-31T23:59:59.999Z
MAX_EPOCH_MILLIS = 253402300799999

OPERATION_START = (TokenKind.PLUS, TokenKind.MINUS, TokenKind.BACKSLASH)


class GrammarParser:
    """Parses one expression. Instances are single use."""

    def __init__(self, text: Union[str, bytes]):
        if isinstance(text, bytes):
            # Undecodable bytes surface as invalid tokens
            text = text.decode("utf-8", errors="replace")
        if not isinstance(text, str):
            raise TypeError(f"Expression must be a string, got {type(text).__name__}")
        self.text = text
        self.lexer = Lexer(text)
        self._lookahead: Optional[Token] = None
        self.logger = LoggingManager.get_logger(__name__)

    def parse(self) -> Expression:
        """Parse the whole input.

        Raises:
            DateMathSyntaxError: The input does not match the grammar
            DateMathRangeError: A date literal names an impossible date or time
            DateMathSemanticError: An operation cannot be applied to its unit
        """
        token = self._peek()

        if token.kind is TokenKind.NOW:
            self._advance()
            anchor = NowAnchor()
            if self._peek().kind is TokenKind.PIPES:
                self._advance()
                operations = self._parse_math()
            else:
                operations = self._parse_math(also_expected=(TokenKind.PIPES,))
        elif token.kind is TokenKind.DIGIT:
            anchor, follow = self._parse_literal()
            if self._peek().kind is TokenKind.PIPES:
                self._advance()
                operations = self._parse_math()
            else:
                self._expect(*follow, TokenKind.PIPES, TokenKind.EOF)
                operations = []
        else:
            self._syntax_error(token, (TokenKind.NOW, TokenKind.DIGIT))

        expression = Expression(anchor, tuple(operations))
        self.logger.debug(f"Parsed {self.text!r} as {expression!r}")
        return expression

    # Token handling

    def _peek(self) -> Token:
        if self._lookahead is None:
            self._lookahead = self.lexer.next()
        return self._lookahead

    def _advance(self) -> Token:
        token = self._peek()
        self._lookahead = None
        return token

    def _expect(self, *kinds: TokenKind) -> Token:
        token = self._peek()
        if token.kind not in kinds:
            self._syntax_error(token, kinds)
        return self._advance()

    def _syntax_error(self, token: Token, expected: Sequence[TokenKind]):
        raise DateMathSyntaxError(token.kind.value, [kind.value for kind in expected],
                                  token.character, token.text)

    def _take_digits(self, count: int, prefix: Optional[Token] = None) -> Tuple[int, Token]:
        """Read exactly ``count`` digits, splitting a longer run.

        Returns the value and the token holding the final digit.
        """
        digits = prefix.text if prefix else ""
        last = prefix
        while len(digits) < count:
            token = self._peek()
            if token.kind is not TokenKind.DIGIT:
                self._syntax_error(token, (TokenKind.DIGIT,))
            needed = count - len(digits)
            if len(token.text) > needed:
                token, self._lookahead = token.split(needed)
            else:
                self._advance()
            digits += token.text
            last = token
        return int(digits), last

    def _check_range(self, field: str, value: int, low: int, high: int, last: Token, bound: str = ""):
        if not low <= value <= high:
            raise DateMathRangeError(field, value, bound, last.character, last.text[-1])

    # Anchor phase

    def _parse_literal(self) -> Tuple[LiteralAnchor, Tuple[TokenKind, ...]]:
        """Parse an epoch, date or time literal.

        Returns the anchor and the optional tokens that could have continued it.
        """
        start = self._peek()

        if len(start.text) >= EPOCH_MILLIS_MIN_DIGITS:
            self._advance()
            self._check_range("epoch milliseconds", int(start.text), 0, MAX_EPOCH_MILLIS, start)
            return LiteralAnchor(epoch_millis=int(start.text), source=start.text), ()

        if len(start.text) == 2:
            self._advance()
            if self._peek().kind is TokenKind.COLON:
                fields, follow = self._parse_time(start)
                return self._literal(start, fields), follow
            year, last = self._take_digits(4, prefix=start)
        else:
            year, last = self._take_digits(4)

        self._check_range("year", year, 1, 9999, last)
        fields = {"year": year}
        if self._peek().kind is not TokenKind.MINUS:
            return self._literal(start, fields), (TokenKind.MINUS,)
        self._advance()

        month, last = self._take_digits(2)
        self._check_range("month", month, 1, 12, last)
        fields["month"] = month
        if self._peek().kind is not TokenKind.MINUS:
            return self._literal(start, fields), (TokenKind.MINUS,)
        self._advance()

        day, last = self._take_digits(2)
        self._check_range("day", day, 1, calendar.monthrange(year, month)[1], last,
                          bound=f"for month {month}")
        fields["day"] = day
        if self._peek().kind is not TokenKind.TIME_DELIMITER:
            return self._literal(start, fields), (TokenKind.TIME_DELIMITER,)
        self._advance()

        time_fields, follow = self._parse_time()
        fields.update(time_fields)
        return self._literal(start, fields), follow

    def _parse_time(self, hour_prefix: Optional[Token] = None):
        hour, last = self._take_digits(2, prefix=hour_prefix)
        self._check_range("hour", hour, 0, 23, last)
        fields = {"hour": hour}

        follow: Tuple[TokenKind, ...] = (TokenKind.COLON, TokenKind.OFFSET)
        for name in ("minute", "second"):
            if self._peek().kind is not TokenKind.COLON:
                break
            self._advance()
            value, last = self._take_digits(2)
            self._check_range(name, value, 0, 59, last)
            fields[name] = value
            follow = (TokenKind.COLON, TokenKind.OFFSET) if name == "minute" else (TokenKind.DOT, TokenKind.OFFSET)
        else:
            if self._peek().kind is TokenKind.DOT:
                self._advance()
                fraction = self._expect(TokenKind.DIGIT).text
                fields["microsecond"] = int(fraction[:6].ljust(6, "0"))
                follow = (TokenKind.OFFSET,)

        if self._peek().kind is TokenKind.OFFSET:
            fields["tzinfo"] = self._parse_offset(self._advance())
            follow = ()
        return fields, follow

    def _parse_offset(self, token: Token):
        if token.text == "Z":
            return tzutc()
        sign = -1 if token.text[0] == "-" else 1
        hours, minutes = int(token.text[1:3]), int(token.text[4:6])
        if hours > 23 or minutes > 59:
            raise DateMathRangeError("offset", int(token.text[1:3] + token.text[4:6]), "",
                                     token.character, token.text)
        return tzoffset(None, sign * (hours * 3600 + minutes * 60))

    def _literal(self, start: Token, fields: dict) -> LiteralAnchor:
        end = self._lookahead.offset if self._lookahead is not None else self.lexer.position
        return LiteralAnchor(source=self.text[start.offset:end], **fields)

    # Math phase

    def _parse_math(self, also_expected: Tuple[TokenKind, ...] = ()) -> List[Operation]:
        operations: List[Operation] = []
        while True:
            token = self._peek()
            if token.kind in (TokenKind.PLUS, TokenKind.MINUS):
                self._advance()
                count = 1
                if self._peek().kind is TokenKind.DIGIT:
                    count = int(self._advance().text)
                unit = Unit.from_symbol(self._expect(TokenKind.UNIT).text)
                operations.append(Delta(-count if token.kind is TokenKind.MINUS else count, unit))
            elif token.kind is TokenKind.BACKSLASH:
                self._advance()
                unit_token = self._expect(TokenKind.UNIT)
                unit = Unit.from_symbol(unit_token.text)
                if not unit.is_roundable:
                    raise DateMathSemanticError(f"cannot round to unit {unit.value}",
                                                unit_token.character, unit_token.text)
                operations.append(Round(unit))
            elif token.kind is TokenKind.EOF:
                return operations
            else:
                expected = OPERATION_START + (also_expected if not operations else ()) + (TokenKind.EOF,)
                self._syntax_error(token, expected)
