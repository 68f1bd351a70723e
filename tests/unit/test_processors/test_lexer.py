"""
Unit tests for the Lexer component.

Tests token classification, offsets and end-of-input behaviour.
"""

import pytest

from datemath.processors.lexer import Lexer, Token, TokenKind


def kinds(text):
    return [token.kind for token in Lexer(text)]


class TestLexer:
    """Test suite for Lexer component"""

    @pytest.mark.unit
    def test_now_with_operations(self):
        """Test tokens of a now-anchored expression"""
        tokens = list(Lexer("now-15m/d"))

        assert [token.kind for token in tokens] == [
            TokenKind.NOW, TokenKind.MINUS, TokenKind.DIGIT, TokenKind.UNIT,
            TokenKind.BACKSLASH, TokenKind.UNIT, TokenKind.EOF,
        ]
        assert [token.text for token in tokens] == ["now", "-", "15", "m", "/", "d", ""]
        assert [token.offset for token in tokens] == [0, 3, 4, 6, 7, 8, 9]

    @pytest.mark.unit
    def test_date_literal_tokens(self):
        """Test punctuation and digit runs in a full literal"""
        assert kinds("2014-05-30T20:21:35.123Z||+1h") == [
            TokenKind.DIGIT, TokenKind.MINUS, TokenKind.DIGIT, TokenKind.MINUS, TokenKind.DIGIT,
            TokenKind.TIME_DELIMITER, TokenKind.DIGIT, TokenKind.COLON, TokenKind.DIGIT,
            TokenKind.COLON, TokenKind.DIGIT, TokenKind.DOT, TokenKind.DIGIT, TokenKind.OFFSET,
            TokenKind.PIPES, TokenKind.PLUS, TokenKind.DIGIT, TokenKind.UNIT, TokenKind.EOF,
        ]

    @pytest.mark.unit
    def test_digit_runs_keep_leading_zeros(self):
        """Test that digit runs are emitted whole"""
        token = Lexer("0005").next()

        assert token == Token(TokenKind.DIGIT, "0005", 0)

    @pytest.mark.unit
    def test_numeric_offset_inside_time(self):
        """Test that +HH:MM after a time of day is a single offset token"""
        tokens = list(Lexer("2014-05-30T20:21+03:00"))

        assert tokens[-2] == Token(TokenKind.OFFSET, "+03:00", 16)

    @pytest.mark.unit
    def test_offset_not_recognised_outside_time(self):
        """Test that signs keep their operator meaning outside a time literal"""
        assert kinds("2014-05-30+03:00")[5] == TokenKind.PLUS
        assert kinds("now+03")[1] == TokenKind.PLUS
        assert kinds("2014-05-30T20||+01:00")[8] == TokenKind.PLUS

    @pytest.mark.unit
    def test_units(self):
        """Test the unit alphabet including fiscal prefixes"""
        for symbol in ["y", "fy", "Q", "fQ", "M", "w", "d", "h", "H", "m", "s", "b"]:
            token = Lexer(symbol).next()
            assert token == Token(TokenKind.UNIT, symbol, 0)

    @pytest.mark.unit
    def test_invalid_fiscal_prefix(self):
        """Test that f only prefixes y and Q"""
        assert Lexer("fM").next() == Token(TokenKind.INVALID, "fM", 0)
        assert Lexer("f").next() == Token(TokenKind.INVALID, "f", 0)

    @pytest.mark.unit
    def test_partial_keyword(self):
        """Test invalid tokens produced by a broken 'now'"""
        assert Lexer("no").next() == Token(TokenKind.INVALID, "no", 0)
        assert Lexer("npe").next() == Token(TokenKind.INVALID, "np", 0)
        assert Lexer("nope").next() == Token(TokenKind.INVALID, "nop", 0)

    @pytest.mark.unit
    def test_single_pipe_and_unknown_characters(self):
        """Test characters outside the alphabet"""
        assert Lexer("|").next() == Token(TokenKind.INVALID, "|", 0)
        assert Lexer(" ").next() == Token(TokenKind.INVALID, " ", 0)
        assert Lexer("Z").next() == Token(TokenKind.INVALID, "Z", 0)

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["\u00b2", "\u0663", "\uff11"])
    def test_non_ascii_digits_are_invalid(self, text):
        """Test that only ASCII 0-9 form digit tokens"""
        assert Lexer(text).next() == Token(TokenKind.INVALID, text, 0)

    @pytest.mark.unit
    def test_digit_run_stops_at_non_ascii_digit(self):
        """Test that a run of ASCII digits ends before a superscript digit"""
        assert list(Lexer("20\u00b2")) == [
            Token(TokenKind.DIGIT, "20", 0),
            Token(TokenKind.INVALID, "\u00b2", 2),
            Token(TokenKind.EOF, "", 3),
        ]

    @pytest.mark.unit
    def test_end_of_input_is_repeated(self):
        """Test that EOF is returned on every call after exhaustion"""
        lexer = Lexer("d")
        lexer.next()

        first = lexer.next()
        second = lexer.next()

        assert first.kind is TokenKind.EOF
        assert first == second
        assert first.offset == 1

    @pytest.mark.unit
    def test_token_positions(self):
        """Test end offset, 1-based character and splitting"""
        token = Token(TokenKind.DIGIT, "20145", 3)

        assert token.end == 8
        assert token.character == 9

        head, rest = token.split(4)
        assert head == Token(TokenKind.DIGIT, "2014", 3)
        assert rest == Token(TokenKind.DIGIT, "5", 7)
