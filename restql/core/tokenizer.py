"""Lexer for restql operation strings."""

import logging
from dataclasses import dataclass
from enum import Enum

from .errors import ValidationError

logger = logging.getLogger(__name__)


class TokenType(Enum):
    IDENTIFIER = "IDENTIFIER"
    LEFT_BRACE = "LEFT_BRACE"
    RIGHT_BRACE = "RIGHT_BRACE"
    LEFT_PAREN = "LEFT_PAREN"
    RIGHT_PAREN = "RIGHT_PAREN"
    COLON = "COLON"
    COMMA = "COMMA"
    STRING = "STRING"
    EXCLAMATION = "EXCLAMATION"
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    pos: int


_PUNCTUATION = {
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
    "!": TokenType.EXCLAMATION,
}


def is_identifier_char(char: str) -> bool:
    return char == "_" or char == "$" or (char.isascii() and char.isalnum())


class Tokenizer:
    """Turns an operation string into a flat list of tokens.

    Identifiers may contain `$`, so a variable reference like `$id` comes
    out as a single IDENTIFIER. STRING tokens keep their quotes.
    """

    def __init__(self):
        self._text = ""
        self._pos = 0

    def tokenize(self, text: str) -> list[Token]:
        self._text = text
        self._pos = 0
        tokens: list[Token] = []

        while self._pos < len(text):
            char = text[self._pos]
            if char in _PUNCTUATION:
                tokens.append(Token(_PUNCTUATION[char], char, self._pos))
                self._pos += 1
            elif char == '"':
                tokens.append(self._read_string())
            elif is_identifier_char(char):
                tokens.append(self._read_identifier())
            elif char.isspace():
                self._pos += 1
            else:
                raise ValidationError(f"Unexpected character: {char} at position {self._pos}")

        tokens.append(Token(TokenType.EOF, "", self._pos))
        logger.debug("Tokenized %d tokens", len(tokens))
        return tokens

    def _read_string(self) -> Token:
        start = self._pos
        self._pos += 1
        while self._pos < len(self._text) and self._text[self._pos] != '"':
            if self._text[self._pos] == "\\":
                self._pos += 1
            self._pos += 1
        if self._pos >= len(self._text):
            raise ValidationError(f"Unterminated string starting at position {start}")
        self._pos += 1
        return Token(TokenType.STRING, self._text[start:self._pos], start)

    def _read_identifier(self) -> Token:
        start = self._pos
        while self._pos < len(self._text) and is_identifier_char(self._text[self._pos]):
            self._pos += 1
        return Token(TokenType.IDENTIFIER, self._text[start:self._pos], start)
