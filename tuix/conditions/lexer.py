"""
Lexer for `$if` condition expressions.

Splits a condition string into tokens:
- keywords (true, false, null)
- identifiers and the `$params` root
- numbers and quoted strings
- symbols (`.`, `-`, `{{`, `}}`)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List


@dataclass
class Token:
    """
    Token of a condition expression.

    Attributes:
        type: KEYWORD, IDENTIFIER, PARAMS, NUMBER, STRING, SYMBOL, EOF
        value: Raw text of the token (quotes stripped for STRING)
        position: Offset in the source string
    """
    type: str
    value: str
    position: int

    def __repr__(self):
        return f"Token({self.type}, '{self.value}', pos={self.position})"


class LexError(ValueError):
    def __init__(self, message: str, position: int):
        self.message = message
        self.position = position
        super().__init__(f"{message} at position {position}")


class ConditionLexer:
    """Regex-table lexer, first matching pattern wins."""

    # (regex_pattern, token_type, ignore_flag)
    TOKEN_SPECS = [
        (r'\s+', 'WHITESPACE', True),
        (r'\{\{', 'SYMBOL', False),
        (r'\}\}', 'SYMBOL', False),
        (r'\.', 'SYMBOL', False),
        (r'-', 'SYMBOL', False),
        (r'"[^"]*"', 'STRING', False),
        (r"'[^']*'", 'STRING', False),
        (r'\$params\b', 'PARAMS', False),
        (r'\d+', 'NUMBER', False),
        (r'[^\W\d][\w-]*', 'IDENTIFIER', False),
        (r'.', 'UNKNOWN', False),
    ]

    KEYWORDS = {'true', 'false', 'null'}

    def __init__(self):
        self._compiled_patterns = [
            (re.compile(pattern), token_type, ignore)
            for pattern, token_type, ignore in self.TOKEN_SPECS
        ]

    def tokenize(self, text: str) -> List[Token]:
        """
        Returns the token list terminated by EOF.

        Raises:
            LexError: on a character that starts no token
        """
        tokens: List[Token] = []
        position = 0

        while position < len(text):
            for pattern, token_type, ignore in self._compiled_patterns:
                match = pattern.match(text, position)
                if not match:
                    continue
                value = match.group(0)
                if not ignore:
                    if token_type == 'UNKNOWN':
                        raise LexError(f"Unexpected character '{value}'", position)
                    final_type = token_type
                    if token_type == 'IDENTIFIER' and value in self.KEYWORDS:
                        final_type = 'KEYWORD'
                    if token_type == 'STRING':
                        value = value[1:-1]
                    tokens.append(Token(type=final_type, value=value, position=position))
                position = match.end()
                break

        tokens.append(Token(type='EOF', value='', position=position))
        return tokens


__all__ = ["ConditionLexer", "Token", "LexError"]
