"""
Recursive-descent parser for `$if` condition expressions.

Grammar:
condition  → "{{" operand "}}" | operand
operand    → literal | reference
literal    → "true" | "false" | "null" | STRING | number
number     → ["-"] NUMBER ["." NUMBER]
reference  → ["$params" "."] IDENTIFIER ("." segment)*
segment    → IDENTIFIER | NUMBER | KEYWORD
"""

from __future__ import annotations

from functools import lru_cache
from typing import List

from .lexer import ConditionLexer, Token
from .model import Condition, LiteralCondition, ReferenceCondition


class ParseError(Exception):
    """Syntax error in a condition expression."""

    def __init__(self, message: str, position: int):
        self.message = message
        self.position = position
        super().__init__(f"Parse error at position {position}: {message}")


_KEYWORD_VALUES = {"true": True, "false": False, "null": None}


class ConditionParser:
    """Turns a condition string into a LiteralCondition or ReferenceCondition."""

    def __init__(self):
        self.lexer = ConditionLexer()
        self._tokens: List[Token] = []
        self._position = 0

    def parse(self, condition_str: str) -> Condition:
        """
        Raises:
            ParseError: on a syntax error
            LexError: on an unexpected character
        """
        self._tokens = self.lexer.tokenize(condition_str)
        self._position = 0

        if self._is_at_end():
            raise ParseError("Empty condition", 0)

        wrapped = self._match_symbol("{{")
        result = self._parse_operand()
        if wrapped and not self._match_symbol("}}"):
            raise ParseError("Expected '}}' after placeholder", self._current_position())

        if not self._is_at_end():
            current = self._current_token()
            raise ParseError(f"Unexpected token '{current.value}'", current.position)

        return result

    def _parse_operand(self) -> Condition:
        current = self._current_token()

        if current.type == 'KEYWORD':
            self._advance()
            return LiteralCondition(value=_KEYWORD_VALUES[current.value])

        if current.type == 'STRING':
            self._advance()
            return LiteralCondition(value=current.value)

        if current.type == 'NUMBER' or (current.type == 'SYMBOL' and current.value == '-'):
            return self._parse_number()

        if current.type in ('PARAMS', 'IDENTIFIER'):
            return self._parse_reference()

        if current.type == 'EOF':
            raise ParseError("Unexpected end of expression", current.position)
        raise ParseError(f"Unexpected token '{current.value}'", current.position)

    def _parse_number(self) -> LiteralCondition:
        negative = self._match_symbol("-")
        int_part = self._consume('NUMBER', "Expected number")
        text = int_part.value
        if self._match_symbol("."):
            frac = self._consume('NUMBER', "Expected digits after '.'")
            text = f"{text}.{frac.value}"
            value: float | int = float(text)
        else:
            value = int(text)
        return LiteralCondition(value=-value if negative else value)

    def _parse_reference(self) -> ReferenceCondition:
        if self._current_token().type == 'PARAMS':
            self._advance()
            if not self._match_symbol("."):
                raise ParseError("Expected '.' after '$params'", self._current_position())

        first = self._consume('IDENTIFIER', "Expected parameter name")
        path = [first.value]

        while self._match_symbol("."):
            current = self._current_token()
            if current.type in ('IDENTIFIER', 'NUMBER', 'KEYWORD'):
                path.append(self._advance().value)
            else:
                raise ParseError("Expected path segment after '.'", current.position)

        return ReferenceCondition(path=tuple(path))

    # Token helpers

    def _current_token(self) -> Token:
        if self._position >= len(self._tokens):
            return Token(type='EOF', value='', position=len(self._tokens))
        return self._tokens[self._position]

    def _current_position(self) -> int:
        return self._current_token().position

    def _is_at_end(self) -> bool:
        return self._current_token().type == 'EOF'

    def _advance(self) -> Token:
        token = self._current_token()
        if not self._is_at_end():
            self._position += 1
        return token

    def _match_symbol(self, symbol: str) -> bool:
        current = self._current_token()
        if current.type == 'SYMBOL' and current.value == symbol:
            self._advance()
            return True
        return False

    def _consume(self, token_type: str, error_message: str) -> Token:
        current = self._current_token()
        if current.type == token_type:
            return self._advance()
        raise ParseError(error_message, current.position)


@lru_cache(maxsize=1024)
def parse_condition(condition_str: str) -> Condition:
    """Cached parse; condition nodes are immutable so sharing is safe."""
    return ConditionParser().parse(condition_str)


__all__ = ["ConditionParser", "ParseError", "parse_condition"]
