"""
Data model for `$if` condition expressions.

A condition is either a literal (true/false/null, number, quoted string)
or a reference to a parameter. There are no operators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union

from ..params.context import PARAMS_PREFIX


class ConditionType(Enum):
    LITERAL = "literal"
    REFERENCE = "reference"


@dataclass(frozen=True)
class Condition(ABC):
    """Base class for all condition nodes."""

    @abstractmethod
    def get_type(self) -> ConditionType:
        pass

    def __str__(self) -> str:
        return self._to_string()

    @abstractmethod
    def _to_string(self) -> str:
        pass


@dataclass(frozen=True)
class LiteralCondition(Condition):
    """
    Literal value: `true`, `false`, `null`, `3`, `"admin"`.

    Its truthiness follows the same coercion as resolved parameters.
    """
    value: Any

    def get_type(self) -> ConditionType:
        return ConditionType.LITERAL

    def _to_string(self) -> str:
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        if self.value is None:
            return "null"
        if isinstance(self.value, str):
            return f'"{self.value}"'
        return str(self.value)


@dataclass(frozen=True)
class ReferenceCondition(Condition):
    """Parameter reference: `$params.user.isAdmin` or `user.isAdmin`."""
    path: Tuple[str, ...]

    def get_type(self) -> ConditionType:
        return ConditionType.REFERENCE

    def _to_string(self) -> str:
        return PARAMS_PREFIX + ".".join(self.path)


AnyCondition = Union[LiteralCondition, ReferenceCondition]

__all__ = [
    "Condition",
    "ConditionType",
    "LiteralCondition",
    "ReferenceCondition",
    "AnyCondition",
]
