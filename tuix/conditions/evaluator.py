"""
Evaluator for `$if` condition expressions.

Two tiers: literals evaluate to themselves, references are resolved against
the parameter context. Both are then coerced with the same truthiness rules.
"""

from __future__ import annotations

from collections.abc import Mapping, Sized
from typing import Any, cast

from .lexer import LexError
from .model import Condition, ConditionType, LiteralCondition, ReferenceCondition
from .parser import ParseError, parse_condition
from ..errors import TemplateError, TemplateErrorKind
from ..params.context import MISSING, ParameterContext


def truthy(value: Any) -> bool:
    """
    Truthiness by value type, never by string form.

    Falsy: False, None, missing, 0, "", empty sequence/mapping.
    The strings "0" and "false" are non-empty and therefore truthy.
    """
    if value is MISSING or value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, Sized):
        return len(value) > 0
    return True


class ConditionEvaluator:
    """
    Evaluates a parsed condition against a parameter context.
    """

    def __init__(self, params: ParameterContext):
        self.params = params

    def evaluate(self, condition: Condition) -> bool:
        condition_type = condition.get_type()

        if condition_type == ConditionType.LITERAL:
            return truthy(cast(LiteralCondition, condition).value)
        elif condition_type == ConditionType.REFERENCE:
            return self._evaluate_reference(cast(ReferenceCondition, condition))
        else:
            raise TemplateError(
                TemplateErrorKind.CONDITION_EVALUATION,
                f"Unknown condition type: {condition_type}",
            )

    def _evaluate_reference(self, condition: ReferenceCondition) -> bool:
        # Unresolvable references are falsy: missing optional flags mean "off"
        return truthy(self.params.resolve_path(condition.path))


def evaluate(expression: str, params: ParameterContext | Mapping[str, Any]) -> bool:
    """
    Parses and evaluates a condition string.

    Raises:
        TemplateError(ConditionEvaluationError): the expression is neither
            a literal nor a well-formed parameter reference
    """
    if not isinstance(expression, str):
        raise TemplateError(
            TemplateErrorKind.CONDITION_EVALUATION,
            f"Condition must be a string, got {type(expression).__name__}",
        )
    try:
        ast = parse_condition(expression.strip())
    except (ParseError, LexError) as e:
        raise TemplateError(
            TemplateErrorKind.CONDITION_EVALUATION,
            f"Malformed condition '{expression}': {e}",
        ) from e

    return ConditionEvaluator(ParameterContext.coerce(params)).evaluate(ast)


__all__ = ["ConditionEvaluator", "evaluate", "truthy"]
