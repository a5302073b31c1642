from .evaluator import ConditionEvaluator, evaluate, truthy
from .lexer import ConditionLexer, LexError, Token
from .model import Condition, ConditionType, LiteralCondition, ReferenceCondition
from .parser import ConditionParser, ParseError, parse_condition

__all__ = [
    "Condition",
    "ConditionType",
    "LiteralCondition",
    "ReferenceCondition",
    "ConditionLexer",
    "ConditionParser",
    "ConditionEvaluator",
    "LexError",
    "ParseError",
    "Token",
    "evaluate",
    "parse_condition",
    "truthy",
]
