"""
Parameter substitution for `{{ <reference> }}` placeholders.

The placeholder grammar is deliberately small: one delimiter pair and
a dotted reference inside it (optionally prefixed with `$params.`).
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import date, time
from typing import Any

from .context import MISSING, ParameterContext
from ..errors import TemplateError, TemplateErrorKind

PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")
_WHOLE_RE = re.compile(r"^\s*\{\{\s*([^{}]*?)\s*\}\}\s*$")


def stringify(value: Any) -> str:
    """String form of a parameter value as it appears inside text."""
    if value is None or value is MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=_json_default)
    return str(value)


def _json_default(value: Any) -> str:
    return value.isoformat() if isinstance(value, (date, time)) else str(value)


def whole_placeholder(value: str) -> str | None:
    """Returns the reference when `value` consists of exactly one placeholder."""
    m = _WHOLE_RE.match(value)
    return m.group(1) if m else None


class ParameterSubstitutor:
    """
    Rewrites placeholder spans in string values.

    Missing references render as an empty string unless `strict` is set,
    in which case they raise TemplateError(ParameterMissing).
    """

    def __init__(self, *, strict: bool = False):
        self.strict = strict

    def lookup(self, reference: str, params: ParameterContext) -> Any:
        value = params.resolve(reference)
        if value is MISSING and self.strict:
            raise TemplateError(
                TemplateErrorKind.PARAMETER_MISSING,
                f"Parameter '{reference}' is not defined",
            )
        return value

    def substitute(self, value: str, params: ParameterContext) -> str:
        """Replaces every placeholder in `value` in a single pass."""
        if "{{" not in value:
            return value
        return PLACEHOLDER_RE.sub(lambda m: stringify(self.lookup(m.group(1), params)), value)

    def substitute_value(self, value: Any, params: ParameterContext) -> Any:
        """
        Like `substitute_tree`, but a string made of exactly one placeholder
        yields the referenced value itself (booleans, numbers, sequences keep
        their type). Used when binding `$include` params and `$foreach` items.
        """
        if isinstance(value, str):
            reference = whole_placeholder(value)
            if reference is not None:
                resolved = self.lookup(reference, params)
                return None if resolved is MISSING else resolved
            return self.substitute(value, params)
        if isinstance(value, Mapping):
            return {k: self.substitute_value(v, params) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.substitute_value(v, params) for v in value]
        return value

    def substitute_tree(self, data: Any, params: ParameterContext) -> Any:
        """Substitutes strings anywhere inside nested mappings/sequences."""
        if isinstance(data, str):
            return self.substitute(data, params)
        if isinstance(data, Mapping):
            return {k: self.substitute_tree(v, params) for k, v in data.items()}
        if isinstance(data, (list, tuple)):
            return [self.substitute_tree(v, params) for v in data]
        return data


def substitute(value: str, params: ParameterContext | Mapping[str, Any]) -> str:
    """Convenience wrapper with default (non-strict) behaviour."""
    return ParameterSubstitutor().substitute(value, ParameterContext.coerce(params))


__all__ = [
    "ParameterSubstitutor",
    "PLACEHOLDER_RE",
    "stringify",
    "substitute",
    "whole_placeholder",
]
