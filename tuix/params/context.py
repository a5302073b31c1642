"""
Parameter context: the named-value environment that placeholders and
conditions are evaluated against.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Dict, Iterator, Optional, Tuple

# Prefix authors may put in front of a reference: `$params.user.role`
PARAMS_PREFIX = "$params."


class _Missing:
    """Marker for a reference that did not resolve."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def split_reference(reference: str) -> Tuple[str, ...]:
    """
    Splits `$params.a.b` / `a.b` into ('a', 'b').

    Does not validate segments; callers that need strict syntax
    go through the condition lexer.
    """
    ref = reference.strip()
    if ref.startswith(PARAMS_PREFIX):
        ref = ref[len(PARAMS_PREFIX):]
    return tuple(part.strip() for part in ref.split("."))


class ParameterContext(Mapping):
    """
    Immutable, insertion-ordered mapping of parameter names to values.

    Never mutated after construction: derived frames are built with
    `child()`, and `$include` builds a brand new context from its own
    `params` block.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, Any] = dict(values or {})

    @classmethod
    def empty(cls) -> "ParameterContext":
        return cls()

    @classmethod
    def coerce(cls, values: "ParameterContext | Mapping[str, Any] | None") -> "ParameterContext":
        if isinstance(values, ParameterContext):
            return values
        return cls(values)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParameterContext({self._values!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterContext):
            return self._values == other._values
        if isinstance(other, Mapping):
            return self._values == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def child(self, **overrides: Any) -> "ParameterContext":
        """New context with the same values plus `overrides`."""
        merged = dict(self._values)
        merged.update(overrides)
        return ParameterContext(merged)

    def resolve(self, reference: str) -> Any:
        """
        Resolves a dotted reference against the context.

        Sequences accept integer segments (`items.0.label`).
        Returns MISSING when any segment does not resolve.
        """
        return self.resolve_path(split_reference(reference))

    def resolve_path(self, path: Tuple[str, ...]) -> Any:
        if not path or not path[0]:
            return MISSING
        current: Any = self._values
        for segment in path:
            if isinstance(current, Mapping):
                if segment not in current:
                    return MISSING
                current = current[segment]
            elif isinstance(current, Sequence) and not isinstance(current, str) and segment.isdigit():
                index = int(segment)
                if index >= len(current):
                    return MISSING
                current = current[index]
            else:
                return MISSING
        return current

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)


__all__ = ["ParameterContext", "MISSING", "PARAMS_PREFIX", "split_reference"]
