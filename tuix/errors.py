"""
Exceptions for the template expansion engine.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from TuixUserError.

Programming errors and bugs should NOT inherit from TuixUserError:
they will propagate with full tracebacks.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional


class TuixUserError(Exception):
    """
    Base class for all user-facing errors in tuix.

    These errors indicate problems that the document author can fix:
    broken includes, malformed directives, bad conditions, etc.
    """
    pass


class TemplateErrorKind(Enum):
    """Discriminator for TemplateError."""
    TEMPLATE_NOT_FOUND = "TemplateNotFound"
    CIRCULAR_REFERENCE = "CircularReference"
    INVALID_DIRECTIVE = "InvalidDirective"
    CONDITION_EVALUATION = "ConditionEvaluationError"
    PARAMETER_MISSING = "ParameterMissing"
    DEPTH_EXCEEDED = "DepthExceeded"
    CANCELLED = "Cancelled"
    DOCUMENT_SYNTAX = "DocumentSyntaxError"
    LOAD_ERROR = "LoadError"


class TemplateError(TuixUserError):
    """
    Failure of a top-level expansion call.

    Attributes:
        kind: What went wrong
        template_path: File being expanded (or the offending target) when known
        chain: Include chain for CircularReference
        field: Missing/mistyped directive field for InvalidDirective
    """

    def __init__(
        self,
        kind: TemplateErrorKind,
        message: str,
        *,
        template_path: Optional[str] = None,
        chain: Optional[List[str]] = None,
        field: Optional[str] = None,
    ):
        self.kind = kind
        self.message = message
        self.template_path = template_path
        self.chain = list(chain or [])
        self.field = field
        super().__init__(message)

    def __str__(self) -> str:
        parts = [f"{self.kind.value}: {self.message}"]
        if self.template_path:
            parts.append(f"in {self.template_path}")
        return " ".join(parts)


def not_found(target: str, *, requested: str, origin: Optional[str] = None) -> TemplateError:
    return TemplateError(
        TemplateErrorKind.TEMPLATE_NOT_FOUND,
        f"Template '{requested}' not found (resolved to {target})",
        template_path=origin,
    )


def circular(chain: List[str]) -> TemplateError:
    return TemplateError(
        TemplateErrorKind.CIRCULAR_REFERENCE,
        f"Circular include dependency: {' -> '.join(chain)}",
        template_path=chain[-1] if chain else None,
        chain=chain,
    )


def invalid_directive(directive: str, field: str, problem: str, *, origin: Optional[str] = None) -> TemplateError:
    return TemplateError(
        TemplateErrorKind.INVALID_DIRECTIVE,
        f"'{directive}' {problem}: '{field}'",
        template_path=origin,
        field=field,
    )


__all__ = [
    "TuixUserError",
    "TemplateErrorKind",
    "TemplateError",
    "not_found",
    "circular",
    "invalid_directive",
]
