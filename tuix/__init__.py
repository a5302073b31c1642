"""
TextUI template expansion engine.

Expands `$include`, `$if` and `$foreach` directives and `{{ ... }}`
placeholders in declarative UI documents into a plain component tree.
"""

from .cache import CacheStats, TemplateCache
from .config import EngineConfig
from .engine import TemplateEngine, expand
from .errors import TemplateError, TemplateErrorKind, TuixUserError
from .expand import CancellationToken
from .model import ComponentNode, NodeKind, dump_nodes
from .params import ParameterContext

__all__ = [
    "TemplateEngine",
    "EngineConfig",
    "TemplateCache",
    "CacheStats",
    "CancellationToken",
    "ParameterContext",
    "ComponentNode",
    "NodeKind",
    "TemplateError",
    "TemplateErrorKind",
    "TuixUserError",
    "dump_nodes",
    "expand",
]
