from .context import MISSING, PARAMS_PREFIX, ParameterContext, split_reference
from .substitutor import ParameterSubstitutor, stringify, substitute

__all__ = [
    "ParameterContext",
    "ParameterSubstitutor",
    "MISSING",
    "PARAMS_PREFIX",
    "split_reference",
    "stringify",
    "substitute",
]
