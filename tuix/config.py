from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from .cache import DEFAULT_MAX_ENTRIES, DEFAULT_TTL

DEFAULT_TEMPLATE_SUFFIX = ".template.yml"
DEFAULT_MAX_INCLUDE_DEPTH = 32


def _norm_bool(x: Any) -> bool:
    if isinstance(x, bool):
        return x
    if x is None:
        return False
    s = str(x).strip().lower()
    return s not in {"0", "false", "no", "off", ""}


def _norm_ttl(x: Any) -> Optional[float]:
    s = str(x).strip().lower()
    if s in {"", "none", "off", "inf"}:
        return None
    return float(s)


@dataclass(frozen=True)
class EngineConfig:
    """
    Engine settings.

    cache_ttl: seconds a cached template stays valid (None = until invalidated)
    max_entries: cache capacity before least recently used eviction
    check_fingerprint: reload a cached template whose mtime/size changed
    max_include_depth: deepest allowed `$include` nesting
    strict_params: missing placeholder references raise instead of rendering ""
    template_suffix: suffix tried when an include target has no YAML suffix
    """
    cache_ttl: Optional[float] = DEFAULT_TTL
    max_entries: int = DEFAULT_MAX_ENTRIES
    check_fingerprint: bool = True
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    strict_params: bool = False
    template_suffix: str = DEFAULT_TEMPLATE_SUFFIX

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "EngineConfig":
        """
        Builds a config from explicit values and TUIX_* variables.

        Environment has priority over explicit values, then defaults apply.
        """
        env = os.environ if environ is None else environ
        values = dict(overrides)
        try:
            if env.get("TUIX_CACHE_TTL") is not None:
                values["cache_ttl"] = _norm_ttl(env["TUIX_CACHE_TTL"])
            if env.get("TUIX_CACHE_MAX_ENTRIES") is not None:
                values["max_entries"] = int(env["TUIX_CACHE_MAX_ENTRIES"])
        except ValueError as e:
            raise ValueError(f"Invalid TUIX_* cache setting: {e}") from e
        if env.get("TUIX_STRICT") is not None:
            values["strict_params"] = _norm_bool(env["TUIX_STRICT"])
        return cls(**values)

    def with_overrides(self, **changes: Any) -> "EngineConfig":
        return replace(self, **changes)


__all__ = ["EngineConfig", "DEFAULT_TEMPLATE_SUFFIX", "DEFAULT_MAX_INCLUDE_DEPTH"]
