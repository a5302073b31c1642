"""
Pydantic models for the JSON documents the CLI prints.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .cache import CacheStats


class CacheStatsModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    entries: int
    hits: int
    misses: int
    hit_rate: float = Field(alias="hitRate")
    invalidations: int
    expirations: int
    evictions: int

    @classmethod
    def from_stats(cls, stats: CacheStats) -> "CacheStatsModel":
        return cls(**stats.to_dict())


class ExpandReport(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    file: str
    params: Dict[str, Any] = Field(default_factory=dict)
    components: Optional[List[Dict[str, Any]]] = None
    document: Optional[Any] = None
    cache: Optional[CacheStatsModel] = None


class CheckReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    file: str
    ok: bool
    cycle: List[str] = Field(default_factory=list)


__all__ = ["CacheStatsModel", "ExpandReport", "CheckReport"]
