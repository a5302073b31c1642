from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..document import parse_document, read_document
from ..model import ComponentNode

logger = logging.getLogger(__name__)

RawTree = Tuple[ComponentNode, ...]

DEFAULT_TTL = 30 * 60.0
DEFAULT_MAX_ENTRIES = 1000


@dataclass(frozen=True)
class FileFingerprint:
    mtime_ns: int
    size: int

    @classmethod
    def of(cls, path: Path) -> "FileFingerprint":
        st = path.stat()
        return cls(mtime_ns=int(getattr(st, "st_mtime_ns", int(st.st_mtime * 1e9))), size=int(st.st_size))


@dataclass(frozen=True)
class TemplateCacheEntry:
    """
    Raw (unsubstituted) tree of one template file.

    Never patched: invalidation or reload replaces the whole entry.
    """
    resolved_path: str
    raw_tree: RawTree
    loaded_at: float
    fingerprint: FileFingerprint


@dataclass(frozen=True)
class CacheStats:
    entries: int
    hits: int
    misses: int
    invalidations: int
    expirations: int
    evictions: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict:
        return {
            "entries": self.entries,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
            "invalidations": self.invalidations,
            "expirations": self.expirations,
            "evictions": self.evictions,
        }


Loader = Callable[[Path], Tuple[RawTree, FileFingerprint]]


def load_template_file(path: Path) -> Tuple[RawTree, FileFingerprint]:
    """Default loader: fingerprint first, then read and parse."""
    fingerprint = FileFingerprint.of(path)
    text = read_document(path)
    return parse_document(text, origin=str(path)), fingerprint


class TemplateCache:
    """
    In-memory cache of parsed template files keyed by absolute path.

    Expiry:
      • TTL since load (None disables it)
      • explicit `invalidate(path)` (host calls it on save)
      • optional fingerprint check (mtime/size) on every hit
    Least recently used entries are evicted beyond `max_entries`.

    Thread-safe: the map is guarded by a lock, file loads run outside it,
    and a miss race ends with the last writer's entry.
    """

    def __init__(
        self,
        *,
        ttl: Optional[float] = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        check_fingerprint: bool = True,
        clock: Callable[[], float] = time.monotonic,
        loader: Loader = load_template_file,
    ):
        self.ttl = ttl
        self.max_entries = max(1, int(max_entries))
        self.check_fingerprint = check_fingerprint
        self._clock = clock
        self._loader = loader
        self._entries: "OrderedDict[str, TemplateCacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._disposed = False
        self._hits = 0
        self._misses = 0
        self._invalidations = 0
        self._expirations = 0
        self._evictions = 0

    @staticmethod
    def key(path: Path | str) -> str:
        return str(Path(path).resolve())

    def get_or_load(self, resolved_path: Path | str) -> RawTree:
        """
        Returns the raw tree for `resolved_path`, loading it on a miss.

        Raises:
            FileNotFoundError: the file does not exist
            TemplateError: the file cannot be read or parsed
        """
        if self._disposed:
            raise RuntimeError("TemplateCache has been disposed")

        key = self.key(resolved_path)
        entry = self._lookup(key)
        if entry is not None:
            return entry.raw_tree

        raw_tree, fingerprint = self._loader(Path(key))
        entry = TemplateCacheEntry(
            resolved_path=key,
            raw_tree=raw_tree,
            loaded_at=self._clock(),
            fingerprint=fingerprint,
        )
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("template cache evict: %s", evicted)
        logger.debug("template cache load: %s (%d nodes)", key, len(raw_tree))
        return raw_tree

    def _lookup(self, key: str) -> Optional[TemplateCacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            self._count_miss(key)
            return None

        if self.ttl is not None and self._clock() - entry.loaded_at > self.ttl:
            with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
                    self._expirations += 1
            logger.debug("template cache expired: %s", key)
            self._count_miss(key)
            return None

        if self.check_fingerprint and not self._fingerprint_matches(entry):
            with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
                    self._invalidations += 1
            logger.debug("template cache stale (file changed): %s", key)
            self._count_miss(key)
            return None

        with self._lock:
            self._hits += 1
            if key in self._entries:
                self._entries.move_to_end(key)
        logger.debug("template cache hit: %s", key)
        return entry

    def _count_miss(self, key: str) -> None:
        with self._lock:
            self._misses += 1
        logger.debug("template cache miss: %s", key)

    @staticmethod
    def _fingerprint_matches(entry: TemplateCacheEntry) -> bool:
        try:
            return FileFingerprint.of(Path(entry.resolved_path)) == entry.fingerprint
        except OSError:
            return False

    def peek(self, path: Path | str) -> Optional[TemplateCacheEntry]:
        """Entry for `path` without touching statistics or expiry."""
        with self._lock:
            return self._entries.get(self.key(path))

    def invalidate(self, path: Path | str) -> bool:
        """Drops the entry for `path`. Returns True when something was removed."""
        key = self.key(path)
        with self._lock:
            removed = self._entries.pop(key, None) is not None
            if removed:
                self._invalidations += 1
        if removed:
            logger.debug("template cache invalidate: %s", key)
        return removed

    def clear(self) -> None:
        """Drops every entry and resets statistics."""
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = 0
            self._invalidations = self._expirations = self._evictions = 0
        logger.debug("template cache cleared")

    def dispose(self) -> None:
        self.clear()
        self._disposed = True

    def cached_paths(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                invalidations=self._invalidations,
                expirations=self._expirations,
                evictions=self._evictions,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self.peek(path) is not None


__all__ = [
    "TemplateCache",
    "TemplateCacheEntry",
    "CacheStats",
    "FileFingerprint",
    "load_template_file",
    "DEFAULT_TTL",
    "DEFAULT_MAX_ENTRIES",
]
