from .template_cache import (
    DEFAULT_MAX_ENTRIES,
    DEFAULT_TTL,
    CacheStats,
    FileFingerprint,
    TemplateCache,
    TemplateCacheEntry,
    load_template_file,
)

__all__ = [
    "TemplateCache",
    "TemplateCacheEntry",
    "CacheStats",
    "FileFingerprint",
    "load_template_file",
    "DEFAULT_TTL",
    "DEFAULT_MAX_ENTRIES",
]
