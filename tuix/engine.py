"""
Engine facade: the entry point hosts (editor extension, CLI, tests) call.

The engine owns the template cache and configuration. Every top-level call
gets its own TreeWalker and therefore its own ExpansionFrame.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .cache import CacheStats, TemplateCache
from .config import EngineConfig
from .document import extract_components, load_yaml_text, parse_nodes, read_document, replace_components
from .errors import TemplateError, TemplateErrorKind, not_found
from .expand import CancellationToken, CycleDetector, Location, TreeWalker
from .model import ComponentNode, dump_nodes
from .params import ParameterContext

logger = logging.getLogger(__name__)

Params = Union[ParameterContext, Mapping[str, Any], None]


def _root_location(base_path: Path | str) -> Tuple[Optional[str], Path]:
    """
    `base_path` is the root document's path; includes resolve against its
    directory. An existing directory is accepted as the include base directly.
    """
    base = Path(base_path).resolve()
    if base.is_dir():
        return None, base
    return str(base), base.parent


class TemplateEngine:
    """
    Expands TextUI documents.

    Thread-safe: concurrent calls share only the cache.
    """

    def __init__(self, config: Optional[EngineConfig] = None, *, cache: Optional[TemplateCache] = None):
        self.config = config if config is not None else EngineConfig()
        # an injected cache is shared with its owner and outlives this engine
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else TemplateCache(
            ttl=self.config.cache_ttl,
            max_entries=self.config.max_entries,
            check_fingerprint=self.config.check_fingerprint,
        )
        self._disposed = False

    # ----------------------------- expansion ---------------------------- #

    def expand(
        self,
        text: str,
        base_path: Path | str,
        params: Params = None,
        *,
        token: Optional[CancellationToken] = None,
    ) -> List[ComponentNode]:
        """
        Expands the document `text` located at `base_path`.

        Returns a directive-free sequence of component nodes.

        Raises:
            TemplateError: any failure aborts the whole call; no partial output
        """
        root_file, _ = _root_location(base_path)
        data = load_yaml_text(text, origin=root_file)
        return self._expand_data(data, base_path, params, token)

    def expand_file(
        self,
        path: Path | str,
        params: Params = None,
        *,
        token: Optional[CancellationToken] = None,
    ) -> List[ComponentNode]:
        return self.expand(self._read_root(path), path, params, token=token)

    def expand_document(
        self,
        text: str,
        base_path: Path | str,
        params: Params = None,
        *,
        token: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Expands `text` and returns the whole plain document, with its component
        list replaced by the expanded one (`page.components` for page documents).
        """
        root_file, _ = _root_location(base_path)
        data = load_yaml_text(text, origin=root_file)
        expanded = self._expand_data(data, base_path, params, token)
        return replace_components(data, dump_nodes(expanded))

    def _expand_data(
        self,
        data: Any,
        base_path: Path | str,
        params: Params,
        token: Optional[CancellationToken],
    ) -> List[ComponentNode]:
        self._ensure_alive()
        root_file, directory = _root_location(base_path)
        nodes = parse_nodes(extract_components(data, origin=root_file), origin=root_file)

        started = time.perf_counter()
        walker = TreeWalker(self.cache, config=self.config, token=token, root_file=root_file)
        result = walker.expand(nodes, ParameterContext.coerce(params), Location(root_file, directory))
        logger.debug(
            "expanded %s: %d top-level nodes in %.1f ms",
            root_file or directory, len(result), (time.perf_counter() - started) * 1000.0,
        )
        return result

    @staticmethod
    def _read_root(path: Path | str) -> str:
        p = Path(path)
        try:
            return read_document(p)
        except FileNotFoundError as e:
            raise not_found(str(p.resolve()), requested=str(path)) from e

    # ------------------------------ host hooks -------------------------- #

    def invalidate_template_cache(self, file_path: Path | str) -> bool:
        """Host calls this after a template file was saved."""
        return self.cache.invalidate(file_path)

    def detect_circular_references(self, text: str, base_path: Path | str) -> List[str]:
        """
        Dry run over the static include graph of `text`.

        Never raises for document problems: returns the first cycle chain,
        or [] when there is none or the document cannot be read.
        """
        self._ensure_alive()
        root_file, directory = _root_location(base_path)
        try:
            data = load_yaml_text(text, origin=root_file)
            nodes = parse_nodes(extract_components(data, origin=root_file), origin=root_file)
        except TemplateError as e:
            logger.debug("cycle check skipped for %s: %s", root_file or directory, e)
            return []
        detector = CycleDetector(self.cache.get_or_load, template_suffix=self.config.template_suffix)
        return detector.find_cycle(nodes, root_file, directory)

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def dispose(self) -> None:
        if self._owns_cache:
            self.cache.dispose()
        self._disposed = True

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise TemplateError(TemplateErrorKind.LOAD_ERROR, "Template engine has been disposed")

    def __enter__(self) -> "TemplateEngine":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.dispose()


def expand(text: str, base_path: Path | str, params: Params = None) -> List[Dict[str, Any]]:
    """One-shot expansion to plain data with a throwaway engine."""
    with TemplateEngine() as engine:
        return dump_nodes(engine.expand(text, base_path, params))


__all__ = ["TemplateEngine", "expand"]
