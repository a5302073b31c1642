"""
Static include-cycle detection.

Unlike the walker this never evaluates anything: every `$include` is
followed regardless of surrounding `$if`/`$foreach`, and templates that
are missing or fail to parse are simply skipped. Used by editors to flag
cycles before a document is ever expanded.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Callable, Iterator, List, Optional, Sequence, Set

from ..errors import TuixUserError
from ..model import ComponentNode, ContainerNode, ForeachDirective, FormNode, IfDirective, IncludeDirective

logger = logging.getLogger(__name__)

TreeLoader = Callable[[Path], Sequence[ComponentNode]]


def iter_includes(nodes: Sequence[ComponentNode]) -> Iterator[IncludeDirective]:
    """Every include directive in `nodes`, in source order, at any nesting level."""
    for node in nodes:
        if isinstance(node, IncludeDirective):
            yield node
        elif isinstance(node, (IfDirective, ForeachDirective)):
            yield from iter_includes(node.template)
        elif isinstance(node, ContainerNode):
            yield from iter_includes(node.components)
        elif isinstance(node, FormNode):
            yield from iter_includes(node.fields)
            yield from iter_includes(node.actions)


def _static_target(template: str, directory: Path, suffix: str) -> Optional[Path]:
    name = template.strip()
    # Targets built from placeholders depend on runtime params
    if not name or "{{" in name:
        return None
    if PurePosixPath(name).is_absolute() or PureWindowsPath(name).is_absolute():
        return None
    candidate = (directory / name).resolve()
    if candidate.is_file():
        return candidate
    if not name.lower().endswith((".yml", ".yaml")):
        suffixed = (directory / (name + suffix)).resolve()
        if suffixed.is_file():
            return suffixed
    return None


class CycleDetector:
    """Depth-first search over the static include graph."""

    def __init__(self, loader: TreeLoader, *, template_suffix: str = ".template.yml"):
        self._loader = loader
        self._suffix = template_suffix

    def find_cycle(self, nodes: Sequence[ComponentNode], root_file: Optional[str], directory: Path) -> List[str]:
        """Returns the first cycle found as `[a, b, ..., a]`, or [] when there is none."""
        stack: List[str] = [root_file] if root_file else []
        done: Set[str] = set()
        return self._search(nodes, directory, stack, done)

    def _search(self, nodes: Sequence[ComponentNode], directory: Path, stack: List[str], done: Set[str]) -> List[str]:
        for directive in iter_includes(nodes):
            target = _static_target(directive.template, directory, self._suffix)
            if target is None:
                continue
            key = str(target)
            if key in stack:
                chain = stack[stack.index(key):] + [key]
                logger.warning("Circular include dependency: %s", " -> ".join(chain))
                return chain
            if key in done:
                continue
            try:
                children = self._loader(target)
            except (OSError, TuixUserError) as e:
                logger.debug("cycle check skips %s: %s", key, e)
                done.add(key)
                continue

            stack.append(key)
            try:
                chain = self._search(children, target.parent, stack, done)
            finally:
                stack.pop()
            if chain:
                return chain
            done.add(key)
        return []


__all__ = ["CycleDetector", "iter_includes"]
