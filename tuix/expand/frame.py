from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional

from ..errors import TemplateError, TemplateErrorKind, circular


class ExpansionFrame:
    """
    Stack of absolute template paths currently being expanded.

    One frame per top-level expansion call; concurrent calls never share it.
    """

    def __init__(self, root: Optional[str] = None, *, max_depth: Optional[int] = None):
        self._stack: List[str] = []
        self.max_depth = max_depth
        self._root_count = 0
        if root is not None:
            self._stack.append(root)
            self._root_count = 1

    @property
    def paths(self) -> List[str]:
        return list(self._stack)

    @property
    def depth(self) -> int:
        """Number of active includes (the root document does not count)."""
        return len(self._stack) - self._root_count

    def __contains__(self, path: object) -> bool:
        return path in self._stack

    def enter(self, path: str) -> None:
        """
        Pushes `path`.

        Raises:
            TemplateError(CircularReference): `path` is already on the frame
            TemplateError(DepthExceeded): nesting would exceed `max_depth`
        """
        if path in self._stack:
            chain = self._stack[self._stack.index(path):] + [path]
            raise circular(chain)
        if self.max_depth is not None and self.depth >= self.max_depth:
            raise TemplateError(
                TemplateErrorKind.DEPTH_EXCEEDED,
                f"Include nesting exceeds {self.max_depth} levels",
                template_path=path,
                chain=self._stack + [path],
            )
        self._stack.append(path)

    def leave(self, path: str) -> None:
        if not self._stack or self._stack[-1] != path:
            raise RuntimeError(f"Unbalanced frame leave: {path!r} is not on top of {self._stack!r}")
        self._stack.pop()

    @contextmanager
    def scope(self, path: str) -> Iterator[None]:
        self.enter(path)
        try:
            yield
        finally:
            self.leave(path)


__all__ = ["ExpansionFrame"]
