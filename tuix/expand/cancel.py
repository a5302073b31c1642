from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from ..errors import TemplateError, TemplateErrorKind


class CancellationToken:
    """
    Cooperative cancellation for a running expansion.

    The walker polls it between node visits. An optional deadline
    (monotonic clock) cancels the token implicitly once it passes.
    """

    def __init__(self, *, timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._event = threading.Event()
        self._clock = clock
        self.deadline = clock() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and self._clock() >= self.deadline

    def raise_if_cancelled(self, template_path: Optional[str] = None) -> None:
        if not self.cancelled:
            return
        reason = "cancelled" if self._event.is_set() else "deadline exceeded"
        raise TemplateError(
            TemplateErrorKind.CANCELLED,
            f"Expansion {reason}",
            template_path=template_path,
        )


__all__ = ["CancellationToken"]
