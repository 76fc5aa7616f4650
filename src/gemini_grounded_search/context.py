"""
gemini_grounded_search.context
Cancellable deadline contexts shared by a request and the work it spawns.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional, Tuple

__all__ = ['Context', 'CancelFunc', 'background']

CancelFunc = Callable[[], None]


class Context:
    """A deadline plus a cancellation flag, optionally chained to a parent.

    Deadlines are absolute ``time.monotonic()`` values. A child never outlives
    its parent: its effective deadline is the earlier of the two, and it is
    done as soon as the parent is.
    """

    def __init__(self, parent: Optional['Context'] = None, deadline: Optional[float] = None):
        self._parent = parent
        self._deadline = deadline
        self._cancelled = threading.Event()

    def deadline(self) -> Optional[float]:
        parent_deadline = self._parent.deadline() if self._parent else None
        if self._deadline is None:
            return parent_deadline
        if parent_deadline is None:
            return self._deadline
        return min(self._deadline, parent_deadline)

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (never negative), or None."""
        d = self.deadline()
        if d is None:
            return None
        return max(0.0, d - time.monotonic())

    def cancel(self) -> None:
        self._cancelled.set()

    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent.cancelled() if self._parent else False

    def done(self) -> bool:
        if self.cancelled():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def with_cancel(self) -> Tuple['Context', CancelFunc]:
        child = Context(parent=self)
        return child, child.cancel

    def with_deadline(self, deadline: float) -> Tuple['Context', CancelFunc]:
        child = Context(parent=self, deadline=deadline)
        return child, child.cancel

    def with_timeout(self, seconds: float) -> Tuple['Context', CancelFunc]:
        return self.with_deadline(time.monotonic() + seconds)


def background() -> Context:
    """Return a fresh root context with no deadline."""
    return Context()
