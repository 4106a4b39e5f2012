"""
Thread-safe run-once gate.

`RunOnce` wraps a zero-argument callable and guarantees it completes at most
once, no matter how many threads call the gate concurrently:

- The first caller runs the callable while holding the gate's lock.
- Concurrent callers block on the lock until the first call finishes, then
  return without running it again.
- If the callable raises, the gate stays open: the exception propagates to
  the caller that ran it and the next caller tries again.

The fast path after completion is a single attribute read.
"""

from __future__ import annotations

import threading
from typing import Callable


class RunOnce:
    """
    Run a callable exactly once across all threads.

    Parameters
    ----------
    fn : Callable[[], object]
        The one-time action (e.g. a native library initialization).
    """

    __slots__ = ("_fn", "_lock", "_done")

    def __init__(self, fn: Callable[[], object]) -> None:
        self._fn = fn
        self._lock = threading.Lock()
        self._done = False

    @property
    def done(self) -> bool:
        """True once the action has completed successfully."""
        return self._done

    def __call__(self) -> None:
        if self._done:
            return
        with self._lock:
            if self._done:
                return
            self._fn()
            self._done = True
