"""
"Recently updated" emphasis for fields the last merge overwrote.

The emphasis set is replaced (not accumulated) on every merge and expires a
fixed window after the most recent merge. Expiry is evaluated against a
monotonic clock when the set is read, so no timer task is needed.
"""

import time
from typing import Callable, FrozenSet, Iterable, Optional

from .config import get_highlight_window


class HighlightCoordinator:
    def __init__(self, window_sec: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.window_sec = window_sec if window_sec is not None else get_highlight_window()
        self._clock = clock
        self._fields: FrozenSet[str] = frozenset()
        self._merged_at: Optional[float] = None

    def on_merge(self, changed_fields: Iterable[str]):
        """Schedule the fields changed by a merge as recently updated."""
        self._fields = frozenset(changed_fields)
        self._merged_at = self._clock() if self._fields else None

    def current(self) -> FrozenSet[str]:
        if self._merged_at is None:
            return frozenset()

        if self._clock() - self._merged_at >= self.window_sec:
            self._fields = frozenset()
            self._merged_at = None
            return frozenset()

        return self._fields

    def remaining(self) -> float:
        """Seconds until the current emphasis clears (0 when nothing is emphasised)."""
        if not self.current():
            return 0.0
        return max(0.0, self.window_sec - (self._clock() - self._merged_at))
