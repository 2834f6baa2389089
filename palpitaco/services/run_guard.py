"""Supersede-previous-request helper for callers issuing overlapping searches."""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock
from typing import TypeVar

T = TypeVar("T")


class RunTracker:
    """Hands out increasing run ids per channel.

    A caller starts a run with :meth:`begin` and, once its results are in,
    asks :meth:`is_current` whether a newer run has started meanwhile; if
    so the results are stale and should be discarded.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._latest: dict[str, int] = {}

    def begin(self, channel: str = "default") -> int:
        with self._lock:
            run_id = self._latest.get(channel, 0) + 1
            self._latest[channel] = run_id
            return run_id

    def is_current(self, channel: str, run_id: int) -> bool:
        with self._lock:
            return self._latest.get(channel) == run_id

    def latest(self, channel: str = "default") -> int:
        with self._lock:
            return self._latest.get(channel, 0)

    def run(self, channel: str, fn: Callable[[], T]) -> tuple[T, int, bool]:
        """Run ``fn`` as the newest run of ``channel``; returns ``(result, run_id, still_current)``."""

        run_id = self.begin(channel)
        result = fn()
        return result, run_id, self.is_current(channel, run_id)
