from __future__ import annotations

import heapq
import itertools
import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class TimerHandle:
    __slots__ = ("due_ms", "callback", "args", "cancelled")

    def __init__(self, due_ms: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class TimerQueue:
    """Single-threaded deferred callbacks.

    All timers fire on the thread that drives the queue, either through
    `run_due()` against the wall clock or through `advance()` on a manual
    clock. Callbacks scheduled while the queue is running are picked up in
    the same pass when they are already due.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._manual = clock is None
        self._clock = clock
        self._now_ms = 0.0
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    @classmethod
    def monotonic(cls) -> TimerQueue:
        return cls(clock=lambda: time.monotonic() * 1000.0)

    def now_ms(self) -> float:
        if self._clock is None:
            return self._now_ms
        return self._clock()

    def call_later(self, delay_ms: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(self.now_ms() + max(0.0, delay_ms), callback, args)
        heapq.heappush(self._heap, (handle.due_ms, next(self._seq), handle))
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)

    def next_delay_ms(self) -> float | None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        if not self._heap:
            return None
        return max(0.0, self._heap[0][0] - self.now_ms())

    def run_due(self) -> int:
        return self._run_until(self.now_ms())

    def advance(self, delta_ms: float) -> int:
        if not self._manual:
            raise RuntimeError("advance() requires a manual clock")
        target = self._now_ms + max(0.0, delta_ms)
        fired = 0
        while self._heap and self._heap[0][0] <= target:
            due_ms, _, handle = heapq.heappop(self._heap)
            self._now_ms = max(self._now_ms, due_ms)
            if handle.cancelled:
                continue
            self._fire(handle)
            fired += 1
        self._now_ms = target
        return fired

    def _run_until(self, now_ms: float) -> int:
        fired = 0
        while self._heap and self._heap[0][0] <= now_ms:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            self._fire(handle)
            fired += 1
        return fired

    def _fire(self, handle: TimerHandle) -> None:
        handle.cancelled = True
        try:
            handle.callback(*handle.args)
        except Exception as exc:
            logger.exception("timer callback failed", exc_info=exc)


class Debouncer:
    """Coalesce bursts of activity into one call after a quiet period."""

    def __init__(self, timers: TimerQueue, delay_ms: int, callback: Callable[[], Any]) -> None:
        self._timers = timers
        self._delay_ms = delay_ms
        self._callback = callback
        self._timer: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.cancelled

    def note_activity(self) -> None:
        if self._delay_ms <= 0:
            self.flush_now()
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._timers.call_later(self._delay_ms, self.flush_now)

    def flush_now(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.cancel()
        self._callback()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
