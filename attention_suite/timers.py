from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .clock import Clock

logger = logging.getLogger(__name__)


@dataclass(order=True, slots=True)
class TimerHandle:
    due_s: float
    seq: int
    label: str = field(compare=False, default="")
    callback: Callable[[], None] | None = field(compare=False, default=None, repr=False)
    cancelled: bool = field(compare=False, default=False)
    fired: bool = field(compare=False, default=False)

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        self.cancelled = True
        self.callback = None


class TimerQueue:
    """Cooperative one-shot timers driven by an injected Clock.

    Nothing fires on its own: the owner calls run_due() from its update loop,
    and due timers fire in (due time, scheduling order).
    """

    def __init__(self, *, clock: Clock) -> None:
        self._clock = clock
        self._heap: list[TimerHandle] = []
        self._seq = itertools.count()

    def schedule(self, delay_s: float, callback: Callable[[], None], *, label: str = "") -> TimerHandle:
        if delay_s < 0.0:
            raise ValueError("delay_s must be >= 0")
        handle = TimerHandle(
            due_s=self._clock.now() + float(delay_s),
            seq=next(self._seq),
            label=label,
            callback=callback,
        )
        heapq.heappush(self._heap, handle)
        return handle

    def pending_count(self) -> int:
        return sum(1 for h in self._heap if h.pending)

    def next_due_s(self) -> float | None:
        self._drop_cancelled_head()
        return None if not self._heap else self._heap[0].due_s

    def run_due(self) -> int:
        """Fire every timer whose deadline has passed. Returns how many fired."""

        fired = 0
        while True:
            self._drop_cancelled_head()
            if not self._heap or self._heap[0].due_s > self._clock.now():
                return fired
            handle = heapq.heappop(self._heap)
            callback = handle.callback
            handle.fired = True
            handle.callback = None
            assert callback is not None
            callback()
            fired += 1

    def cancel_all(self) -> int:
        cancelled = 0
        for handle in self._heap:
            if handle.pending:
                handle.cancel()
                cancelled += 1
        self._heap.clear()
        if cancelled:
            logger.debug("cancelled %d pending timer(s)", cancelled)
        return cancelled

    def _drop_cancelled_head(self) -> None:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)
