from __future__ import annotations

from dataclasses import dataclass

import pytest

from attention_suite.timers import TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def test_timers_fire_in_due_then_scheduling_order() -> None:
    clock = FakeClock()
    q = TimerQueue(clock=clock)
    fired: list[str] = []

    q.schedule(0.5, lambda: fired.append("b"))
    q.schedule(0.2, lambda: fired.append("a"))
    q.schedule(0.5, lambda: fired.append("c"))

    assert q.next_due_s() == pytest.approx(0.2)
    assert q.run_due() == 0

    clock.advance(0.2)
    assert q.run_due() == 1
    assert fired == ["a"]

    clock.advance(0.3)
    assert q.run_due() == 2
    assert fired == ["a", "b", "c"]
    assert q.pending_count() == 0
    assert q.next_due_s() is None


def test_cancelled_timer_never_fires() -> None:
    clock = FakeClock()
    q = TimerQueue(clock=clock)
    fired: list[str] = []

    h = q.schedule(0.1, lambda: fired.append("x"))
    h.cancel()
    clock.advance(1.0)

    assert q.run_due() == 0
    assert fired == []
    assert not h.pending


def test_cancel_all_reports_pending_count() -> None:
    clock = FakeClock()
    q = TimerQueue(clock=clock)
    handles = [q.schedule(0.1 * (i + 1), lambda: None) for i in range(3)]

    assert q.cancel_all() == 3
    assert q.pending_count() == 0
    assert all(h.cancelled for h in handles)
    clock.advance(5.0)
    assert q.run_due() == 0


def test_zero_delay_followup_fires_in_same_pass() -> None:
    clock = FakeClock()
    q = TimerQueue(clock=clock)
    fired: list[str] = []

    def first() -> None:
        fired.append("first")
        q.schedule(0.0, lambda: fired.append("second"))

    q.schedule(0.25, first)
    clock.advance(0.25)

    assert q.run_due() == 2
    assert fired == ["first", "second"]


def test_negative_delay_rejected() -> None:
    q = TimerQueue(clock=FakeClock())

    with pytest.raises(ValueError):
        q.schedule(-0.01, lambda: None)
