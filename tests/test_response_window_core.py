from __future__ import annotations

import pytest

from attention_suite.response_window import ResponseWindow
from attention_suite.trial_core import Trial, WindowState


def _trial(index: int = 0, *, target: bool = True) -> Trial:
    return Trial(index=index, stimulus="X" if target else "B", is_target=target)


def test_open_stamps_presentation_and_deadline() -> None:
    w = ResponseWindow(duration_ms=1500)
    assert w.state is WindowState.IDLE

    presented = w.open(_trial(), now_s=10.0)

    assert w.state is WindowState.OPEN
    assert presented.presented_at_s == pytest.approx(10.0)
    assert w.deadline_s == pytest.approx(11.5)
    assert w.time_remaining_s(now_s=10.5) == pytest.approx(1.0)


def test_first_response_wins_and_second_is_dropped() -> None:
    w = ResponseWindow(duration_ms=1500)
    w.open(_trial(), now_s=2.0)

    first = w.respond(now_s=2.35)
    second = w.respond(now_s=2.6)

    assert first is not None
    assert first.occurred is True
    assert first.latency_ms == pytest.approx(350.0)
    assert second is None
    assert w.state is WindowState.RESPONDED
    assert w.response == first


def test_expire_after_response_is_a_no_op() -> None:
    w = ResponseWindow(duration_ms=1000)
    w.open(_trial(), now_s=0.0)
    w.respond(now_s=0.2)

    assert w.expire(now_s=1.0) is None
    assert w.state is WindowState.RESPONDED


def test_response_after_expiry_is_dropped() -> None:
    w = ResponseWindow(duration_ms=1000)
    w.open(_trial(target=False), now_s=0.0)

    timed_out = w.expire(now_s=1.0)

    assert timed_out is not None
    assert timed_out.occurred is False
    assert timed_out.latency_ms is None
    assert w.respond(now_s=1.0) is None
    assert w.state is WindowState.TIMED_OUT


def test_response_at_presentation_instant_has_zero_latency() -> None:
    w = ResponseWindow(duration_ms=1500)
    w.open(_trial(target=False), now_s=4.0)

    r = w.respond(now_s=4.0)

    assert r is not None
    assert r.latency_ms == 0.0


def test_respond_while_idle_is_ignored() -> None:
    w = ResponseWindow(duration_ms=1500)

    assert w.respond(now_s=0.0) is None
    assert w.expire(now_s=0.0) is None
    assert w.state is WindowState.IDLE


def test_second_window_cannot_open_until_closed() -> None:
    w = ResponseWindow(duration_ms=1500)
    w.open(_trial(0), now_s=0.0)

    with pytest.raises(RuntimeError):
        w.open(_trial(1), now_s=0.1)
    with pytest.raises(RuntimeError):
        w.close()

    w.respond(now_s=0.2)
    with pytest.raises(RuntimeError):
        w.open(_trial(1), now_s=0.3)

    w.close()
    assert w.state is WindowState.IDLE
    w.open(_trial(1), now_s=0.7)
    assert w.state is WindowState.OPEN


def test_duration_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ResponseWindow(duration_ms=0)
