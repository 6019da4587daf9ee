from __future__ import annotations

from dataclasses import replace

from .trial_core import NO_RESPONSE, Response, Trial, WindowState


class ResponseWindow:
    """Timing contract for the single active trial.

    IDLE -> OPEN -> (RESPONDED | TIMED_OUT) -> IDLE. A window resolves at most
    once; whichever of respond()/expire() is processed first wins and the other
    returns None. Presentation times are clock seconds, latencies are ms.
    """

    def __init__(self, *, duration_ms: int) -> None:
        if duration_ms <= 0:
            raise ValueError("duration_ms must be > 0")
        self._duration_s = float(duration_ms) / 1000.0

        self._state = WindowState.IDLE
        self._trial: Trial | None = None
        self._deadline_s: float | None = None
        self._response: Response | None = None
        self._resolved_at_s: float | None = None

    @property
    def state(self) -> WindowState:
        return self._state

    @property
    def trial(self) -> Trial | None:
        return self._trial

    @property
    def deadline_s(self) -> float | None:
        return self._deadline_s

    @property
    def duration_s(self) -> float:
        return self._duration_s

    @property
    def response(self) -> Response | None:
        return self._response

    @property
    def resolved_at_s(self) -> float | None:
        return self._resolved_at_s

    def is_open(self) -> bool:
        return self._state is WindowState.OPEN

    def open(self, trial: Trial, *, now_s: float) -> Trial:
        if self._state is not WindowState.IDLE:
            raise RuntimeError(f"cannot open a window while one is {self._state.value}")
        presented = replace(trial, presented_at_s=float(now_s))
        self._trial = presented
        self._deadline_s = float(now_s) + self._duration_s
        self._response = None
        self._resolved_at_s = None
        self._state = WindowState.OPEN
        return presented

    def respond(self, *, now_s: float) -> Response | None:
        if self._state is not WindowState.OPEN:
            return None
        assert self._trial is not None and self._trial.presented_at_s is not None

        latency_ms = max(0.0, (float(now_s) - self._trial.presented_at_s) * 1000.0)
        return self._resolve(
            WindowState.RESPONDED,
            Response(occurred=True, latency_ms=latency_ms),
            now_s=now_s,
        )

    def expire(self, *, now_s: float) -> Response | None:
        if self._state is not WindowState.OPEN:
            return None
        return self._resolve(WindowState.TIMED_OUT, NO_RESPONSE, now_s=now_s)

    def time_remaining_s(self, *, now_s: float) -> float | None:
        if self._state is not WindowState.OPEN:
            return None
        assert self._deadline_s is not None
        return max(0.0, self._deadline_s - float(now_s))

    def close(self) -> None:
        """Return a resolved window to IDLE so the next trial may open."""

        if self._state is WindowState.OPEN:
            raise RuntimeError("cannot close an unresolved window")
        self.clear()

    def clear(self) -> None:
        self._state = WindowState.IDLE
        self._trial = None
        self._deadline_s = None
        self._response = None
        self._resolved_at_s = None

    def _resolve(self, state: WindowState, response: Response, *, now_s: float) -> Response:
        # Single transition out of OPEN; callers have already checked the state.
        self._state = state
        self._response = response
        self._resolved_at_s = float(now_s)
        return response
