from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .aggregator import ResultsAggregator, RunReport
from .classifier import classify
from .clock import Clock
from .response_window import ResponseWindow
from .sequencer import Sequencer, StimulusSequencer
from .timers import TimerHandle, TimerQueue
from .trial_core import (
    Outcome,
    Phase,
    Response,
    SeededRng,
    TrialEvent,
    TrialTaskConfig,
    WindowState,
    round_half_up,
    validate_task_config,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskSnapshot:
    """View model for the UI (pure data)."""

    title: str
    phase: Phase
    prompt: str
    input_hint: str
    stimulus: str | None
    window_state: WindowState
    trials_presented: int
    total_trials: int
    time_remaining_s: float | None
    report: RunReport
    incomplete: bool = False


class TaskRunner:
    """Trial loop: sequencer -> window -> classifier -> aggregator.

    - Single-threaded and cooperative: the owner calls update() every frame and
      respond() for each input event. All waiting happens on the TimerQueue.
    - Deterministic: the stimulus stream is re-seeded from ``seed`` on every start.
      With a ``seed_factory``, every start after the first draws a fresh seed
      from it instead.
    - Every timer callback carries the run generation it was scheduled under;
      reset() bumps the generation and cancels the queue, so nothing from an
      aborted run can reach the aggregator.
    """

    def __init__(
        self,
        *,
        title: str,
        instructions: list[str],
        config: TrialTaskConfig,
        clock: Clock,
        seed: int,
        on_task_start: Callable[[], None] | None = None,
        on_task_end: Callable[[RunReport], None] | None = None,
        result_sink: Callable[[RunReport], None] | None = None,
        input_hint: str = "Space = respond",
        seed_factory: Callable[[], int] | None = None,
        sequencer_factory: Callable[..., Sequencer] = StimulusSequencer,
    ) -> None:
        validate_task_config(config)

        self._title = title
        self._instructions = list(instructions)
        self._config = config
        self._clock = clock
        self._seed = int(seed)
        self._seed_factory = seed_factory
        self._sequencer_factory = sequencer_factory
        self._input_hint = input_hint

        self._on_task_start = on_task_start
        self._on_task_end = on_task_end
        self._result_sink = result_sink

        self._gap_s = float(config.inter_trial_gap_ms) / 1000.0
        self._timers = TimerQueue(clock=clock)
        self._window = ResponseWindow(duration_ms=config.stimulus_duration_ms)
        self._aggregator = ResultsAggregator(
            total_trials=config.total_stimuli,
            target_probability=config.target_probability,
        )

        self._phase = Phase.INSTRUCTIONS
        self._generation = 0
        self._sequencer: Sequencer | None = None
        self._runs_started = 0
        self._next_index = 0
        self._deadline_timer: TimerHandle | None = None
        self._gap_timer: TimerHandle | None = None
        self._events: list[TrialEvent] = []
        self._final_report: RunReport | None = None
        self._started_at_s: float | None = None
        self._finished_at_s: float | None = None
        self._incomplete = False

    @property
    def title(self) -> str:
        return self._title

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def config(self) -> TrialTaskConfig:
        return self._config

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def window_state(self) -> WindowState:
        return self._window.state

    @property
    def started_at_s(self) -> float | None:
        return self._started_at_s

    @property
    def finished_at_s(self) -> float | None:
        return self._finished_at_s

    @property
    def duration_s(self) -> float | None:
        """Clock time from start to the final report, None until finished."""

        if self._started_at_s is None or self._finished_at_s is None:
            return None
        return self._finished_at_s - self._started_at_s

    @property
    def final_report(self) -> RunReport | None:
        return self._final_report

    def instructions(self) -> list[str]:
        return list(self._instructions)

    def events(self) -> list[TrialEvent]:
        return list(self._events)

    def pending_timer_count(self) -> int:
        return self._timers.pending_count()

    def can_exit(self) -> bool:
        return self._phase is not Phase.RUNNING

    def start(self) -> None:
        if self._phase is not Phase.INSTRUCTIONS:
            return
        self._generation += 1
        self._phase = Phase.RUNNING
        self._incomplete = False
        if self._runs_started and self._seed_factory is not None:
            self._seed = int(self._seed_factory())
        self._runs_started += 1
        self._sequencer = self._sequencer_factory(config=self._config, rng=SeededRng(self._seed))
        self._aggregator.plan(self._sequencer.planned_targets)
        self._next_index = 0
        self._started_at_s = self._clock.now()
        self._finished_at_s = None
        logger.info(
            "%s started: %d trials, seed=%d", self._title, self._config.total_stimuli, self._seed
        )
        if self._on_task_start is not None:
            self._on_task_start()
        self._open_next_trial()

    def respond(self) -> bool:
        """Forward the user's respond signal. Returns True if it resolved a trial."""

        if self._phase is not Phase.RUNNING or not self._window.is_open():
            return False

        now = self._clock.now()
        deadline = self._window.deadline_s
        assert deadline is not None
        if now >= deadline:
            # The deadline is due but not yet processed; it resolves first.
            self._expire_active_window()
            return False

        response = self._window.respond(now_s=now)
        if response is None:
            return False
        self._complete_trial(response)
        return True

    def update(self) -> None:
        if self._phase is not Phase.RUNNING:
            return
        self._timers.run_due()

    def run(self, *, on_tick: Callable[[], None]) -> RunReport | None:
        """Start and pump the loop until the run ends.

        ``on_tick`` is called between updates; it is where input is polled and
        time passes. Returns None when the run is reset before it completes.
        A runner still showing the results of an earlier run is reset first,
        so every call plays a fresh run.
        """

        if self._phase is Phase.RESULTS:
            self.reset()
        self.start()
        generation = self._generation
        while self._phase is Phase.RUNNING and self._generation == generation:
            self.update()
            if self._phase is not Phase.RUNNING:
                break
            on_tick()
        if self._generation != generation:
            return None
        return self._final_report

    def reset(self) -> None:
        cancelled = self._timers.cancel_all()
        self._generation += 1
        was_running = self._phase is Phase.RUNNING

        self._deadline_timer = None
        self._gap_timer = None
        self._window.clear()
        self._aggregator.reset()
        self._events.clear()
        self._sequencer = None
        self._next_index = 0
        self._final_report = None
        self._started_at_s = None
        self._finished_at_s = None
        self._phase = Phase.INSTRUCTIONS
        self._incomplete = was_running
        if was_running:
            logger.info("%s reset mid-run; %d timer(s) cancelled", self._title, cancelled)

    def snapshot(self) -> TaskSnapshot:
        trial = self._window.trial
        stimulus = trial.stimulus if (trial is not None and self._window.is_open()) else None
        if self._phase is Phase.RUNNING:
            presented = self._next_index + (1 if trial is not None else 0)
        else:
            presented = self._aggregator.trials_completed
        return TaskSnapshot(
            title=self._title,
            phase=self._phase,
            prompt=self.current_prompt(),
            input_hint=self._input_hint,
            stimulus=stimulus,
            window_state=self._window.state,
            trials_presented=presented,
            total_trials=self._config.total_stimuli,
            time_remaining_s=self._window.time_remaining_s(now_s=self._clock.now()),
            report=self._aggregator.snapshot(),
            incomplete=self._incomplete,
        )

    def current_prompt(self) -> str:
        if self._phase is Phase.INSTRUCTIONS:
            lines = list(self._instructions)
            if self._incomplete:
                lines = ["Task incomplete: the run was reset before the final trial.", ""] + lines
            return "\n".join(lines + ["", "Press Enter to begin."])
        if self._phase is Phase.RESULTS:
            assert self._final_report is not None
            return "\n".join(format_report_lines(self._final_report) + ["", "Press Enter to return."])
        if self._window.is_open():
            return ""
        return "+"

    def _open_next_trial(self) -> None:
        self._gap_timer = None
        assert self._sequencer is not None
        trial = self._sequencer.next(self._next_index)
        if trial is None:
            self._finish()
            return

        presented = self._window.open(trial, now_s=self._clock.now())
        generation = self._generation
        self._deadline_timer = self._timers.schedule(
            self._window.duration_s,
            lambda: self._on_deadline(generation, presented.index),
            label=f"deadline:{presented.index}",
        )
        logger.debug(
            "trial %d presented: %s%s",
            presented.index,
            presented.stimulus,
            " (target)" if presented.is_target else "",
        )

    def _on_deadline(self, generation: int, trial_index: int) -> None:
        trial = self._window.trial
        if (
            generation != self._generation
            or self._phase is not Phase.RUNNING
            or trial is None
            or trial.index != trial_index
        ):
            logger.warning("discarding stale deadline for trial %d", trial_index)
            return
        self._expire_active_window()

    def _expire_active_window(self) -> None:
        deadline = self._window.deadline_s
        assert deadline is not None
        response = self._window.expire(now_s=deadline)
        if response is None:
            return
        self._complete_trial(response)

    def _on_gap_elapsed(self, generation: int) -> None:
        if generation != self._generation or self._phase is not Phase.RUNNING:
            logger.warning("discarding stale inter-trial gap timer")
            return
        self._open_next_trial()

    def _complete_trial(self, response: Response) -> None:
        trial = self._window.trial
        resolved_at_s = self._window.resolved_at_s
        assert trial is not None and trial.presented_at_s is not None and resolved_at_s is not None

        if self._deadline_timer is not None:
            self._deadline_timer.cancel()
            self._deadline_timer = None

        outcome = classify(trial, response)
        latency_ms = response.latency_ms if outcome is Outcome.HIT else None
        self._aggregator.record(trial.index, outcome, latency_ms)
        self._events.append(
            TrialEvent(
                index=trial.index,
                stimulus=trial.stimulus,
                is_target=trial.is_target,
                outcome=outcome,
                presented_at_s=trial.presented_at_s,
                resolved_at_s=resolved_at_s,
                latency_ms=response.latency_ms,
            )
        )
        logger.debug("trial %d resolved: %s", trial.index, outcome.value)

        self._window.close()
        self._next_index = trial.index + 1
        generation = self._generation
        self._gap_timer = self._timers.schedule(
            self._gap_s,
            lambda: self._on_gap_elapsed(generation),
            label=f"gap:{trial.index}",
        )

    def _finish(self) -> None:
        if self._final_report is not None:
            return
        self._timers.cancel_all()
        self._deadline_timer = None
        self._gap_timer = None
        self._window.clear()

        self._phase = Phase.RESULTS
        self._finished_at_s = self._clock.now()
        report = self._aggregator.snapshot()
        self._final_report = report
        logger.info(
            "%s finished: hits=%d misses=%d false_alarms=%d accuracy=%d%%",
            self._title,
            report.hits,
            report.misses,
            report.false_alarms,
            report.accuracy_pct,
        )
        if self._result_sink is not None:
            self._result_sink(report)
        if self._on_task_end is not None:
            self._on_task_end(report)


def format_reaction_time(value_ms: float | None) -> str:
    return "n/a" if value_ms is None else f"{value_ms:.0f} ms"


def format_report_lines(report: RunReport) -> list[str]:
    rts = ", ".join(f"{rt:.0f}" for rt in report.reaction_times_ms) or "n/a"
    target_acc = 0 if report.total_targets == 0 else round_half_up(report.hits / report.total_targets * 100.0)
    return [
        "Results",
        "",
        f"Total trials:        {report.total_trials}",
        f"Hits:                {report.hits}",
        f"Misses:              {report.misses}",
        f"False alarms:        {report.false_alarms}",
        f"Correct rejections:  {report.correct_rejections}",
        f"Target accuracy:     {target_acc}%",
        f"Overall performance: {report.accuracy_pct}%",
        f"Mean RT:             {format_reaction_time(report.avg_reaction_time_ms)}",
        f"Hit RTs (ms):        {rts}",
    ]
