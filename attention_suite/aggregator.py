from __future__ import annotations

from dataclasses import dataclass, field

from .sequencer import target_count
from .trial_core import Outcome, round_half_up


@dataclass(slots=True)
class RunState:
    trials_completed: int = 0
    hits: int = 0
    misses: int = 0
    false_alarms: int = 0
    correct_rejections: int = 0
    targets_presented: int = 0
    reaction_times_ms: list[float] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RunReport:
    """Read-only projection of a run's state.

    ``correct_rejections`` follows the planned count (non-targets minus false
    alarms); ``observed_correct_rejections`` counts the trials actually
    classified that way.
    """

    total_trials: int
    total_targets: int
    total_non_targets: int
    trials_completed: int
    hits: int
    misses: int
    false_alarms: int
    correct_rejections: int
    observed_correct_rejections: int
    targets_presented: int
    accuracy: float
    avg_reaction_time_ms: float | None
    median_reaction_time_ms: float | None
    reaction_times_ms: tuple[float, ...]

    @property
    def complete(self) -> bool:
        return self.trials_completed >= self.total_trials

    @property
    def accuracy_pct(self) -> int:
        return round_half_up(self.accuracy * 100.0)


class ResultsAggregator:
    """Sole owner of RunState; appends one outcome per completed trial."""

    def __init__(self, *, total_trials: int, target_probability: float) -> None:
        if total_trials < 0:
            raise ValueError("total_trials must be >= 0")
        self._total_trials = int(total_trials)
        self._planned_default = target_count(total_trials, target_probability)
        self._total_targets = self._planned_default
        self._state = RunState()

    @property
    def trials_completed(self) -> int:
        return self._state.trials_completed

    def record(self, trial_index: int, outcome: Outcome, latency_ms: float | None = None) -> None:
        state = self._state
        if trial_index != state.trials_completed:
            raise ValueError(
                f"outcome for trial {trial_index} out of order; expected trial {state.trials_completed}"
            )
        if state.trials_completed >= self._total_trials:
            raise ValueError("all trials already recorded")
        if outcome is Outcome.HIT:
            if latency_ms is None or latency_ms < 0.0:
                raise ValueError("a hit must carry a latency >= 0")

        if outcome is Outcome.HIT:
            state.hits += 1
            state.reaction_times_ms.append(float(latency_ms))
        elif outcome is Outcome.MISS:
            state.misses += 1
        elif outcome is Outcome.FALSE_ALARM:
            state.false_alarms += 1
        else:
            state.correct_rejections += 1

        if outcome in (Outcome.HIT, Outcome.MISS):
            state.targets_presented += 1
        state.trials_completed += 1

    def snapshot(self) -> RunReport:
        state = self._state
        total_non_targets = self._total_trials - self._total_targets
        judged = state.hits + state.misses
        accuracy = 0.0 if judged == 0 else state.hits / judged

        rts = list(state.reaction_times_ms)
        mean_rt: float | None
        median_rt: float | None
        if not rts:
            mean_rt = None
            median_rt = None
        else:
            mean_rt = sum(rts) / len(rts)
            ordered = sorted(rts)
            mid = len(ordered) // 2
            if len(ordered) % 2 == 1:
                median_rt = ordered[mid]
            else:
                median_rt = (ordered[mid - 1] + ordered[mid]) / 2.0

        return RunReport(
            total_trials=self._total_trials,
            total_targets=self._total_targets,
            total_non_targets=total_non_targets,
            trials_completed=state.trials_completed,
            hits=state.hits,
            misses=state.misses,
            false_alarms=state.false_alarms,
            correct_rejections=total_non_targets - state.false_alarms,
            observed_correct_rejections=state.correct_rejections,
            targets_presented=state.targets_presented,
            accuracy=float(accuracy),
            avg_reaction_time_ms=mean_rt,
            median_reaction_time_ms=median_rt,
            reaction_times_ms=tuple(rts),
        )

    def plan(self, total_targets: int) -> None:
        """Replace the planned target count; only before the first record."""

        if self._state.trials_completed:
            raise ValueError("cannot re-plan a run that has recorded trials")
        if not (0 <= total_targets <= self._total_trials):
            raise ValueError("total_targets must be within [0, total_trials]")
        self._total_targets = int(total_targets)

    def reset(self) -> None:
        self._state = RunState()
        self._total_targets = self._planned_default
