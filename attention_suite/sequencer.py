from __future__ import annotations

from typing import Protocol

from .trial_core import SeededRng, Trial, TrialTaskConfig, non_target_symbols, round_half_up


def target_count(total_trials: int, target_probability: float) -> int:
    """Planned number of target trials for a run."""

    return round_half_up(float(total_trials) * float(target_probability))


class Sequencer(Protocol):
    @property
    def total_trials(self) -> int: ...

    @property
    def planned_targets(self) -> int: ...

    def next(self, trial_index: int) -> Trial | None: ...


class StimulusSequencer:
    """Deterministic stimulus stream for one run.

    Each trial is an independent draw: target with the configured probability,
    otherwise a uniform pick from the alphabet with the target symbol removed.
    The only state carried between calls is the random source.
    """

    def __init__(self, *, config: TrialTaskConfig, rng: SeededRng) -> None:
        self._total = int(config.total_stimuli)
        self._p = float(config.target_probability)
        self._target = str(config.target_symbol)
        self._distractors = non_target_symbols(config)
        self._rng = rng

    @property
    def total_trials(self) -> int:
        return self._total

    @property
    def planned_targets(self) -> int:
        return target_count(self._total, self._p)

    def next(self, trial_index: int) -> Trial | None:
        if trial_index < 0:
            raise ValueError("trial_index must be >= 0")
        if trial_index >= self._total:
            return None

        is_target = self._rng.random() < self._p
        if is_target:
            stimulus = self._target
        else:
            stimulus = str(self._rng.choice(self._distractors))
        return Trial(index=int(trial_index), stimulus=stimulus, is_target=is_target)
