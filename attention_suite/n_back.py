from __future__ import annotations

import string
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial

from .aggregator import RunReport
from .clock import Clock
from .runner import TaskRunner
from .trial_core import SeededRng, Trial, TrialTaskConfig, non_target_symbols

N_BACK_TITLE = "N-Back Task"
N_BACK_LEVELS = (1, 2, 3)

# Label for the target class; a match is a relation between letters, not a letter.
MATCH = "MATCH"


@dataclass(frozen=True, slots=True)
class NBackConfig:
    total_stimuli: int = 25
    n: int = 2
    match_probability: float = 0.30
    stimulus_duration_ms: int = 2500
    inter_trial_gap_ms: int = 500
    letters: str = string.ascii_uppercase

    def to_task_config(self) -> TrialTaskConfig:
        return TrialTaskConfig(
            total_stimuli=int(self.total_stimuli),
            target_probability=float(self.match_probability),
            stimulus_duration_ms=int(self.stimulus_duration_ms),
            inter_trial_gap_ms=int(self.inter_trial_gap_ms),
            target_symbol=MATCH,
            alphabet=tuple(dict.fromkeys(self.letters)),
        )


def validate_n_back_config(config: NBackConfig) -> None:
    if config.n not in N_BACK_LEVELS:
        raise ValueError(f"n must be one of {N_BACK_LEVELS}")
    if len(set(config.letters)) < 2:
        raise ValueError("letters must hold at least two distinct symbols")
    if MATCH in config.letters:
        raise ValueError(f"letters must not contain {MATCH!r}")


class NBackSequencer:
    """Letter stream where trial i is a target iff it repeats letter i - n.

    The whole sequence is drawn up front from the run's random source. From
    position n on, each letter copies the one n back with the configured
    probability and is otherwise drawn from the remaining letters, so a
    non-match never repeats by accident.
    """

    def __init__(self, *, config: TrialTaskConfig, rng: SeededRng, n: int) -> None:
        if n < 1:
            raise ValueError("n must be >= 1")
        letters = non_target_symbols(config)
        p = float(config.target_probability)

        sequence: list[str] = []
        for i in range(int(config.total_stimuli)):
            if i < n:
                sequence.append(rng.choice(letters))
                continue
            back = sequence[i - n]
            if rng.random() < p:
                sequence.append(back)
                continue
            others = tuple(sym for sym in letters if sym != back)
            if not others:
                raise ValueError("letters must hold at least two distinct symbols")
            sequence.append(rng.choice(others))

        self._n = int(n)
        self._sequence = tuple(sequence)

    @property
    def n(self) -> int:
        return self._n

    @property
    def sequence(self) -> tuple[str, ...]:
        return self._sequence

    @property
    def total_trials(self) -> int:
        return len(self._sequence)

    @property
    def planned_targets(self) -> int:
        return sum(1 for i in range(len(self._sequence)) if self.is_match(i))

    def is_match(self, trial_index: int) -> bool:
        return trial_index >= self._n and self._sequence[trial_index] == self._sequence[trial_index - self._n]

    def next(self, trial_index: int) -> Trial | None:
        if trial_index < 0:
            raise ValueError("trial_index must be >= 0")
        if trial_index >= len(self._sequence):
            return None
        return Trial(
            index=int(trial_index),
            stimulus=self._sequence[trial_index],
            is_target=self.is_match(trial_index),
        )


def n_back_title(n: int) -> str:
    return f"{N_BACK_TITLE} ({n}-Back)"


def build_n_back_task(
    *,
    clock: Clock,
    seed: int,
    config: NBackConfig | None = None,
    on_task_start: Callable[[], None] | None = None,
    on_task_end: Callable[[RunReport], None] | None = None,
    result_sink: Callable[[RunReport], None] | None = None,
    seed_factory: Callable[[], int] | None = None,
) -> TaskRunner:
    cfg = config or NBackConfig()
    validate_n_back_config(cfg)
    duration_s = cfg.stimulus_duration_ms / 1000.0
    back = "the previous letter" if cfg.n == 1 else f"the letter {cfg.n} steps back"

    instructions = [
        n_back_title(cfg.n),
        "",
        "Letters appear one at a time.",
        f"Press SPACE (or click) when the current letter is the same as {back}.",
        "Do nothing when it differs.",
        f"Each letter stays up for {duration_s:g} seconds.",
        "",
        f"{cfg.total_stimuli} letters in total.",
    ]

    return TaskRunner(
        title=n_back_title(cfg.n),
        instructions=instructions,
        config=cfg.to_task_config(),
        clock=clock,
        seed=seed,
        on_task_start=on_task_start,
        on_task_end=on_task_end,
        result_sink=result_sink,
        input_hint=f"Space = matches {cfg.n} back",
        seed_factory=seed_factory,
        sequencer_factory=partial(NBackSequencer, n=cfg.n),
    )
