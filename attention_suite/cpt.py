from __future__ import annotations

import string
from collections.abc import Callable
from dataclasses import dataclass

from .aggregator import RunReport
from .clock import Clock
from .runner import TaskRunner
from .trial_core import TrialTaskConfig

CPT_TITLE = "Continuous Performance Task (CPT)"


@dataclass(frozen=True, slots=True)
class CptConfig:
    total_stimuli: int = 40
    target_probability: float = 0.25
    stimulus_duration_ms: int = 1500
    inter_trial_gap_ms: int = 500
    target_letter: str = "X"
    letters: str = string.ascii_uppercase

    def to_task_config(self) -> TrialTaskConfig:
        return TrialTaskConfig(
            total_stimuli=int(self.total_stimuli),
            target_probability=float(self.target_probability),
            stimulus_duration_ms=int(self.stimulus_duration_ms),
            inter_trial_gap_ms=int(self.inter_trial_gap_ms),
            target_symbol=self.target_letter,
            alphabet=tuple(ch for ch in self.letters if ch != self.target_letter),
        )


def build_cpt_task(
    *,
    clock: Clock,
    seed: int,
    config: CptConfig | None = None,
    on_task_start: Callable[[], None] | None = None,
    on_task_end: Callable[[RunReport], None] | None = None,
    result_sink: Callable[[RunReport], None] | None = None,
    seed_factory: Callable[[], int] | None = None,
) -> TaskRunner:
    cfg = config or CptConfig()
    duration_s = cfg.stimulus_duration_ms / 1000.0

    instructions = [
        CPT_TITLE,
        "",
        f"Press SPACE (or click) only when you see the letter {cfg.target_letter}.",
        "Do not respond to any other letter.",
        f"React as quickly as possible: each letter is shown for {duration_s:g} seconds.",
        "",
        f"{cfg.total_stimuli} letters in total.",
    ]

    return TaskRunner(
        title=CPT_TITLE,
        instructions=instructions,
        config=cfg.to_task_config(),
        clock=clock,
        seed=seed,
        on_task_start=on_task_start,
        on_task_end=on_task_end,
        result_sink=result_sink,
        input_hint=f"Space = {cfg.target_letter} seen",
        seed_factory=seed_factory,
    )
