from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .aggregator import RunReport
from .clock import Clock
from .runner import TaskRunner
from .trial_core import TrialTaskConfig

GO_NO_GO_TITLE = "Go/No-Go Task"
GO = "GO"
NO_GO = "NO-GO"


@dataclass(frozen=True, slots=True)
class GoNoGoConfig:
    # Go trials are the targets: a miss is an omission error and a false
    # alarm is a commission error.
    total_stimuli: int = 60
    go_probability: float = 0.70
    stimulus_duration_ms: int = 2000
    inter_trial_gap_ms: int = 500

    def to_task_config(self) -> TrialTaskConfig:
        return TrialTaskConfig(
            total_stimuli=int(self.total_stimuli),
            target_probability=float(self.go_probability),
            stimulus_duration_ms=int(self.stimulus_duration_ms),
            inter_trial_gap_ms=int(self.inter_trial_gap_ms),
            target_symbol=GO,
            alphabet=(NO_GO,),
        )


def build_go_no_go_task(
    *,
    clock: Clock,
    seed: int,
    config: GoNoGoConfig | None = None,
    on_task_start: Callable[[], None] | None = None,
    on_task_end: Callable[[RunReport], None] | None = None,
    result_sink: Callable[[RunReport], None] | None = None,
    seed_factory: Callable[[], int] | None = None,
) -> TaskRunner:
    cfg = config or GoNoGoConfig()

    instructions = [
        GO_NO_GO_TITLE,
        "",
        f"A green {GO} or a red {NO_GO} signal appears on each trial.",
        f"Press SPACE (or click) as fast as you can for {GO}.",
        f"Hold back on {NO_GO}.",
        "",
        f"{cfg.total_stimuli} signals in total.",
    ]

    return TaskRunner(
        title=GO_NO_GO_TITLE,
        instructions=instructions,
        config=cfg.to_task_config(),
        clock=clock,
        seed=seed,
        on_task_start=on_task_start,
        on_task_end=on_task_end,
        result_sink=result_sink,
        input_hint=f"Space = {GO}",
        seed_factory=seed_factory,
    )
