from __future__ import annotations

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class Phase(str, Enum):
    INSTRUCTIONS = "instructions"
    RUNNING = "running"
    RESULTS = "results"


class Outcome(str, Enum):
    HIT = "hit"
    MISS = "miss"
    FALSE_ALARM = "false_alarm"
    CORRECT_REJECTION = "correct_rejection"


class WindowState(str, Enum):
    IDLE = "idle"
    OPEN = "open"
    RESPONDED = "responded"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class Trial:
    index: int
    stimulus: str
    is_target: bool
    presented_at_s: float | None = None  # stamped when the window opens


@dataclass(frozen=True, slots=True)
class Response:
    occurred: bool
    latency_ms: float | None = None


NO_RESPONSE = Response(occurred=False, latency_ms=None)


@dataclass(frozen=True, slots=True)
class TrialTaskConfig:
    """Parameters shared by every single-response trial task."""

    total_stimuli: int
    target_probability: float
    stimulus_duration_ms: int
    inter_trial_gap_ms: int
    target_symbol: str
    alphabet: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class TrialEvent:
    """One completed trial, as kept in the run log."""

    index: int
    stimulus: str
    is_target: bool
    outcome: Outcome
    presented_at_s: float
    resolved_at_s: float
    latency_ms: float | None


def non_target_symbols(config: TrialTaskConfig) -> tuple[str, ...]:
    return tuple(sym for sym in config.alphabet if sym != config.target_symbol)


def validate_task_config(config: TrialTaskConfig) -> None:
    if config.total_stimuli < 0:
        raise ValueError("total_stimuli must be >= 0")
    if not (0.0 <= config.target_probability <= 1.0):
        raise ValueError("target_probability must be in [0.0, 1.0]")
    if config.stimulus_duration_ms <= 0:
        raise ValueError("stimulus_duration_ms must be > 0")
    if config.inter_trial_gap_ms < 0:
        raise ValueError("inter_trial_gap_ms must be >= 0")
    if str(config.target_symbol) == "":
        raise ValueError("target_symbol must be non-empty")
    if config.target_probability < 1.0 and not non_target_symbols(config):
        raise ValueError("alphabet must contain at least one non-target symbol")


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def random(self) -> float:
        return self._rng.random()

    def choice(self, seq: Sequence[str]) -> str:
        return self._rng.choice(seq)


def round_half_up(x: float) -> int:
    # Halves round away from zero for the non-negative values used here.
    return int(math.floor(x + 0.5))
