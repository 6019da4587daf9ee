from __future__ import annotations

from .trial_core import Outcome, Response, Trial


def classify(trial: Trial, response: Response) -> Outcome:
    """Map a presented trial and its (possibly absent) response to an outcome."""

    if trial.is_target:
        return Outcome.HIT if response.occurred else Outcome.MISS
    return Outcome.FALSE_ALARM if response.occurred else Outcome.CORRECT_REJECTION
