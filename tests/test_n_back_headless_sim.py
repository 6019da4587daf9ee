from __future__ import annotations

from dataclasses import dataclass

import pytest

from attention_suite.n_back import NBackConfig, NBackSequencer, build_n_back_task
from attention_suite.results import n_back_report_to_export
from attention_suite.trial_core import Outcome, Phase, SeededRng


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _mirror(cfg: NBackConfig, seed: int) -> NBackSequencer:
    return NBackSequencer(config=cfg.to_task_config(), rng=SeededRng(seed), n=cfg.n)


def test_defaults_follow_two_back_letter_task() -> None:
    cfg = NBackConfig()

    assert cfg.total_stimuli == 25
    assert cfg.n == 2
    assert cfg.stimulus_duration_ms == 2500
    assert cfg.inter_trial_gap_ms == 500
    assert len(cfg.to_task_config().alphabet) == 26


@pytest.mark.parametrize("n", [1, 2, 3])
def test_targets_are_exactly_the_n_back_repeats(n: int) -> None:
    cfg = NBackConfig(total_stimuli=60, n=n, match_probability=0.4)
    seq = _mirror(cfg, seed=8)
    letters = seq.sequence

    assert len(letters) == 60
    targets = 0
    for i in range(60):
        trial = seq.next(i)
        assert trial is not None
        assert trial.stimulus == letters[i]
        expected = i >= n and letters[i] == letters[i - n]
        assert trial.is_target is expected
        targets += int(expected)
    assert seq.planned_targets == targets
    assert 0 < targets < 60 - n
    assert seq.next(60) is None


def test_first_n_letters_are_never_targets() -> None:
    seq = _mirror(NBackConfig(total_stimuli=10, n=3, match_probability=1.0), seed=1)

    assert [seq.next(i).is_target for i in range(10)] == [False] * 3 + [True] * 7  # type: ignore[union-attr]


def test_zero_match_probability_gives_no_targets() -> None:
    seq = _mirror(NBackConfig(total_stimuli=40, match_probability=0.0), seed=12)

    assert seq.planned_targets == 0


def test_sequence_is_deterministic_for_same_seed() -> None:
    cfg = NBackConfig()

    assert _mirror(cfg, 99).sequence == _mirror(cfg, 99).sequence


@pytest.mark.parametrize("n", [0, 4])
def test_level_outside_one_to_three_is_rejected(n: int) -> None:
    with pytest.raises(ValueError):
        build_n_back_task(clock=FakeClock(), seed=1, config=NBackConfig(n=n))


def test_single_letter_alphabet_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_n_back_task(clock=FakeClock(), seed=1, config=NBackConfig(letters="AAAA"))


def test_headless_run_scores_matches_and_non_matches() -> None:
    seed = 2718
    cfg = NBackConfig(total_stimuli=20, n=2, match_probability=0.35)
    clock = FakeClock()
    engine = build_n_back_task(clock=clock, seed=seed, config=cfg)
    mirror = _mirror(cfg, seed)

    engine.start()
    assert engine.snapshot().report.total_targets == mirror.planned_targets
    assert engine.title == "N-Back Task (2-Back)"

    first_non_match = True
    for i in range(cfg.total_stimuli):
        trial = mirror.next(i)
        assert trial is not None
        assert engine.snapshot().stimulus == trial.stimulus

        if trial.is_target:
            clock.advance(0.6)
            assert engine.respond() is True
        elif first_non_match and i >= cfg.n:
            # One false alarm on a letter that does not repeat.
            clock.advance(0.3)
            assert engine.respond() is True
            first_non_match = False
        else:
            clock.advance(2.5)
            engine.update()

        clock.advance(0.5)
        engine.update()

    assert engine.phase is Phase.RESULTS
    report = engine.final_report
    assert report is not None
    assert report.hits == mirror.planned_targets
    assert report.misses == 0
    assert report.false_alarms == 1
    assert report.observed_correct_rejections == cfg.total_stimuli - mirror.planned_targets - 1
    assert report.correct_rejections == report.observed_correct_rejections
    assert all(rt == pytest.approx(600.0) for rt in report.reaction_times_ms)
    assert [e.outcome for e in engine.events()].count(Outcome.FALSE_ALARM) == 1

    record = n_back_report_to_export(report, level=cfg.n)
    assert record["nBackLevel"] == 2
    assert record["totalMatches"] == mirror.planned_targets
    assert record["correctRejections"] == report.observed_correct_rejections
    assert record["accuracy"] == round((cfg.total_stimuli - 1) / cfg.total_stimuli * 100)
