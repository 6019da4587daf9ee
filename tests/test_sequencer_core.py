from __future__ import annotations

import pytest

from attention_suite.cpt import CptConfig
from attention_suite.sequencer import StimulusSequencer, target_count
from attention_suite.trial_core import SeededRng, TrialTaskConfig


def _config(**overrides: object) -> TrialTaskConfig:
    base = dict(
        total_stimuli=40,
        target_probability=0.25,
        stimulus_duration_ms=1500,
        inter_trial_gap_ms=500,
        target_symbol="X",
        alphabet=tuple("ABCDEFGHIJKLMNOPQRSTUVWXYZ"),
    )
    base.update(overrides)
    return TrialTaskConfig(**base)  # type: ignore[arg-type]


def test_sequence_is_deterministic_for_same_seed() -> None:
    s1 = StimulusSequencer(config=_config(), rng=SeededRng(123))
    s2 = StimulusSequencer(config=_config(), rng=SeededRng(123))

    seq1 = [s1.next(i) for i in range(40)]
    seq2 = [s2.next(i) for i in range(40)]

    assert seq1 == seq2


def test_targets_show_target_symbol_and_distractors_never_do() -> None:
    seq = StimulusSequencer(config=_config(target_probability=0.5), rng=SeededRng(9))
    trials = [seq.next(i) for i in range(200)]

    for i, t in enumerate(trials):
        assert t is not None
        assert t.index == i
        assert t.presented_at_s is None
        if t.is_target:
            assert t.stimulus == "X"
        else:
            assert t.stimulus != "X"
            assert t.stimulus in "ABCDEFGHIJKLMNOPQRSTUVWYZ"
    assert any(t.is_target for t in trials if t is not None)
    assert any(not t.is_target for t in trials if t is not None)


def test_probability_bounds_give_pure_streams() -> None:
    always = StimulusSequencer(config=_config(target_probability=1.0), rng=SeededRng(1))
    never = StimulusSequencer(config=_config(target_probability=0.0), rng=SeededRng(1))

    assert all(always.next(i).is_target for i in range(40))  # type: ignore[union-attr]
    assert not any(never.next(i).is_target for i in range(40))  # type: ignore[union-attr]


def test_index_past_total_signals_completion() -> None:
    seq = StimulusSequencer(config=_config(total_stimuli=3), rng=SeededRng(5))

    assert seq.next(2) is not None
    assert seq.next(3) is None
    assert seq.next(99) is None
    with pytest.raises(ValueError):
        seq.next(-1)


def test_target_count_rounds_half_up() -> None:
    assert target_count(40, 0.25) == 10
    assert target_count(60, 0.70) == 42
    assert target_count(10, 0.25) == 3  # 2.5 rounds up
    assert target_count(0, 0.25) == 0


def test_cpt_config_drops_target_from_alphabet() -> None:
    cfg = CptConfig().to_task_config()

    assert cfg.target_symbol == "X"
    assert "X" not in cfg.alphabet
    assert len(cfg.alphabet) == 25
