from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .aggregator import RunReport
from .runner import TaskRunner
from .trial_core import TrialEvent, TrialTaskConfig, round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunAttemptResult:
    """Persistable summary + trial log for a completed run."""

    task_code: str
    task_version: int
    seed: int
    config: TrialTaskConfig
    report: RunReport
    events: list[TrialEvent]
    duration_s: float | None = None


def attempt_result_from_runner(
    runner: TaskRunner,
    *,
    task_code: str,
    task_version: int = 1,
) -> RunAttemptResult:
    """Build a RunAttemptResult from a finished TaskRunner."""

    report = runner.final_report
    if report is None:
        raise ValueError("runner has not finished a run")
    return RunAttemptResult(
        task_code=str(task_code),
        task_version=int(task_version),
        seed=int(runner.seed),
        config=runner.config,
        report=report,
        events=runner.events(),
        duration_s=runner.duration_s,
    )


def _pct_2dp(part: int, whole: int) -> float:
    return 0.0 if whole == 0 else round(part / whole * 100.0, 2)


def _avg_2dp(report: RunReport) -> float | None:
    avg = report.avg_reaction_time_ms
    return None if avg is None else round(avg, 2)


def run_report_to_export(report: RunReport) -> dict[str, Any]:
    """Export record handed to the result sink (camelCase keys, ms units).

    ``avgReactionTimeMs`` is None when there were no hits, never 0.0.
    """

    return {
        "totalTrials": report.total_trials,
        "totalTargets": report.total_targets,
        "totalNonTargets": report.total_non_targets,
        "hits": report.hits,
        "misses": report.misses,
        "falseAlarms": report.false_alarms,
        "correctRejections": report.correct_rejections,
        "accuracy": report.accuracy_pct,
        "avgReactionTimeMs": _avg_2dp(report),
        "reactionTimesMs": [round(rt, 2) for rt in report.reaction_times_ms],
    }


def go_no_go_report_to_export(report: RunReport) -> dict[str, Any]:
    """Go/No-Go record: observed GO / NO-GO counts and per-class accuracy.

    GO trials are the targets, so a miss is an omission error and a false
    alarm a commission error. Accuracies are percentages with two decimals.
    """

    go_trials = report.targets_presented
    nogo_trials = report.trials_completed - go_trials
    return {
        "totalTrials": report.total_trials,
        "goTrials": go_trials,
        "nogoTrials": nogo_trials,
        "correctGo": report.hits,
        "omissionErrors": report.misses,
        "commissionErrors": report.false_alarms,
        "correctReject": report.observed_correct_rejections,
        "goAccuracy": _pct_2dp(report.hits, go_trials),
        "nogoAccuracy": _pct_2dp(report.observed_correct_rejections, nogo_trials),
        "avgReactionTimeMs": _avg_2dp(report),
        "reactionTimesMs": [round(rt, 2) for rt in report.reaction_times_ms],
    }


def n_back_report_to_export(report: RunReport, *, level: int) -> dict[str, Any]:
    """N-Back record; accuracy counts hits and correct rejections over all trials."""

    correct = report.hits + report.observed_correct_rejections
    judged = report.trials_completed
    return {
        "nBackLevel": int(level),
        "totalTrials": report.total_trials,
        "totalMatches": report.total_targets,
        "hits": report.hits,
        "misses": report.misses,
        "falseAlarms": report.false_alarms,
        "correctRejections": report.observed_correct_rejections,
        "accuracy": 0 if judged == 0 else round_half_up(correct / judged * 100.0),
        "avgReactionTimeMs": _avg_2dp(report),
        "reactionTimesMs": [round(rt, 2) for rt in report.reaction_times_ms],
    }


def log_report(
    task_name: str,
    report: RunReport,
    *,
    exporter: Callable[[RunReport], dict[str, Any]] = run_report_to_export,
) -> dict[str, Any]:
    record = exporter(report)
    logger.info("[%s] results: %s", task_name, record)
    return record
