from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from .results import RunAttemptResult

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def open_db(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS session (
                id INTEGER PRIMARY KEY,
                created_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS attempt (
                id INTEGER PRIMARY KEY,
                session_id INTEGER NOT NULL REFERENCES session(id) ON DELETE CASCADE,
                task_code TEXT NOT NULL,
                task_version INTEGER NOT NULL,
                app_version TEXT NOT NULL,
                rng_seed INTEGER NOT NULL,
                total_stimuli INTEGER NOT NULL,
                target_probability REAL NOT NULL,
                stimulus_duration_ms INTEGER NOT NULL,
                inter_trial_gap_ms INTEGER NOT NULL,
                target_symbol TEXT NOT NULL,
                completed_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS metric (
                attempt_id INTEGER NOT NULL REFERENCES attempt(id) ON DELETE CASCADE,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (attempt_id, key)
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS trial_event (
                id INTEGER PRIMARY KEY,
                attempt_id INTEGER NOT NULL REFERENCES attempt(id) ON DELETE CASCADE,
                seq INTEGER NOT NULL,
                stimulus TEXT NOT NULL,
                is_target INTEGER NOT NULL,
                outcome TEXT NOT NULL,
                presented_at_ms INTEGER NOT NULL,
                resolved_at_ms INTEGER NOT NULL,
                rt_ms REAL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_trial_event_attempt_seq ON trial_event(attempt_id, seq);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


def record_run(*, db_path: Path, result: RunAttemptResult, app_version: str) -> int:
    """Store one finished run: session -> attempt -> metric + trial_event."""

    conn = open_db(db_path)
    try:
        attempt_id = _insert_attempt(conn=conn, result=result, app_version=app_version)
    finally:
        conn.close()
    logger.info("stored %s attempt %d in %s", result.task_code, attempt_id, db_path)
    return attempt_id


def _insert_attempt(*, conn: sqlite3.Connection, result: RunAttemptResult, app_version: str) -> int:
    now = _utc_now_iso()
    cfg = result.config
    report = result.report

    with conn:
        cur = conn.execute("INSERT INTO session(created_at_utc) VALUES (?)", (now,))
        session_id = int(cur.lastrowid)

        cur = conn.execute(
            """
            INSERT INTO attempt(
                session_id, task_code, task_version, app_version, rng_seed,
                total_stimuli, target_probability, stimulus_duration_ms,
                inter_trial_gap_ms, target_symbol, completed_at_utc
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session_id,
                str(result.task_code),
                int(result.task_version),
                app_version,
                int(result.seed),
                int(cfg.total_stimuli),
                float(cfg.target_probability),
                int(cfg.stimulus_duration_ms),
                int(cfg.inter_trial_gap_ms),
                str(cfg.target_symbol),
                now,
            ),
        )
        attempt_id = int(cur.lastrowid)

        mean_rt = "" if report.avg_reaction_time_ms is None else f"{report.avg_reaction_time_ms:.3f}"
        median_rt = "" if report.median_reaction_time_ms is None else f"{report.median_reaction_time_ms:.3f}"
        duration_ms = "" if result.duration_s is None else f"{result.duration_s * 1000.0:.0f}"
        metrics = {
            "total_targets": str(report.total_targets),
            "hits": str(report.hits),
            "misses": str(report.misses),
            "false_alarms": str(report.false_alarms),
            "correct_rejections": str(report.correct_rejections),
            "accuracy": f"{report.accuracy:.6f}",
            "mean_rt_ms": mean_rt,
            "median_rt_ms": median_rt,
            "observed_correct_rejections": str(report.observed_correct_rejections),
            "duration_ms": duration_ms,
        }
        for k, v in metrics.items():
            conn.execute("INSERT INTO metric(attempt_id, key, value) VALUES (?, ?, ?)", (attempt_id, k, v))

        for e in result.events:
            conn.execute(
                """
                INSERT INTO trial_event(
                    attempt_id, seq, stimulus, is_target, outcome,
                    presented_at_ms, resolved_at_ms, rt_ms
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    attempt_id,
                    int(e.index),
                    str(e.stimulus),
                    1 if e.is_target else 0,
                    str(e.outcome.value),
                    int(round(e.presented_at_s * 1000.0)),
                    int(round(e.resolved_at_s * 1000.0)),
                    e.latency_ms,
                ),
            )

    return attempt_id
