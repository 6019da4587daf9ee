"""Pygame UI shell for the attention task suite.

Tasks under the main menu:
- Continuous Performance Task (respond to the target letter only)
- Go/No-Go (respond to GO, withhold on NO-GO)
- N-Back (respond when the letter matches the one n steps back)

Deterministic timing/scoring/RNG/state lives in attention_suite/* (core modules);
this module only renders snapshots and forwards key presses.
"""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Protocol

import pygame

from .aggregator import RunReport
from .clock import RealClock
from .cpt import build_cpt_task
from .go_no_go import GO, NO_GO, build_go_no_go_task
from .n_back import build_n_back_task
from .persistence import record_run
from .results import (
    attempt_result_from_runner,
    go_no_go_report_to_export,
    log_report,
    n_back_report_to_export,
    run_report_to_export,
)
from .runner import TaskRunner, format_reaction_time
from .settings import SuiteSettings, load_settings
from .trial_core import Phase

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"
RESULTS_DB_ENV = "ATTENTION_SUITE_DB"

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

BG = (10, 10, 14)
TEXT = (235, 235, 245)
MUTED = (140, 140, 150)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]
    detail: str = ""


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # The task menu stays at the bottom of the stack.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class TaskMenu:
    """Numbered task list: arrows/Enter, digit shortcuts, or a mouse click.

    Esc quits the suite. Each row shows the configured parameters of its task
    under the label.
    """

    ROW_H = 58

    def __init__(self, app: App, title: str, items: list[MenuItem]) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._rows: list[pygame.Rect] = []
        self._label_font = pygame.font.Font(None, 34)
        self._detail_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEMOTION:
            hovered = self._row_at(event.pos)
            if hovered is not None:
                self._selected = hovered
            return
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            clicked = self._row_at(event.pos)
            if clicked is not None:
                self._choose(clicked)
            return
        if event.type != pygame.KEYDOWN:
            return

        if event.key == pygame.K_ESCAPE:
            self._app.quit()
        elif event.key == pygame.K_UP:
            self._selected = (self._selected - 1) % len(self._items)
        elif event.key == pygame.K_DOWN:
            self._selected = (self._selected + 1) % len(self._items)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._choose(self._selected)
        elif pygame.K_1 <= event.key <= pygame.K_9:
            index = event.key - pygame.K_1
            if index < len(self._items):
                self._choose(index)

    def _choose(self, index: int) -> None:
        self._selected = index
        self._items[index].action()

    def _row_at(self, pos: tuple[int, int]) -> int | None:
        for idx, rect in enumerate(self._rows):
            if rect.collidepoint(pos):
                return idx
        return None

    def render(self, surface: pygame.Surface) -> None:
        w, _ = surface.get_size()
        surface.fill(BG)
        title = self._app.font.render(self._title, True, TEXT)
        surface.blit(title, (40, 30))

        self._rows = []
        y = 90
        for idx, item in enumerate(self._items):
            row = pygame.Rect(40, y, w - 80, self.ROW_H)
            self._rows.append(row)
            if idx == self._selected:
                pygame.draw.rect(surface, (40, 44, 70), row)
                pygame.draw.rect(surface, (120, 130, 200), row, 2)

            label = self._label_font.render(f"{idx + 1}  {item.label}", True, TEXT)
            surface.blit(label, (row.x + 14, row.y + 8))
            if item.detail:
                detail = self._detail_font.render(item.detail, True, MUTED)
                surface.blit(detail, (row.x + 44, row.y + 36))
            y += self.ROW_H + 10

        hint = self._detail_font.render("1-9 or Enter: open task  |  Esc: quit", True, MUTED)
        surface.blit(hint, (40, surface.get_height() - 40))


class TaskScreen:
    """Runs one TaskRunner: Enter starts, Space/click responds, R resets, Esc leaves."""

    def __init__(
        self,
        app: App,
        *,
        task_code: str,
        runner_factory: Callable[[], TaskRunner],
        db_path: Path | None = None,
    ) -> None:
        self._app = app
        self._task_code = task_code
        self._runner = runner_factory()
        self._db_path = db_path
        self._saved = False

        self._small_font = pygame.font.Font(None, 26)
        self._stimulus_font = pygame.font.Font(None, 180)

    def handle_event(self, event: pygame.event.Event) -> None:
        phase = self._runner.phase
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self._runner.respond()
            return
        if event.type != pygame.KEYDOWN:
            return

        if event.key == pygame.K_ESCAPE:
            # Leaving mid-run must not leave timers behind.
            self._runner.reset()
            self._app.pop()
            return
        if event.key == pygame.K_SPACE:
            self._runner.respond()
            return
        if event.key == pygame.K_r:
            self._runner.reset()
            self._saved = False
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if phase is Phase.INSTRUCTIONS:
                self._runner.start()
            elif phase is Phase.RESULTS:
                self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        self._runner.update()
        snap = self._runner.snapshot()
        if snap.phase is Phase.RESULTS:
            self._persist_once()

        surface.fill(BG)
        title = self._app.font.render(snap.title, True, TEXT)
        surface.blit(title, (40, 30))

        if snap.phase is Phase.RUNNING:
            self._render_trial(surface, snap.stimulus)
            self._render_countdown(surface, snap.time_remaining_s)
            r = snap.report
            stats = (
                f"Progress {snap.trials_presented}/{snap.total_trials}   "
                f"Hits {r.hits}   Misses {r.misses}   False alarms {r.false_alarms}   "
                f"Mean RT {format_reaction_time(r.avg_reaction_time_ms)}"
            )
            surface.blit(self._small_font.render(stats, True, (180, 180, 190)), (40, 80))
            hint = self._small_font.render(snap.input_hint, True, MUTED)
            surface.blit(hint, (40, surface.get_height() - 60))
            return

        y = 90
        for line in snap.prompt.split("\n")[:16]:
            txt = self._small_font.render(line, True, TEXT)
            surface.blit(txt, (40, y))
            y += 24

    def _render_trial(self, surface: pygame.Surface, stimulus: str | None) -> None:
        w, h = surface.get_size()
        center = (w // 2, h // 2 + 20)
        if stimulus is None:
            cross = self._small_font.render("+", True, (120, 120, 130))
            surface.blit(cross, cross.get_rect(center=center))
            return
        if stimulus in (GO, NO_GO):
            color = (40, 200, 90) if stimulus == GO else (220, 50, 50)
            pygame.draw.circle(surface, color, center, 90)
            return
        glyph = self._stimulus_font.render(stimulus, True, (245, 245, 250))
        surface.blit(glyph, glyph.get_rect(center=center))

    def _render_countdown(self, surface: pygame.Surface, remaining_s: float | None) -> None:
        if remaining_s is None:
            return
        window_s = self._runner.config.stimulus_duration_ms / 1000.0
        frac = max(0.0, min(1.0, remaining_s / window_s))
        w, h = surface.get_size()
        track = pygame.Rect(w // 2 - 150, h - 100, 300, 6)
        pygame.draw.rect(surface, (50, 50, 60), track)
        pygame.draw.rect(surface, (120, 130, 200), (track.x, track.y, int(track.w * frac), track.h))

    def _persist_once(self) -> None:
        if self._saved or self._db_path is None:
            return
        self._saved = True
        result = attempt_result_from_runner(self._runner, task_code=self._task_code)
        try:
            record_run(db_path=self._db_path, result=result, app_version=APP_VERSION)
        except Exception:
            logger.exception("could not store %s results in %s", self._task_code, self._db_path)


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def _results_db_path() -> Path | None:
    explicit = os.environ.get(RESULTS_DB_ENV, "").strip()
    return Path(explicit).expanduser() if explicit else None


def _task_items(
    settings: SuiteSettings,
    open_task: Callable[..., None],
) -> list[MenuItem]:
    cpt, gng, nb = settings.cpt, settings.go_no_go, settings.n_back
    return [
        MenuItem(
            "Continuous Performance Task",
            partial(open_task, "cpt", build_cpt_task, cpt, run_report_to_export),
            f"{cpt.total_stimuli} letters, respond to {cpt.target_letter} only",
        ),
        MenuItem(
            "Go/No-Go",
            partial(open_task, "go_no_go", build_go_no_go_task, gng, go_no_go_report_to_export),
            f"{gng.total_stimuli} signals, respond to {GO}, hold back on {NO_GO}",
        ),
        MenuItem(
            "N-Back",
            partial(open_task, "n_back", build_n_back_task, nb, partial(n_back_report_to_export, level=nb.n)),
            f"{nb.total_stimuli} letters, respond when a letter repeats {nb.n} back",
        ),
    ]


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    settings = load_settings()
    db_path = _results_db_path()

    pygame.init()
    pygame.display.set_caption("Attention Task Suite")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()
    app = App(surface=surface, font=font)
    real_clock = RealClock()

    def open_task(
        code: str,
        build: Callable[..., TaskRunner],
        config: Any,
        exporter: Callable[[RunReport], dict[str, Any]],
    ) -> None:
        app.push(
            TaskScreen(
                app,
                task_code=code,
                runner_factory=lambda: build(
                    clock=real_clock,
                    seed=_new_seed(),
                    config=config,
                    result_sink=partial(log_report, code, exporter=exporter),
                    seed_factory=_new_seed,
                ),
                db_path=db_path,
            )
        )

    items = _task_items(settings, open_task)
    items.append(MenuItem("Quit", app.quit))
    app.push(TaskMenu(app, "Attention Tasks", items))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
