"""Smoke tests for the pygame UI.

These tests verify that the application's main loop can initialise and
execute a handful of frames without crashing when the SDL dummy video driver
is used. They do not check rendering correctness.
"""

from __future__ import annotations

import os

# Use the dummy drivers before importing pygame or the application
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")


def test_app_runs_headless(tmp_path, monkeypatch) -> None:
    """Ensure the application can start and run a few frames headlessly."""
    monkeypatch.setenv("ATTENTION_SUITE_CONFIG", str(tmp_path / "none.json"))
    from attention_suite.app import run

    exit_code = run(max_frames=3)
    assert exit_code == 0


def test_ui_smoke_open_cpt_start_respond_and_leave(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("ATTENTION_SUITE_CONFIG", str(tmp_path / "none.json"))
    import pygame

    from attention_suite.app import run

    def key(k: int) -> None:
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": k, "mod": 0, "unicode": ""}))

    def inject(frame: int) -> None:
        # Main Menu -> CPT -> begin -> respond -> reset -> leave
        if frame == 1:
            key(pygame.K_RETURN)
        elif frame == 2:
            key(pygame.K_RETURN)
        elif frame == 4:
            key(pygame.K_SPACE)
        elif frame == 6:
            key(pygame.K_r)
        elif frame == 8:
            key(pygame.K_ESCAPE)

    assert run(max_frames=12, event_injector=inject) == 0


def test_ui_smoke_digit_opens_n_back_and_mouse_responds(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("ATTENTION_SUITE_CONFIG", str(tmp_path / "none.json"))
    import pygame

    from attention_suite.app import run

    def key(k: int) -> None:
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": k, "mod": 0, "unicode": ""}))

    def click() -> None:
        pygame.event.post(pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"button": 1, "pos": (480, 270)}))

    def inject(frame: int) -> None:
        # Main Menu -> "3" N-Back -> begin -> click -> leave -> quit from menu
        if frame == 1:
            key(pygame.K_3)
        elif frame == 2:
            key(pygame.K_RETURN)
        elif frame == 4:
            click()
        elif frame == 6:
            key(pygame.K_ESCAPE)
        elif frame == 8:
            key(pygame.K_ESCAPE)

    assert run(max_frames=20, event_injector=inject) == 0
