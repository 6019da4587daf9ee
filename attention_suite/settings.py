"""Task parameter store.

Overrides live in a JSON file (``ATTENTION_SUITE_CONFIG`` or
``~/.attention_suite.json``)::

    {"version": 1, "tasks": {"cpt": {"total_stimuli": 20}, "go_no_go": {...}, "n_back": {"n": 3}}}

Unknown keys are ignored. A missing or unreadable file means defaults; values
that parse but fall outside their valid range raise ValueError at load time.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from .cpt import CptConfig
from .go_no_go import GoNoGoConfig
from .n_back import NBackConfig, validate_n_back_config
from .trial_core import validate_task_config

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "ATTENTION_SUITE_CONFIG"
SETTINGS_VERSION = 1


@dataclass(frozen=True, slots=True)
class SuiteSettings:
    cpt: CptConfig = field(default_factory=CptConfig)
    go_no_go: GoNoGoConfig = field(default_factory=GoNoGoConfig)
    n_back: NBackConfig = field(default_factory=NBackConfig)


def default_config_path() -> Path:
    explicit = os.environ.get(CONFIG_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".attention_suite.json"


def load_settings(path: Path | None = None) -> SuiteSettings:
    path = default_config_path() if path is None else path
    settings = SuiteSettings()
    if not path.exists():
        return settings

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable settings file %s: %s", path, exc)
        return settings
    if not isinstance(payload, dict):
        logger.warning("ignoring settings file %s: top level is not an object", path)
        return settings

    version = payload.get("version", SETTINGS_VERSION)
    if version != SETTINGS_VERSION:
        logger.warning("settings file %s has version %r; reading it as version %d", path, version, SETTINGS_VERSION)

    tasks = payload.get("tasks")
    if not isinstance(tasks, dict):
        return settings

    cpt = _apply_overrides(settings.cpt, tasks.get("cpt"), section="cpt")
    go_no_go = _apply_overrides(settings.go_no_go, tasks.get("go_no_go"), section="go_no_go")
    n_back = _apply_overrides(settings.n_back, tasks.get("n_back"), section="n_back")
    validate_task_config(cpt.to_task_config())
    validate_task_config(go_no_go.to_task_config())
    validate_n_back_config(n_back)
    validate_task_config(n_back.to_task_config())
    return SuiteSettings(cpt=cpt, go_no_go=go_no_go, n_back=n_back)


def _apply_overrides(base: Any, raw: object, *, section: str) -> Any:
    if not isinstance(raw, dict):
        return base

    changes: dict[str, object] = {}
    for f in fields(base):
        if f.name not in raw:
            continue
        current = getattr(base, f.name)
        changes[f.name] = _coerce(raw[f.name], like=current, key=f"{section}.{f.name}")
    return replace(base, **changes)


def _coerce(value: object, *, like: object, key: str) -> object:
    if isinstance(value, bool):
        raise ValueError(f"{key} must not be a boolean")
    if isinstance(like, str):
        if not isinstance(value, str):
            raise ValueError(f"{key} must be a string")
        return value
    if isinstance(like, int):
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if not isinstance(value, int):
            raise ValueError(f"{key} must be an integer")
        return value
    if isinstance(like, float):
        if not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number")
        return float(value)
    return value
