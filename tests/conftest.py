# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from entropy_focus.core.controller import FocusController
from entropy_focus.core.state import AppState, build_state

from .fakes import FakeClock, RecordingStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="entropy-test",
        log_level="DEBUG",
        console_enabled=False,
        focus_minutes=25,
        break_minutes=5,
        clock_interval_seconds=0.01,
        auto_advance=True,
        data_dir=tmp_path,
        db_path=tmp_path / "entropy.db",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock) -> AppState:
    return build_state(settings, clock=clock)


@pytest.fixture()
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture()
def controller(state: AppState, store: RecordingStore) -> FocusController:
    """
    Controller wired to an in-memory recording store.

    Sync tests have no running loop, so durable writes run inline and are
    visible on `store` as soon as the intent returns.
    """
    return FocusController(state, store)
