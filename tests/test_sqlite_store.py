# tests/test_sqlite_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from entropy_focus.cli.bootstrap import create_controller, load_state
from entropy_focus.storage.sqlite_store import SqliteStore
from entropy_focus.tasks.task_models import (
    EntropyReason,
    LogType,
    TaskStatus,
    TimerDisplayMode,
    UserSettings,
)

from .fakes import FailingStore, FakeClock


def test_fresh_database_has_default_lists(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "entropy.db")
    assert [lst.id for lst in store.get_lists()] == ["inbox", "work", "life", "done"]
    assert store.count_tasks() == 0
    assert store.get_settings() is None

    # Reopening does not seed twice.
    again = SqliteStore(tmp_path / "entropy.db")
    assert len(again.get_lists()) == 4


@pytest.mark.asyncio
async def test_task_and_log_round_trip(tmp_path: Path, settings) -> None:
    store = SqliteStore(tmp_path / "entropy.db")
    clock = FakeClock()
    controller = create_controller(settings=settings, store=store, clock=clock)

    project = controller.add_project("ship", list_id="work")
    clock.advance(1)
    sub = controller.add_task("step", 2, project.id)
    clock.advance(1)
    controller.start_task(sub.id)
    clock.advance(30)
    controller.fail_session(EntropyReason.COGNITIVE)
    await controller.drain()

    tasks = {t.id: t for t in await store.load_tasks()}
    assert tasks[project.id].is_project
    assert tasks[sub.id].parent_id == project.id
    assert tasks[sub.id].failed_pomodoros == 1
    assert tasks[sub.id].list_id == "work"

    logs = await store.load_logs()
    assert [e.type for e in logs] == [LogType.CREATION, LogType.CREATION, LogType.START, LogType.ENTROPY]
    assert logs[-1].entropy_reason == EntropyReason.COGNITIVE
    assert logs[-1].duration == 30
    assert logs[0].duration is None


@pytest.mark.asyncio
async def test_settings_round_trip(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "entropy.db")
    wanted = UserSettings(pomodoro_duration=45, break_duration=15, timer_display_mode=TimerDisplayMode.RING)

    await store.save_settings(wanted)

    assert await store.load_settings() == wanted


def test_old_database_gains_missing_columns(tmp_path: Path) -> None:
    db = tmp_path / "old.db"
    conn = sqlite3.connect(db)
    conn.executescript(
        """
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            listId TEXT NOT NULL,
            title TEXT NOT NULL,
            estimate INTEGER NOT NULL,
            completedPomodoros INTEGER NOT NULL DEFAULT 0,
            failedPomodoros INTEGER NOT NULL DEFAULT 0,
            parentId TEXT,
            createdAt INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'active'
        );
        CREATE TABLE logs (
            id TEXT PRIMARY KEY,
            taskId TEXT NOT NULL,
            taskTitle TEXT NOT NULL,
            type TEXT NOT NULL,
            timestamp INTEGER NOT NULL,
            entropyReason TEXT
        );
        INSERT INTO tasks (id, listId, title, estimate, createdAt) VALUES ('t1', 'inbox', 'legacy', 3, 1000);
        INSERT INTO logs (id, taskId, taskTitle, type, timestamp) VALUES ('l1', 't1', 'legacy', 'creation', 1000);
        """
    )
    conn.commit()
    conn.close()

    store = SqliteStore(db)

    (task,) = store.get_tasks()
    assert task.title == "legacy"
    assert task.is_project is False
    assert task.sort_order == 0
    assert task.status == TaskStatus.ACTIVE

    (entry,) = store.get_logs()
    assert entry.type == LogType.CREATION
    assert entry.duration is None


def test_unknown_log_types_are_skipped(tmp_path: Path) -> None:
    store = SqliteStore(tmp_path / "entropy.db")
    conn = sqlite3.connect(tmp_path / "entropy.db")
    conn.execute(
        "INSERT INTO logs (id, taskId, taskTitle, type, timestamp) VALUES ('x', 't', 't', 'mystery', 1)"
    )
    conn.commit()
    conn.close()

    assert store.get_logs() == []


@pytest.mark.asyncio
async def test_load_state_restores_a_previous_run(tmp_path: Path, settings) -> None:
    clock = FakeClock()
    first = create_controller(settings=settings, store=SqliteStore(settings.db_path), clock=clock)
    task = first.add_task("carry over", 1)
    first.update_settings(pomodoro_duration=30)
    await first.drain()

    second = create_controller(settings=settings, store=SqliteStore(settings.db_path), clock=clock)
    await load_state(second)

    assert second.state.tasks.get(task.id).title == "carry over"
    assert len(second.state.log) == 1
    assert second.state.user_settings.pomodoro_duration == 30
    assert [lst.id for lst in second.state.lists] == ["inbox", "work", "life", "done"]


@pytest.mark.asyncio
async def test_load_state_failure_keeps_defaults(settings, caplog) -> None:
    controller = create_controller(settings=settings, store=FailingStore(), clock=FakeClock())

    await load_state(controller)

    assert controller.state.tasks.count_tasks() == 0
    assert [lst.id for lst in controller.state.lists] == ["inbox", "work", "life", "done"]
    assert "Failed to load data" in caplog.text
