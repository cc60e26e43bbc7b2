# src/entropy_focus/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the durable store and the in-memory core into a controller,
- loads persisted lists/tasks/logs/settings (best-effort).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from ..config import get_settings
from ..core.controller import FocusController
from ..core.ports import DurableStore
from ..core.state import build_state, default_user_settings
from ..storage.sqlite_store import SqliteStore
from ..tasks.task_models import DEFAULT_LISTS

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_controller(
    *,
    settings=None,
    store: DurableStore | None = None,
    clock: Callable[[], float] = time.time,
) -> FocusController:
    """
    Build an empty core wired to a durable store.

    Keeping settings/store injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings(); if store is None, opens SQLite at settings.db_path.
    """
    if settings is None:
        settings = get_settings()

    if store is None:
        _ensure_local_dirs(settings)
        store = SqliteStore(settings.db_path)

    state = build_state(settings, clock=clock)
    return FocusController(state, store)


async def load_state(controller: FocusController) -> None:
    """
    Read everything the durable store has into the in-memory core.

    On failure the core keeps its defaults (empty tasks/log, default lists);
    the app stays usable and the next write reconciles.
    """
    state = controller.state
    store = controller.store
    if store is None:
        return

    try:
        lists, tasks, logs, user_settings = await asyncio.gather(
            store.load_lists(),
            store.load_tasks(),
            store.load_logs(),
            store.load_settings(),
        )
    except Exception:
        logger.exception("Failed to load data from the durable store; starting empty.")
        return

    state.lists = list(lists) or list(DEFAULT_LISTS)
    state.tasks.load(tasks)
    state.log.load(logs)
    state.user_settings = user_settings or default_user_settings(state.settings)
    logger.info(
        "Loaded %d lists, %d tasks, %d log entries",
        len(state.lists),
        state.tasks.count_tasks(),
        len(state.log),
    )
