# src/entropy_focus/core/state.py

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ..events.event_log import EventLog
from ..session.machine import SessionMachine
from ..tasks.task_models import DEFAULT_LISTS, INBOX_LIST_ID, TaskList, UserSettings
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    """
    Everything the core owns, passed explicitly through the controller.

    The active session lives on `session` (not in a module global); observers
    learn about changes through the controller's broadcasts.
    """

    settings: object
    user_settings: UserSettings
    tasks: TaskStore
    log: EventLog
    clock: Callable[[], float] = time.time

    lists: list[TaskList] = field(default_factory=lambda: list(DEFAULT_LISTS))
    current_list_id: str = INBOX_LIST_ID

    session: SessionMachine = field(init=False)

    def __post_init__(self) -> None:
        # The machine reads durations lazily so settings changes apply to the next session.
        self.session = SessionMachine(
            self.tasks,
            self.log,
            settings=lambda: self.user_settings,
            clock=self.clock,
        )


def build_state(
    settings: object,
    *,
    user_settings: UserSettings | None = None,
    clock: Callable[[], float] = time.time,
) -> AppState:
    """Wire an empty in-memory core; durable contents are loaded separately."""
    if user_settings is None:
        user_settings = default_user_settings(settings)

    return AppState(
        settings=settings,
        user_settings=user_settings,
        tasks=TaskStore(clock=clock),
        log=EventLog(clock=clock),
        clock=clock,
    )


def default_user_settings(settings: object) -> UserSettings:
    return UserSettings(
        pomodoro_duration=int(getattr(settings, "focus_minutes", 25)),
        break_duration=int(getattr(settings, "break_minutes", 5)),
    )
