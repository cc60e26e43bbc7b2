# src/entropy_focus/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

DONE_LIST_ID = "done"
INBOX_LIST_ID = "inbox"


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - "archived" is a logical delete; rows are never removed so log entries
      keep pointing at something.
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.ACTIVE
        try:
            return cls(raw)
        except ValueError:
            return cls.ACTIVE


class ListType(StrEnum):
    INBOX = "inbox"
    USER = "user"
    DONE = "done"
    TRASH = "trash"


class LogType(StrEnum):
    CREATION = "creation"
    START = "start"
    CRYSTALLIZATION = "crystallization"  # focus session succeeded
    ENTROPY = "entropy"  # focus session failed


class EntropyReason(StrEnum):
    INTERNAL = "internal"
    EXTERNAL = "external"
    COGNITIVE = "cognitive"


class TimerDisplayMode(StrEnum):
    COUNTDOWN = "countdown"
    RING = "ring"


@dataclass(slots=True)
class Task:
    id: str
    list_id: str
    title: str
    estimate: int

    completed_pomodoros: int
    failed_pomodoros: int

    parent_id: str | None
    created_at: int  # epoch ms
    status: TaskStatus

    is_project: bool
    sort_order: int

    @property
    def is_archived(self) -> bool:
        return self.status == TaskStatus.ARCHIVED


@dataclass(frozen=True, slots=True)
class TaskList:
    id: str
    name: str
    type: ListType
    icon: str | None = None


DEFAULT_LISTS: tuple[TaskList, ...] = (
    TaskList(id=INBOX_LIST_ID, name="Inbox", type=ListType.INBOX),
    TaskList(id="work", name="Work", type=ListType.USER),
    TaskList(id="life", name="Life", type=ListType.USER),
    TaskList(id=DONE_LIST_ID, name="Done", type=ListType.DONE),
)


@dataclass(frozen=True, slots=True)
class LogEntry:
    id: str
    timestamp: int  # epoch ms
    type: LogType
    task_id: str
    task_title: str
    entropy_reason: EntropyReason | None = None
    duration: int | None = None  # seconds actually spent, when applicable


@dataclass(frozen=True, slots=True)
class UserSettings:
    """User preferences persisted as key/value rows (camelCase keys on disk)."""

    pomodoro_duration: int = 25  # minutes
    break_duration: int = 5  # minutes
    show_categories: bool = True
    language: str = "en"
    auto_start: bool = False
    timer_display_mode: TimerDisplayMode = TimerDisplayMode.COUNTDOWN

    @property
    def focus_seconds(self) -> int:
        return max(1, int(self.pomodoro_duration)) * 60

    @property
    def break_seconds(self) -> int:
        return max(1, int(self.break_duration)) * 60

    def to_rows(self) -> dict[str, str]:
        return {
            "pomodoroDuration": str(self.pomodoro_duration),
            "breakDuration": str(self.break_duration),
            "showCategories": "true" if self.show_categories else "false",
            "language": self.language,
            "autoStart": "true" if self.auto_start else "false",
            "timerDisplayMode": self.timer_display_mode.value,
        }

    @classmethod
    def from_rows(cls, rows: dict[str, Any], *, defaults: UserSettings | None = None) -> UserSettings:
        base = defaults or cls()

        def _int(key: str, default: int) -> int:
            try:
                val = int(rows.get(key) or 0)
            except (TypeError, ValueError):
                return default
            return val if val > 0 else default

        try:
            display = TimerDisplayMode(rows.get("timerDisplayMode") or base.timer_display_mode)
        except ValueError:
            display = base.timer_display_mode

        return cls(
            pomodoro_duration=_int("pomodoroDuration", base.pomodoro_duration),
            break_duration=_int("breakDuration", base.break_duration),
            show_categories=str(rows.get("showCategories", "true")) != "false",
            language=str(rows.get("language") or base.language),
            auto_start=str(rows.get("autoStart", "false")) == "true",
            timer_display_mode=display,
        )
