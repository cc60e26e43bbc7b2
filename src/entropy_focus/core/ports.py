# src/entropy_focus/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/notification delivery swappable and makes testing easier.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Awaitable, Protocol

from ..tasks.task_models import LogEntry, Task, TaskList, UserSettings


class NotificationKind(StrEnum):
    POMODORO = "pomodoro"
    BREAK = "break"


@dataclass(frozen=True, slots=True)
class Notification:
    title: str
    body: str
    kind: NotificationKind


class DurableStore(Protocol):
    """
    Durable mirror of in-memory state.

    Every call is best-effort: the controller catches and logs failures,
    in-memory state stays authoritative and the next successful write reconciles.
    """

    def load_lists(self) -> Awaitable[list[TaskList]]: ...
    def load_tasks(self) -> Awaitable[list[Task]]: ...
    def load_logs(self) -> Awaitable[list[LogEntry]]: ...
    def load_settings(self) -> Awaitable[UserSettings | None]: ...

    def save_task(self, task: Task) -> Awaitable[None]: ...
    def append_log(self, entry: LogEntry) -> Awaitable[None]: ...
    def save_settings(self, settings: UserSettings) -> Awaitable[None]: ...


class Notifier(Protocol):
    """
    Connector-side port: invoked at focus expiry and break expiry.
    Delivery and display belong to the connector.
    """

    def notify(self, notification: Notification) -> None: ...
