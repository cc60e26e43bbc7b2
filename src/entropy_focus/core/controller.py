# src/entropy_focus/core/controller.py

"""
Intent entry point.

Presentation layers (console, GUI, compact views) dispatch intents here.
Each intent:
- mutates the in-memory core synchronously (TaskStore / SessionMachine / EventLog),
- schedules a fire-and-forget durable write (never awaited by the intent),
- broadcasts a ChangeEvent to every subscribed observer.

Invalid intents return None / [] and change nothing.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from ..session.machine import Session, SessionMode, Transition
from ..tasks.task_models import EntropyReason, LogEntry, LogType, Task, UserSettings
from ..tasks.visibility import visible_tasks
from .ports import DurableStore
from .state import AppState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    kind: str  # "tasks" | "session" | "list" | "settings"
    session: Session
    tasks: tuple[Task, ...] = field(default_factory=tuple)
    entry: LogEntry | None = None


Observer = Callable[[ChangeEvent], None]


class FocusController:
    def __init__(self, state: AppState, store: DurableStore | None = None) -> None:
        self.state = state
        self._store = store
        self._observers: list[Observer] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._write_lock = asyncio.Lock()

        if store is not None:
            state.log.subscribe(self._mirror_log)

    @property
    def store(self) -> DurableStore | None:
        return self._store

    # ---- observers ----

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _broadcast(self, kind: str, tasks: Iterable[Task] = (), entry: LogEntry | None = None) -> None:
        event = ChangeEvent(kind=kind, session=self.state.session.session, tasks=tuple(tasks), entry=entry)
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                logger.exception("Observer failed on %s event", kind)

    # ---- durable mirror ----

    def _spawn(self, make: Callable[[], Awaitable[None]], what: str) -> None:
        """
        Schedule one durable write on the running loop and return at once.

        The app always drives the controller from inside its event loop
        (cli.main.run_app). Without a loop (plain scripts, sync unit tests)
        the write runs inline so it is not lost; that path does block the caller.
        """

        async def _write() -> None:
            try:
                await make()
            except Exception:
                # In-memory state stays authoritative; no retry, no rollback.
                logger.exception("Durable write failed (%s)", what)

        async def _ordered() -> None:
            # Writes land in submission order so a stale row never overwrites a newer one.
            async with self._write_lock:
                await _write()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(_write())
            return

        task = loop.create_task(_ordered())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _persist(self, tasks: Iterable[Task]) -> None:
        store = self._store
        if store is None:
            return
        for task in tasks:
            self._spawn(lambda t=task: store.save_task(t), f"save_task id={task.id}")

    def _mirror_log(self, entry: LogEntry) -> None:
        store = self._store
        if store is None:
            return
        self._spawn(lambda: store.append_log(entry), f"append_log id={entry.id}")

    async def drain(self) -> None:
        """Wait for in-flight durable writes (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ---- task intents ----

    def _creation(self, task: Task | None) -> Task | None:
        if task is None:
            return None
        self._persist([task])
        entry = self.state.log.record(LogType.CREATION, task.id, task.title)
        self._broadcast("tasks", [task], entry)
        return task

    def add_task(
        self,
        title: str,
        estimate: int,
        parent_id: str | None = None,
        *,
        list_id: str | None = None,
    ) -> Task | None:
        task = self.state.tasks.add_task(list_id or self.state.current_list_id, title, estimate, parent_id)
        return self._creation(task)

    def add_project(self, title: str, *, list_id: str | None = None) -> Task | None:
        return self._creation(self.state.tasks.add_project(list_id or self.state.current_list_id, title))

    def _changed(self, changed: list[Task]) -> list[Task]:
        if changed:
            self._persist(changed)
            self._broadcast("tasks", changed)
        return changed

    def update_task(self, task_id: str, title: str, estimate: int) -> Task | None:
        task = self.state.tasks.update_task(task_id, title, estimate)
        if task is not None:
            self._changed([task])
        return task

    def toggle_completion(self, task_id: str) -> list[Task]:
        return self._changed(self.state.tasks.toggle_completion(task_id))

    def archive(self, task_id: str) -> list[Task]:
        return self._changed(self.state.tasks.archive(task_id))

    def reorder(self, active_id: str, over_id: str) -> list[Task]:
        return self._changed(self.state.tasks.reorder(active_id, over_id))

    # ---- session intents ----

    def _transition(self, result: Transition | None) -> Transition | None:
        if result is None:
            return None
        if result.task is not None and result.entry is not None and result.entry.type != LogType.START:
            self._persist([result.task])
        self._broadcast("session", [result.task] if result.task else [], result.entry)
        return result

    def start_task(self, task_id: str) -> Transition | None:
        return self._transition(self.state.session.start_task(task_id))

    def complete_pomodoro(self) -> Transition | None:
        return self._transition(self.state.session.complete_pomodoro())

    def request_failure(self) -> Transition | None:
        return self._transition(self.state.session.request_failure())

    def cancel_failure(self) -> Transition | None:
        return self._transition(self.state.session.cancel_failure())

    def fail_session(self, reason: EntropyReason | str) -> Transition | None:
        return self._transition(self.state.session.fail_session(reason))

    def finish_break(self) -> Transition | None:
        return self._transition(self.state.session.finish_break())

    def claim_expiry(self, now: float | None = None) -> bool:
        return self.state.session.claim_expiry(now)

    # ---- view state ----

    def select_list(self, list_id: str) -> bool:
        if not any(lst.id == list_id for lst in self.state.lists):
            logger.warning("select_list ignored: unknown list %s", list_id)
            return False
        self.state.current_list_id = list_id
        self._broadcast("list")
        return True

    def update_settings(self, **changes: Any) -> UserSettings:
        try:
            updated = replace(self.state.user_settings, **changes)
        except TypeError:
            logger.warning("update_settings ignored: unknown fields %s", sorted(changes))
            return self.state.user_settings

        self.state.user_settings = updated
        store = self._store
        if store is not None:
            self._spawn(lambda: store.save_settings(updated), "save_settings")
        self._broadcast("settings")
        return updated

    def visible_tasks(self, list_id: str | None = None) -> list[Task]:
        return visible_tasks(self.state.tasks.all_tasks(), list_id or self.state.current_list_id)

    def active_task(self) -> Task | None:
        session = self.state.session.session
        if session.mode != SessionMode.FOCUS:
            return None
        return self.state.tasks.get(session.task_id)

    def remaining_seconds(self) -> int:
        return self.state.session.remaining_seconds()
