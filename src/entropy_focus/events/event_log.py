# src/entropy_focus/events/event_log.py

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable

from ..tasks.task_models import EntropyReason, LogEntry, LogType

logger = logging.getLogger(__name__)

LogListener = Callable[[LogEntry], None]


class EventLog:
    """
    Append-only domain event log.

    Entries are immutable and never deleted; they are the only input for
    analytics (daily success/failure counts, efficiency).

    Listeners (the durable mirror) are called after each append. A failing
    listener is logged and never fails the operation that produced the event.
    """

    def __init__(self, entries: Iterable[LogEntry] = (), *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: list[LogEntry] = list(entries)
        self._listeners: list[LogListener] = []

    def load(self, entries: Iterable[LogEntry]) -> None:
        self._entries = sorted(entries, key=lambda e: e.timestamp)

    def subscribe(self, listener: LogListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def record(
        self,
        type: LogType,
        task_id: str,
        task_title: str,
        reason: EntropyReason | None = None,
        *,
        duration: int | None = None,
    ) -> LogEntry:
        entry = LogEntry(
            id=str(uuid.uuid4()),
            timestamp=int(self._clock() * 1000),
            type=LogType(type),
            task_id=task_id,
            task_title=task_title,
            entropy_reason=EntropyReason(reason) if reason is not None else None,
            duration=duration,
        )
        self._entries.append(entry)
        logger.debug("Log %s task=%s reason=%s", entry.type.value, task_id, reason)

        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception:
                logger.exception("Log listener failed entry_id=%s", entry.id)
        return entry

    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def for_task(self, task_id: str) -> list[LogEntry]:
        return [e for e in self._entries if e.task_id == task_id]

    def __len__(self) -> int:
        return len(self._entries)
