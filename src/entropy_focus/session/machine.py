# src/entropy_focus/session/machine.py

"""
Single active focus/break session.

States:
  idle  --start_task-->        focus
  focus --request_failure-->   focus (collapsing: waiting for a reason)
  focus --cancel_failure-->    focus
  focus --complete_pomodoro--> break   (+1 completed, crystallization log; not while collapsing)
  focus --fail_session-->      idle    (+1 failed, entropy log)
  break --finish_break-->      idle    (no counters, no log)

Anything else is a silent no-op.

Time is never ticked down: remaining time is recomputed from
(now - started_at) so a suspended observer resumes with the right value.

Expiry does not transition by itself. Observers call claim_expiry(); the
one-shot latch lets exactly one of them win per state entry, and the winner
acks with complete_pomodoro() / finish_break(). While collapsing the latch is
left armed: the user is choosing a reason and the expiry waits for them.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import StrEnum

from ..events.event_log import EventLog
from ..tasks.task_models import EntropyReason, LogEntry, LogType, Task, TaskStatus, UserSettings
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


class SessionMode(StrEnum):
    IDLE = "idle"
    FOCUS = "focus"
    BREAK = "break"


@dataclass(frozen=True, slots=True)
class Session:
    mode: SessionMode
    task_id: str | None = None
    started_at: int = 0  # epoch ms
    duration_seconds: int = 0
    collapsing: bool = False  # focus only: failure confirmed, reason pending

    def elapsed_seconds(self, now: float) -> int:
        if self.mode == SessionMode.IDLE:
            return 0
        return max(0, int((now * 1000 - self.started_at) // 1000))

    def remaining_seconds(self, now: float) -> int:
        if self.mode == SessionMode.IDLE:
            return 0
        return max(0, self.duration_seconds - self.elapsed_seconds(now))

    def is_expired(self, now: float) -> bool:
        return self.mode != SessionMode.IDLE and self.elapsed_seconds(now) >= self.duration_seconds


IDLE = Session(mode=SessionMode.IDLE)


@dataclass(frozen=True, slots=True)
class Transition:
    """What a transition did, so the caller can persist and broadcast it."""

    session: Session
    task: Task | None = None
    entry: LogEntry | None = None


class SessionMachine:
    def __init__(
        self,
        tasks: TaskStore,
        log: EventLog,
        *,
        settings: Callable[[], UserSettings] = UserSettings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._tasks = tasks
        self._log = log
        self._settings = settings
        self._clock = clock
        self._session = IDLE
        self._expiry_consumed = False

    @property
    def session(self) -> Session:
        return self._session

    @property
    def mode(self) -> SessionMode:
        return self._session.mode

    def _enter(self, session: Session) -> Session:
        # Every state entry re-arms the expiry latch.
        self._session = session
        self._expiry_consumed = False
        logger.info("Session -> %s task=%s duration=%ss", session.mode.value, session.task_id, session.duration_seconds)
        return session

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ---- clock ----

    def remaining_seconds(self, now: float | None = None) -> int:
        return self._session.remaining_seconds(self._clock() if now is None else now)

    def is_expired(self, now: float | None = None) -> bool:
        return self._session.is_expired(self._clock() if now is None else now)

    def claim_expiry(self, now: float | None = None) -> bool:
        """True exactly once per focus/break entry, once its time is up."""
        if self._expiry_consumed or self._session.collapsing or not self.is_expired(now):
            return False
        self._expiry_consumed = True
        return True

    # ---- transitions ----

    def start_task(self, task_id: str) -> Transition | None:
        if self._session.mode != SessionMode.IDLE:
            logger.debug("start_task ignored: session is %s", self._session.mode.value)
            return None

        task = self._tasks.get(task_id)
        if task is None or task.is_project or task.status == TaskStatus.ARCHIVED:
            logger.warning("start_task ignored: %s is not an actionable task", task_id)
            return None

        session = self._enter(
            Session(
                mode=SessionMode.FOCUS,
                task_id=task.id,
                started_at=self._now_ms(),
                duration_seconds=self._settings().focus_seconds,
            )
        )
        entry = self._log.record(LogType.START, task.id, task.title)
        return Transition(session=session, task=task, entry=entry)

    def complete_pomodoro(self) -> Transition | None:
        """
        Focus -> break. The core does not deduplicate: after the first call
        the machine is in break, so repeated calls fall through as no-ops.
        """
        current = self._session
        if current.mode != SessionMode.FOCUS or current.task_id is None:
            logger.debug("complete_pomodoro ignored: session is %s", current.mode.value)
            return None
        if current.collapsing:
            logger.debug("complete_pomodoro ignored: failure pending for %s", current.task_id)
            return None

        task = self._tasks.record_outcome(current.task_id, success=True)
        if task is None:
            return None

        spent = min(current.elapsed_seconds(self._clock()), current.duration_seconds)
        entry = self._log.record(LogType.CRYSTALLIZATION, task.id, task.title, duration=spent)
        session = self._enter(
            Session(
                mode=SessionMode.BREAK,
                started_at=self._now_ms(),
                duration_seconds=self._settings().break_seconds,
            )
        )
        return Transition(session=session, task=task, entry=entry)

    def request_failure(self) -> Transition | None:
        """Enter the collapsing sub-state once the hold-to-confirm gesture finished."""
        if self._session.mode != SessionMode.FOCUS or self._session.collapsing:
            return None
        self._session = replace(self._session, collapsing=True)
        return Transition(session=self._session)

    def cancel_failure(self) -> Transition | None:
        if self._session.mode != SessionMode.FOCUS or not self._session.collapsing:
            return None
        self._session = replace(self._session, collapsing=False)
        return Transition(session=self._session)

    def fail_session(self, reason: EntropyReason | str) -> Transition | None:
        current = self._session
        if current.mode != SessionMode.FOCUS or current.task_id is None:
            logger.debug("fail_session ignored: session is %s", current.mode.value)
            return None

        try:
            reason = EntropyReason(reason)
        except ValueError:
            logger.warning("fail_session ignored: unknown reason %r", reason)
            return None

        task = self._tasks.record_outcome(current.task_id, success=False)
        if task is None:
            return None

        spent = min(current.elapsed_seconds(self._clock()), current.duration_seconds)
        entry = self._log.record(LogType.ENTROPY, task.id, task.title, reason, duration=spent)
        session = self._enter(IDLE)
        return Transition(session=session, task=task, entry=entry)

    def finish_break(self) -> Transition | None:
        if self._session.mode != SessionMode.BREAK:
            logger.debug("finish_break ignored: session is %s", self._session.mode.value)
            return None
        return Transition(session=self._enter(IDLE))
