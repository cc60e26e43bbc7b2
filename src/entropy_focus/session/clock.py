# src/entropy_focus/session/clock.py

from __future__ import annotations

"""
Session clock observer.

A small polling loop that:
- recomputes remaining time from the stored (started_at, duration),
- claims the one-shot expiry latch,
- notifies through an injected Notifier port,
- optionally acks the expiry (focus -> break, break -> idle).

Several clocks (a main view and a compact view, say) may watch the same
controller; the latch guarantees only one of them acks each expiry. A focus
session waiting for a failure reason is never acked here.
"""

import asyncio
import logging

from ..core.controller import FocusController
from ..core.ports import Notification, NotificationKind, Notifier
from .machine import SessionMode

logger = logging.getLogger(__name__)

FOCUS_DONE = Notification(
    title="Focus session complete",
    body="Crystallized. Take a break.",
    kind=NotificationKind.POMODORO,
)
BREAK_DONE = Notification(
    title="Break is over",
    body="Ready for the next focus session?",
    kind=NotificationKind.BREAK,
)


def tick(controller: FocusController, notifier: Notifier | None, *, auto_advance: bool = True) -> bool:
    """
    One observation. Returns True when this call won the expiry latch.
    """
    mode = controller.state.session.mode
    if mode == SessionMode.IDLE:
        return False

    if not controller.claim_expiry():
        return False

    notification = FOCUS_DONE if mode == SessionMode.FOCUS else BREAK_DONE
    if notifier is not None:
        try:
            notifier.notify(notification)
        except Exception:
            logger.exception("notify failed kind=%s", notification.kind.value)

    if auto_advance:
        if mode == SessionMode.FOCUS:
            controller.complete_pomodoro()
        else:
            controller.finish_break()
    return True


async def run_session_clock(
        controller: FocusController,
        notifier: Notifier | None,
        *,
        interval_seconds: float = 1.0,
        auto_advance: bool = True,
) -> None:
    """
    Polling observer. Every interval_seconds:
    - skip when idle,
    - on expiry: notify, then ack if auto_advance.

    To stop the clock, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            tick(controller, notifier, auto_advance=auto_advance)
        except Exception:
            logger.exception("session clock tick failed")

        await asyncio.sleep(sleep_s)
