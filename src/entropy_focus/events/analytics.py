# src/entropy_focus/events/analytics.py

"""Read-only summaries over the event log (history view)."""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ..tasks.task_models import EntropyReason, LogEntry, LogType


@dataclass(frozen=True, slots=True)
class DayCount:
    day: str  # YYYY-MM-DD (UTC)
    crystallized: int
    entropy: int


def _day_key(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000, tz=UTC).date().isoformat()


def daily_counts(entries: Iterable[LogEntry], *, days: int = 7, now: float | None = None) -> list[DayCount]:
    """Success/failure counts for the last `days` calendar days, oldest first."""
    if now is None:
        now = time.time()
    today = datetime.fromtimestamp(now, tz=UTC).date()

    success: Counter[str] = Counter()
    failure: Counter[str] = Counter()
    for e in entries:
        if e.type == LogType.CRYSTALLIZATION:
            success[_day_key(e.timestamp)] += 1
        elif e.type == LogType.ENTROPY:
            failure[_day_key(e.timestamp)] += 1

    out: list[DayCount] = []
    for i in range(max(1, days) - 1, -1, -1):
        key = (today - timedelta(days=i)).isoformat()
        out.append(DayCount(day=key, crystallized=success[key], entropy=failure[key]))
    return out


def efficiency(entries: Iterable[LogEntry]) -> int:
    """Percentage of focus sessions that succeeded; 100 when nothing was attempted."""
    counts = Counter(e.type for e in entries)
    good = counts[LogType.CRYSTALLIZATION]
    bad = counts[LogType.ENTROPY]
    if good + bad == 0:
        return 100
    return round(good / (good + bad) * 100)


def reason_breakdown(entries: Iterable[LogEntry]) -> dict[EntropyReason, int]:
    counts: Counter[EntropyReason] = Counter(
        e.entropy_reason for e in entries if e.type == LogType.ENTROPY and e.entropy_reason is not None
    )
    return {reason: counts[reason] for reason in EntropyReason}
