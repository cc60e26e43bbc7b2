# src/entropy_focus/tasks/ordering.py

"""
Sibling ordering.

Order is stored as a dense key set (index * 100) re-derived for a whole bucket
after every drag, instead of a linked list or fractional keys. Buckets are
small (a project's subtasks or a list's root tasks), so an O(n) rewrite is fine.

A bucket is every non-archived task sharing one (list_id, parent_id) pair.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

ORDER_STEP = 100
FIRST_ORDER = 1000


def _order_key(task: Task) -> tuple[int, int]:
    return (task.sort_order, task.created_at)


def sibling_bucket(tasks: Iterable[Task], list_id: str, parent_id: str | None) -> list[Task]:
    """
    Re-filter the current canonical state down to one bucket, sorted the way
    it is rendered. Indices for a drag must be computed against this list,
    never against a cached or unsorted copy.
    """
    bucket = [
        t
        for t in tasks
        if t.status != TaskStatus.ARCHIVED
        and t.list_id == list_id
        and (t.parent_id or None) == (parent_id or None)
    ]
    bucket.sort(key=_order_key)
    return bucket


def next_sort_order(tasks: Iterable[Task], list_id: str, parent_id: str | None) -> int:
    bucket = sibling_bucket(tasks, list_id, parent_id)
    if not bucket:
        return FIRST_ORDER
    return max(t.sort_order for t in bucket) + ORDER_STEP


def reorder(siblings_in_visual_order: list[Task]) -> list[Task]:
    """Return the same tasks with sort_order reassigned as index * 100."""
    return [replace(t, sort_order=idx * ORDER_STEP) for idx, t in enumerate(siblings_in_visual_order)]


def array_move(items: list[Task], old_index: int, new_index: int) -> list[Task]:
    out = list(items)
    item = out.pop(old_index)
    out.insert(new_index, item)
    return out


def move_within_bucket(tasks: Iterable[Task], active_id: str, over_id: str) -> list[Task]:
    """
    Move `active_id` to the position of `over_id` inside the active task's bucket.

    Returns the whole rewritten bucket, or [] when the drag cannot be resolved
    (unknown id, or `over_id` lives in another bucket).
    """
    if active_id == over_id:
        return []

    snapshot = list(tasks)
    active = next((t for t in snapshot if t.id == active_id), None)
    if active is None or active.status == TaskStatus.ARCHIVED:
        logger.warning("Reorder ignored: unknown task id=%s", active_id)
        return []

    bucket = sibling_bucket(snapshot, active.list_id, active.parent_id)
    ids = [t.id for t in bucket]
    if active_id not in ids or over_id not in ids:
        logger.warning(
            "Reorder rejected: %s and %s are not siblings (list=%s parent=%s)",
            active_id,
            over_id,
            active.list_id,
            active.parent_id or "root",
        )
        return []

    moved = array_move(bucket, ids.index(active_id), ids.index(over_id))
    return reorder(moved)
