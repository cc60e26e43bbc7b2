# src/entropy_focus/tasks/visibility.py

from __future__ import annotations

from collections.abc import Iterable

from .task_models import DONE_LIST_ID, Task, TaskStatus


def visible_tasks(all_tasks: Iterable[Task], current_list_id: str) -> list[Task]:
    """
    Project the full task set onto what one list view renders.

    Done view:
    - completed tasks from every list,
    - except completed subtasks whose project is still active
      (a project moves to Done together with its subtasks).

    Concrete list:
    - active tasks owned by the list,
    - plus completed subtasks of an active project in this list, so finished
      subtasks stay nested under their parent until the project is done.

    Archived tasks never show. Input order is preserved.
    """
    tasks = list(all_tasks)
    by_id = {t.id: t for t in tasks}
    out: list[Task] = []

    for t in tasks:
        if t.status == TaskStatus.ARCHIVED:
            continue

        parent = by_id.get(t.parent_id) if t.parent_id else None

        if current_list_id == DONE_LIST_ID:
            if t.status != TaskStatus.COMPLETED:
                continue
            if parent is not None and parent.status == TaskStatus.ACTIVE:
                continue
            out.append(t)
            continue

        if t.list_id == current_list_id and t.status == TaskStatus.ACTIVE:
            out.append(t)
            continue

        if (
            t.status == TaskStatus.COMPLETED
            and parent is not None
            and parent.status == TaskStatus.ACTIVE
            and parent.list_id == current_list_id
        ):
            out.append(t)

    return out


def task_tree(visible: Iterable[Task]) -> list[tuple[Task, list[Task]]]:
    """
    Group a visible projection into (root, children) pairs, each level sorted
    by sort_order. Children whose parent is not part of the projection are
    rendered as roots.
    """
    items = sorted(visible, key=lambda t: (t.sort_order, t.created_at))
    ids = {t.id for t in items}

    children: dict[str, list[Task]] = {}
    roots: list[Task] = []
    for t in items:
        if t.parent_id and t.parent_id in ids:
            children.setdefault(t.parent_id, []).append(t)
        else:
            roots.append(t)

    return [(r, children.get(r.id, [])) for r in roots]
