# src/entropy_focus/tasks/task_store.py

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace

from .ordering import move_within_bucket, next_sort_order
from .task_models import DONE_LIST_ID, INBOX_LIST_ID, Task, TaskStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class TaskStore:
    """
    In-memory authoritative task collection.

    Mutators are synchronous and never touch I/O; each one returns the tasks
    it changed so the caller can mirror them to durable storage.

    Invalid intents (unknown ids, archived targets) are silent no-ops that
    return None / []. The UI may race with stale ids during rapid interaction.

    Hierarchy is fixed at two levels: a project (is_project=True) owns
    subtasks through their parent_id; everything else sits at the root of a list.
    """

    def __init__(self, tasks: Iterable[Task] = (), *, clock: Clock = time.time) -> None:
        self._clock = clock
        self._tasks: dict[str, Task] = {}
        self.load(tasks)

    # ---- low-level helpers ----

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _put(self, task: Task) -> Task:
        self._tasks[task.id] = task
        return task

    @staticmethod
    def _clean_title(title: str) -> str:
        if not title or not title.strip():
            raise ValueError("title is required")
        return title.strip()

    @staticmethod
    def _clean_estimate(estimate: int) -> int:
        estimate = int(estimate)
        if estimate < 0:
            raise ValueError("estimate must be >= 0")
        return estimate

    def _new_task(
        self,
        *,
        list_id: str,
        title: str,
        estimate: int,
        parent_id: str | None,
        is_project: bool,
    ) -> Task:
        return Task(
            id=str(uuid.uuid4()),
            list_id=list_id,
            title=title,
            estimate=estimate,
            completed_pomodoros=0,
            failed_pomodoros=0,
            parent_id=parent_id,
            created_at=self._now_ms(),
            status=TaskStatus.ACTIVE,
            is_project=is_project,
            sort_order=next_sort_order(self._tasks.values(), list_id, parent_id),
        )

    # ---- queries ----

    def load(self, tasks: Iterable[Task]) -> None:
        """Replace the whole collection (used once, after reading durable storage)."""
        self._tasks = {t.id: t for t in tasks}

    def get(self, task_id: str | None) -> Task | None:
        if not task_id:
            return None
        return self._tasks.get(task_id)

    def all_tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def subtasks(self, project_id: str) -> list[Task]:
        return [
            t for t in self._tasks.values() if t.parent_id == project_id and t.status != TaskStatus.ARCHIVED
        ]

    def count_tasks(self) -> int:
        return len(self._tasks)

    # ---- mutators ----

    def add_task(self, list_id: str, title: str, estimate: int, parent_id: str | None = None) -> Task | None:
        title = self._clean_title(title)
        estimate = self._clean_estimate(estimate)

        if list_id == DONE_LIST_ID:
            list_id = INBOX_LIST_ID

        if parent_id:
            parent = self.get(parent_id)
            if parent is None or not parent.is_project or parent.status == TaskStatus.ARCHIVED:
                logger.warning("add_task ignored: parent %s is not a live project", parent_id)
                return None
            # Subtasks always live in their project's list.
            list_id = parent.list_id

        task = self._put(
            self._new_task(
                list_id=list_id,
                title=title,
                estimate=estimate,
                parent_id=parent_id or None,
                is_project=False,
            )
        )
        logger.debug(
            "Task added id=%s list=%s parent=%s sort_order=%s",
            task.id,
            task.list_id,
            task.parent_id,
            task.sort_order,
        )
        return task

    def add_project(self, list_id: str, title: str) -> Task:
        title = self._clean_title(title)
        if list_id == DONE_LIST_ID:
            list_id = INBOX_LIST_ID

        task = self._put(
            self._new_task(list_id=list_id, title=title, estimate=0, parent_id=None, is_project=True)
        )
        logger.debug("Project added id=%s list=%s sort_order=%s", task.id, task.list_id, task.sort_order)
        return task

    def update_task(self, task_id: str, title: str, estimate: int) -> Task | None:
        task = self.get(task_id)
        if task is None:
            logger.warning("update_task ignored: unknown id=%s", task_id)
            return None

        title = self._clean_title(title)
        # A project's own estimate is inert.
        estimate = 0 if task.is_project else self._clean_estimate(estimate)
        return self._put(replace(task, title=title, estimate=estimate))

    def toggle_completion(self, task_id: str) -> list[Task]:
        """
        Flip a task between active and completed, then run the parent cascade.

        Cascade rules:
        - completing the last open subtask completes its project;
        - un-completing a subtask never re-opens the project (one-way ratchet);
        - an active project cannot be completed by a toggle, only by the cascade;
          a completed project can be re-opened explicitly.

        Returns the toggled task and, when the cascade fired, its parent.
        """
        task = self.get(task_id)
        if task is None or task.status == TaskStatus.ARCHIVED:
            logger.warning("toggle_completion ignored: unknown or archived id=%s", task_id)
            return []

        if task.is_project and task.status == TaskStatus.ACTIVE:
            logger.debug("toggle_completion ignored: project %s completes via its subtasks", task_id)
            return []

        new_status = TaskStatus.ACTIVE if task.status == TaskStatus.COMPLETED else TaskStatus.COMPLETED
        changed = [self._put(replace(task, status=new_status))]

        parent = self._cascade_parent(changed[0])
        if parent is not None:
            changed.append(parent)
        return changed

    def _cascade_parent(self, child: Task) -> Task | None:
        if not child.parent_id or child.status != TaskStatus.COMPLETED:
            return None

        parent = self.get(child.parent_id)
        if parent is None or parent.status != TaskStatus.ACTIVE:
            return None

        siblings = self.subtasks(parent.id)
        if not all(s.status == TaskStatus.COMPLETED for s in siblings):
            return None

        logger.info("Project %s auto-completed (all %d subtasks done)", parent.id, len(siblings))
        return self._put(replace(parent, status=TaskStatus.COMPLETED))

    def archive(self, task_id: str) -> list[Task]:
        """
        Logical delete of a task and its direct subtasks (one level is enough:
        the hierarchy never goes deeper). Returns every task that changed.
        """
        if self.get(task_id) is None:
            logger.warning("archive ignored: unknown id=%s", task_id)
            return []

        changed: list[Task] = []
        for t in list(self._tasks.values()):
            if (t.id == task_id or t.parent_id == task_id) and t.status != TaskStatus.ARCHIVED:
                changed.append(self._put(replace(t, status=TaskStatus.ARCHIVED)))
        return changed

    def reorder(self, active_id: str, over_id: str) -> list[Task]:
        """Drag `active_id` onto `over_id`'s slot; [] when the drag is rejected."""
        updated = move_within_bucket(self._tasks.values(), active_id, over_id)
        return [self._put(t) for t in updated]

    def record_outcome(self, task_id: str, *, success: bool) -> Task | None:
        """Counter bump used only by the session machine's terminal transitions."""
        task = self.get(task_id)
        if task is None:
            logger.warning("record_outcome ignored: unknown id=%s", task_id)
            return None
        if success:
            return self._put(replace(task, completed_pomodoros=task.completed_pomodoros + 1))
        return self._put(replace(task, failed_pomodoros=task.failed_pomodoros + 1))
