# src/entropy_focus/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.controller import FocusController
from ..events.analytics import daily_counts, efficiency, reason_breakdown
from ..session.machine import SessionMode
from ..tasks.task_models import EntropyReason, Task, TaskStatus
from ..tasks.visibility import task_tree

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[FocusController, list[str]], str]
CommandHandler3 = Callable[[FocusController, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID = 6


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, /start, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        controller: FocusController,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(controller, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(controller, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _short(task: Task) -> str:
    return task.id[:SHORT_ID]


def resolve_task(controller: FocusController, ref: str) -> Task | None:
    """Find a live task by full id or by a unique id prefix."""
    ref = (ref or "").strip().lower()
    if not ref:
        return None

    live = [t for t in controller.state.tasks.all_tasks() if t.status != TaskStatus.ARCHIVED]
    exact = [t for t in live if t.id.lower() == ref]
    if exact:
        return exact[0]

    matches = [t for t in live if t.id.lower().startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    return None


def _split_estimate(args: list[str], default: int = 1) -> tuple[int, list[str]]:
    """Leading "<n>p" (pomodoros) sets the estimate; a bare number is part of the title."""
    if args:
        token = args[0].lower()
        if token.endswith("p") and token[:-1].isdigit():
            return int(token[:-1]), args[1:]
    return default, args


def _fmt_mmss(seconds: int) -> str:
    m, s = divmod(max(0, int(seconds)), 60)
    return f"{m:02d}:{s:02d}"


def format_task(task: Task) -> str:
    if task.is_project:
        box = "[P]" if task.status == TaskStatus.ACTIVE else "[P✓]"
        return f"{box} {task.title}  ({_short(task)})"

    box = "[x]" if task.status == TaskStatus.COMPLETED else "[ ]"
    line = f"{box} {task.title}  {task.completed_pomodoros}/{task.estimate}"
    if task.failed_pomodoros:
        line += f" !{task.failed_pomodoros}"
    return f"{line}  ({_short(task)})"


def format_timer(controller: FocusController) -> str:
    session = controller.state.session.session
    if session.mode == SessionMode.IDLE:
        return "Idle. Use /start <task> to begin a focus session."

    remaining = _fmt_mmss(controller.remaining_seconds())
    if session.mode == SessionMode.BREAK:
        return f"Break: {remaining} left."

    task = controller.active_task()
    title = task.title if task else session.task_id
    suffix = " (collapsing: choose a reason with /fail <reason>)" if session.collapsing else ""
    return f"Focus on '{title}': {remaining} left.{suffix}"


# ---- commands ----


def cmd_help(controller: FocusController, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_lists(controller: FocusController, args: list[str]) -> str:
    state = controller.state
    lines = ["Lists:"]
    for lst in state.lists:
        marker = "*" if lst.id == state.current_list_id else " "
        count = len(controller.visible_tasks(lst.id))
        lines.append(f" {marker} {lst.id:<10} {lst.name} ({count})")
    return "\n".join(lines)


def cmd_list(controller: FocusController, args: list[str]) -> str:
    if not args:
        return f"Current list: {controller.state.current_list_id}. Usage: /list <id>"
    if not controller.select_list(args[0]):
        return f"Unknown list: {args[0]}. Use /lists."
    return cmd_ls(controller, [])


def cmd_ls(controller: FocusController, args: list[str]) -> str:
    list_id = args[0] if args else controller.state.current_list_id
    tree = task_tree(controller.visible_tasks(list_id))
    if not tree:
        return f"{list_id}: nothing here."

    lines = [f"{list_id}:"]
    for root, children in tree:
        lines.append(f"  {format_task(root)}")
        for child in children:
            lines.append(f"      {format_task(child)}")
    return "\n".join(lines)


def cmd_add(controller: FocusController, args: list[str]) -> str:
    estimate, words = _split_estimate(args)
    title = " ".join(words).strip()
    if not title:
        return "Usage: /add [<n>p] <title>"
    task = controller.add_task(title, estimate)
    if task is None:
        return "Task was not added."
    return f"Added {format_task(task)} to {task.list_id}."


def cmd_sub(controller: FocusController, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /sub <project> [<n>p] <title>"
    project = resolve_task(controller, args[0])
    if project is None or not project.is_project:
        return f"No project matches '{args[0]}'."
    estimate, words = _split_estimate(args[1:])
    title = " ".join(words).strip()
    if not title:
        return "Usage: /sub <project> [<n>p] <title>"
    task = controller.add_task(title, estimate, project.id)
    if task is None:
        return "Subtask was not added."
    return f"Added {format_task(task)} under '{project.title}'."


def cmd_project(controller: FocusController, args: list[str]) -> str:
    title = " ".join(args).strip()
    if not title:
        return "Usage: /project <title>"
    project = controller.add_project(title)
    if project is None:
        return "Project was not added."
    return f"Created {format_task(project)}."


def cmd_edit(controller: FocusController, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <task> [<n>p] <title>"
    task = resolve_task(controller, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."
    estimate, words = _split_estimate(args[1:], default=task.estimate)
    title = " ".join(words).strip() or task.title
    updated = controller.update_task(task.id, title, estimate)
    return f"Updated {format_task(updated)}." if updated else "Task was not updated."


def cmd_toggle(controller: FocusController, args: list[str]) -> str:
    if not args:
        return "Usage: /toggle <task>"
    task = resolve_task(controller, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."
    changed = controller.toggle_completion(task.id)
    if not changed:
        if task.is_project:
            return "Projects complete when all their subtasks are done."
        return "Nothing changed."
    return "\n".join(format_task(t) for t in changed)


def cmd_rm(controller: FocusController, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <task>"
    task = resolve_task(controller, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."
    changed = controller.archive(task.id)
    return f"Archived {len(changed)} task(s)."


def cmd_move(controller: FocusController, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /move <task> <onto-task>"
    active = resolve_task(controller, args[0])
    over = resolve_task(controller, args[1])
    if active is None or over is None:
        return "Both tasks must exist."
    if not controller.reorder(active.id, over.id):
        return "Tasks are not siblings; nothing moved."
    return cmd_ls(controller, [active.list_id])


def cmd_start(controller: FocusController, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /start <task>"
    task = resolve_task(controller, args[0])
    if task is None:
        return f"No task matches '{args[0]}'."
    if controller.start_task(task.id) is None:
        if controller.state.session.mode != SessionMode.IDLE:
            return "A session is already running. " + format_timer(controller)
        return f"'{task.title}' cannot be started."
    return format_timer(controller)


def cmd_done(controller: FocusController, args: list[str]) -> str:
    result = controller.complete_pomodoro()
    if result is None:
        if controller.state.session.session.collapsing:
            return "Failure pending. Pick a reason with /fail or keep going with /release."
        return "No focus session to complete."
    return f"Crystallized '{result.task.title if result.task else ''}'. " + format_timer(controller)


def cmd_hold(controller: FocusController, args: list[str]) -> str:
    if controller.request_failure() is None:
        return "No focus session to give up."
    reasons = ", ".join(r.value for r in EntropyReason)
    return f"Session collapsing. Pick a reason with /fail <{reasons}> or /release to keep going."


def cmd_release(controller: FocusController, args: list[str]) -> str:
    if controller.cancel_failure() is None:
        return "Nothing to release."
    return format_timer(controller)


def cmd_fail(controller: FocusController, args: list[str]) -> str:
    reasons = [r.value for r in EntropyReason]
    if not args or args[0].lower() not in reasons:
        return f"Usage: /fail <{'|'.join(reasons)}>"
    controller.request_failure()
    result = controller.fail_session(args[0].lower())
    if result is None:
        return "No focus session to fail."
    return f"Entropy logged ({args[0].lower()}) for '{result.task.title if result.task else ''}'."


def cmd_break(controller: FocusController, args: list[str]) -> str:
    if controller.finish_break() is None:
        return "Not on a break."
    return "Break finished."


def cmd_timer(controller: FocusController, args: list[str]) -> str:
    return format_timer(controller)


def cmd_stats(controller: FocusController, args: list[str]) -> str:
    entries = controller.state.log.entries()
    lines = [f"Efficiency: {efficiency(entries)}%"]
    for day in daily_counts(entries, days=7):
        lines.append(f"  {day.day}  +{day.crystallized}  -{day.entropy}")
    reasons = reason_breakdown(entries)
    lines.append("Entropy reasons: " + ", ".join(f"{r.value}={n}" for r, n in reasons.items()))
    return "\n".join(lines)


def cmd_log(controller: FocusController, args: list[str]) -> str:
    try:
        limit = int(args[0]) if args else 10
    except ValueError:
        limit = 10
    entries = controller.state.log.entries()[-max(1, limit):]
    if not entries:
        return "Log is empty."
    lines = []
    for e in entries:
        ts = datetime.fromtimestamp(e.timestamp / 1000).astimezone().strftime("%Y-%m-%d %H:%M")
        reason = f" ({e.entropy_reason.value})" if e.entropy_reason else ""
        lines.append(f"{ts}  {e.type.value:<15} {e.task_title}{reason}")
    return "\n".join(lines)


def cmd_set(controller: FocusController, args: list[str]) -> str:
    """
    /set focus <minutes>
    /set break <minutes>
    """
    if len(args) < 2 or not args[1].isdigit() or int(args[1]) <= 0:
        return "Usage: /set focus|break <minutes>"
    field = {"focus": "pomodoro_duration", "break": "break_duration"}.get(args[0].lower())
    if field is None:
        return "Usage: /set focus|break <minutes>"
    controller.update_settings(**{field: int(args[1])})
    return cmd_status(controller, [])


def cmd_status(controller: FocusController, args: list[str]) -> str:
    us = controller.state.user_settings
    return (
        "Status:\n"
        f"  List: {controller.state.current_list_id}\n"
        f"  Focus: {us.pomodoro_duration} min, break: {us.break_duration} min\n"
        f"  Session: {format_timer(controller)}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("lists", cmd_lists, help_text="Show lists.")
registry.register("list", cmd_list, help_text="Switch list: /list <id>.")
registry.register("ls", cmd_ls, help_text="Show tasks of the current list.")
registry.register("add", cmd_add, help_text="Add a task: /add [<n>p] <title>.")
registry.register("sub", cmd_sub, help_text="Add a subtask: /sub <project> [<n>p] <title>.")
registry.register("project", cmd_project, help_text="Create a project: /project <title>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <task> [<n>p] <title>.")
registry.register("toggle", cmd_toggle, help_text="Complete / reopen a task: /toggle <task>.", aliases=["x"])
registry.register("rm", cmd_rm, help_text="Archive a task (and its subtasks): /rm <task>.")
registry.register("move", cmd_move, help_text="Reorder siblings: /move <task> <onto-task>.")
registry.register("start", cmd_start, help_text="Start a focus session: /start <task>.")
registry.register("done", cmd_done, help_text="Complete the focus session now.")
registry.register("hold", cmd_hold, help_text="Begin giving up the focus session.")
registry.register("release", cmd_release, help_text="Keep going after /hold.")
registry.register("fail", cmd_fail, help_text="Give up: /fail internal|external|cognitive.")
registry.register("break", cmd_break, help_text="Finish the break.")
registry.register("timer", cmd_timer, help_text="Show remaining time.", aliases=["t"])
registry.register("stats", cmd_stats, help_text="Efficiency and the last 7 days.")
registry.register("log", cmd_log, help_text="Show recent events: /log [n].")
registry.register("set", cmd_set, help_text="Set durations: /set focus|break <minutes>.")
registry.register("status", cmd_status, help_text="Show current settings and session.")
