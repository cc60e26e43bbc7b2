# tests/test_commands.py

from __future__ import annotations

from entropy_focus.cli.commands import CommandRegistry, registry, resolve_task
from entropy_focus.core.controller import FocusController
from entropy_focus.session.machine import SessionMode
from entropy_focus.tasks.task_models import TaskStatus


def test_command_registry_routes_2_and_3_params(controller: FocusController) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(controller, args):
        called["h2"] += 1
        return "h2"

    def h3(controller, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert reg.handle(controller, "/a x") == "h2"
    assert reg.handle(controller, "/BEE y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(controller: FocusController) -> None:
    reg = CommandRegistry()
    assert reg.handle(controller, "hello") is None
    assert "Unknown command" in (reg.handle(controller, "/nope") or "")
    assert "Empty command" in (reg.handle(controller, "/") or "")


def test_help_lists_registered_commands(controller: FocusController) -> None:
    text = registry.handle(controller, "/help") or ""
    for name in ("/add", "/start", "/fail", "/stats"):
        assert name in text


def test_add_and_ls(controller: FocusController) -> None:
    reply = registry.handle(controller, "/add 3p write the report") or ""
    assert "write the report" in reply
    assert "0/3" in reply

    (task,) = controller.state.tasks.all_tasks()
    assert task.estimate == 3
    assert "write the report" in (registry.handle(controller, "/ls") or "")
    assert "Usage" in (registry.handle(controller, "/add") or "")


def test_project_and_subtask_by_id_prefix(controller: FocusController) -> None:
    registry.handle(controller, "/project launch")
    project = next(t for t in controller.state.tasks.all_tasks() if t.is_project)

    reply = registry.handle(controller, f"/sub {project.id[:8]} 2p draft") or ""
    assert "under 'launch'" in reply

    sub = next(t for t in controller.state.tasks.all_tasks() if not t.is_project)
    assert sub.parent_id == project.id
    assert resolve_task(controller, project.id.upper()) == project
    assert resolve_task(controller, "") is None


def test_focus_flow_through_commands(controller: FocusController) -> None:
    task = controller.add_task("write", 1)

    assert "Focus on 'write'" in (registry.handle(controller, f"/start {task.id}") or "")
    assert "already running" in (registry.handle(controller, f"/start {task.id}") or "")
    assert "Crystallized" in (registry.handle(controller, "/done") or "")
    assert controller.state.session.mode == SessionMode.BREAK
    assert "Break finished" in (registry.handle(controller, "/break") or "")
    assert controller.state.tasks.get(task.id).completed_pomodoros == 1


def test_hold_release_and_fail(controller: FocusController) -> None:
    task = controller.add_task("write", 1)
    registry.handle(controller, f"/start {task.id}")

    assert "collapsing" in (registry.handle(controller, "/hold") or "")
    assert "Focus on" in (registry.handle(controller, "/release") or "")
    assert "Usage" in (registry.handle(controller, "/fail boredom") or "")

    reply = registry.handle(controller, "/fail external") or ""
    assert "Entropy logged (external)" in reply
    assert controller.state.tasks.get(task.id).failed_pomodoros == 1
    assert controller.state.session.mode == SessionMode.IDLE


def test_toggle_project_explains_cascade(controller: FocusController) -> None:
    project = controller.add_project("launch")
    controller.add_task("step", 1, project.id)

    reply = registry.handle(controller, f"/toggle {project.id}") or ""
    assert "subtasks" in reply
    assert controller.state.tasks.get(project.id).status == TaskStatus.ACTIVE


def test_rm_archives_project_and_children(controller: FocusController) -> None:
    project = controller.add_project("launch")
    controller.add_task("step", 1, project.id)

    assert "Archived 2 task(s)" in (registry.handle(controller, f"/rm {project.id}") or "")
    assert "nothing here" in (registry.handle(controller, "/ls") or "")


def test_move_rejects_non_siblings(controller: FocusController) -> None:
    a = controller.add_task("a", 1)
    b = controller.add_task("b", 1)
    project = controller.add_project("p")
    sub = controller.add_task("s", 1, project.id)

    assert "not siblings" in (registry.handle(controller, f"/move {sub.id} {a.id}") or "")
    reply = registry.handle(controller, f"/move {b.id} {a.id}") or ""
    assert reply.index("] b") < reply.index("] a")


def test_list_switching(controller: FocusController) -> None:
    assert "Unknown list" in (registry.handle(controller, "/list nowhere") or "")
    assert "work: nothing here." == registry.handle(controller, "/list work")
    assert controller.state.current_list_id == "work"
    assert "* work" in (registry.handle(controller, "/lists") or "")


def test_set_updates_durations(controller: FocusController, store) -> None:
    reply = registry.handle(controller, "/set focus 40") or ""
    assert "Focus: 40 min" in reply
    assert store.settings.pomodoro_duration == 40
    assert "Usage" in (registry.handle(controller, "/set nap 5") or "")
    assert "Usage" in (registry.handle(controller, "/set focus 0") or "")


def test_stats_and_log(controller: FocusController) -> None:
    assert "Efficiency: 100%" in (registry.handle(controller, "/stats") or "")
    assert registry.handle(controller, "/log") == "Log is empty."

    task = controller.add_task("write", 1)
    registry.handle(controller, f"/start {task.id}")
    registry.handle(controller, "/fail cognitive")

    stats = registry.handle(controller, "/stats") or ""
    assert "Efficiency: 0%" in stats
    assert "cognitive=1" in stats
    log = registry.handle(controller, "/log 2") or ""
    assert "start" in log and "entropy" in log
    assert "creation" not in log


def test_bare_leading_number_stays_in_the_title(controller: FocusController) -> None:
    registry.handle(controller, "/add 2025 plans")
    registry.handle(controller, "/add 4P deep work")

    by_title = {t.title: t for t in controller.state.tasks.all_tasks()}
    assert by_title["2025 plans"].estimate == 1
    assert by_title["deep work"].estimate == 4

    task = by_title["2025 plans"]
    registry.handle(controller, f"/edit {task.id} 2p 2025 plans")
    assert controller.state.tasks.get(task.id).estimate == 2


def test_done_while_collapsing_points_to_fail_or_release(controller: FocusController) -> None:
    task = controller.add_task("write", 1)
    registry.handle(controller, f"/start {task.id}")
    registry.handle(controller, "/hold")

    assert "Failure pending" in (registry.handle(controller, "/done") or "")
    assert controller.state.tasks.get(task.id).completed_pomodoros == 0
    assert controller.state.session.mode == SessionMode.FOCUS
