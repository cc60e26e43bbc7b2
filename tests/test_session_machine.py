# tests/test_session_machine.py

from __future__ import annotations

from dataclasses import replace

from entropy_focus.core.state import AppState
from entropy_focus.session.machine import SessionMode
from entropy_focus.tasks.task_models import EntropyReason, LogType

from .fakes import FakeClock


def _log_types(state: AppState) -> list[LogType]:
    return [e.type for e in state.log.entries()]


def test_start_then_complete_counts_exactly_once(state: AppState) -> None:
    task = state.tasks.add_task("inbox", "write", 2)
    machine = state.session

    assert machine.start_task(task.id) is not None
    assert machine.complete_pomodoro() is not None
    # Later callers find the machine already on break.
    assert machine.complete_pomodoro() is None
    assert machine.complete_pomodoro() is None

    assert state.tasks.get(task.id).completed_pomodoros == 1
    assert _log_types(state).count(LogType.CRYSTALLIZATION) == 1
    assert _log_types(state) == [LogType.START, LogType.CRYSTALLIZATION]
    assert machine.mode == SessionMode.BREAK
    assert machine.session.task_id is None
    assert machine.session.duration_seconds == 5 * 60


def test_expiry_latch_lets_one_observer_win(state: AppState, clock: FakeClock) -> None:
    task = state.tasks.add_task("inbox", "write", 1)
    machine = state.session
    machine.start_task(task.id)

    assert machine.claim_expiry() is False
    clock.advance(25 * 60)

    wins = [machine.claim_expiry() for _ in range(5)]
    assert wins == [True, False, False, False, False]

    for won in wins:
        if won:
            machine.complete_pomodoro()
    assert state.tasks.get(task.id).completed_pomodoros == 1

    # Entering break re-arms the latch.
    assert machine.claim_expiry() is False
    clock.advance(5 * 60)
    assert machine.claim_expiry() is True
    assert machine.claim_expiry() is False


def test_remaining_time_is_recomputed_from_wall_clock(state: AppState, clock: FakeClock) -> None:
    task = state.tasks.add_task("inbox", "write", 1)
    machine = state.session
    machine.start_task(task.id)

    assert machine.remaining_seconds() == 25 * 60
    clock.advance(61.5)
    assert machine.remaining_seconds() == 25 * 60 - 61
    # A long suspension just clamps to zero.
    clock.advance(3600)
    assert machine.remaining_seconds() == 0
    assert machine.is_expired()


def test_fail_session_records_entropy_and_returns_idle(state: AppState, clock: FakeClock) -> None:
    task = state.tasks.add_task("inbox", "write", 1)
    machine = state.session
    machine.start_task(task.id)
    clock.advance(120)

    result = machine.fail_session("external")

    assert result is not None
    assert state.tasks.get(task.id).failed_pomodoros == 1
    entropy = [e for e in state.log.entries() if e.type == LogType.ENTROPY]
    assert len(entropy) == 1
    assert entropy[0].entropy_reason == EntropyReason.EXTERNAL
    assert entropy[0].duration == 120
    assert machine.mode == SessionMode.IDLE
    assert machine.session.task_id is None


def test_collapsing_substate(state: AppState) -> None:
    task = state.tasks.add_task("inbox", "write", 1)
    machine = state.session
    machine.start_task(task.id)

    assert machine.request_failure() is not None
    assert machine.session.collapsing
    assert machine.request_failure() is None

    assert machine.cancel_failure() is not None
    assert not machine.session.collapsing
    assert machine.mode == SessionMode.FOCUS

    machine.request_failure()
    assert machine.fail_session(EntropyReason.COGNITIVE) is not None
    assert machine.mode == SessionMode.IDLE


def test_unknown_reason_is_ignored(state: AppState) -> None:
    task = state.tasks.add_task("inbox", "write", 1)
    machine = state.session
    machine.start_task(task.id)

    assert machine.fail_session("boredom") is None
    assert machine.mode == SessionMode.FOCUS
    assert state.tasks.get(task.id).failed_pomodoros == 0


def test_idle_only_accepts_start(state: AppState) -> None:
    machine = state.session
    assert machine.complete_pomodoro() is None
    assert machine.fail_session("internal") is None
    assert machine.finish_break() is None
    assert machine.request_failure() is None
    assert machine.cancel_failure() is None
    assert machine.claim_expiry() is False
    assert machine.remaining_seconds() == 0
    assert len(state.log) == 0


def test_start_is_ignored_unless_idle_or_actionable(state: AppState) -> None:
    first = state.tasks.add_task("inbox", "first", 1)
    second = state.tasks.add_task("inbox", "second", 1)
    project = state.tasks.add_project("inbox", "p")
    machine = state.session

    assert machine.start_task(project.id) is None
    assert machine.start_task("missing") is None
    assert machine.mode == SessionMode.IDLE

    machine.start_task(first.id)
    assert machine.start_task(second.id) is None
    assert machine.session.task_id == first.id
    assert _log_types(state) == [LogType.START]


def test_finish_break_returns_idle_without_logging(state: AppState) -> None:
    task = state.tasks.add_task("inbox", "write", 1)
    machine = state.session
    machine.start_task(task.id)
    machine.complete_pomodoro()
    before = len(state.log)

    assert machine.finish_break() is not None
    assert machine.mode == SessionMode.IDLE
    assert len(state.log) == before
    assert state.tasks.get(task.id).completed_pomodoros == 1


def test_settings_change_applies_to_next_session(state: AppState) -> None:
    task = state.tasks.add_task("inbox", "write", 1)
    state.user_settings = replace(state.user_settings, pomodoro_duration=50, break_duration=10)

    state.session.start_task(task.id)
    assert state.session.session.duration_seconds == 50 * 60
    state.session.complete_pomodoro()
    assert state.session.session.duration_seconds == 10 * 60


def test_expiry_while_collapsing_waits_for_the_reason(state: AppState, clock: FakeClock) -> None:
    task = state.tasks.add_task("inbox", "write", 1)
    machine = state.session
    machine.start_task(task.id)
    clock.advance(25 * 60 - 2)
    machine.request_failure()
    clock.advance(3)

    assert machine.is_expired()
    assert machine.claim_expiry() is False
    assert machine.complete_pomodoro() is None
    assert machine.mode == SessionMode.FOCUS

    assert machine.fail_session("external") is not None
    current = state.tasks.get(task.id)
    assert (current.completed_pomodoros, current.failed_pomodoros) == (0, 1)
    assert _log_types(state) == [LogType.START, LogType.ENTROPY]
    assert state.log.entries()[-1].entropy_reason == EntropyReason.EXTERNAL


def test_expiry_is_claimable_after_release(state: AppState, clock: FakeClock) -> None:
    task = state.tasks.add_task("inbox", "write", 1)
    machine = state.session
    machine.start_task(task.id)
    machine.request_failure()
    clock.advance(25 * 60 + 5)

    assert machine.claim_expiry() is False
    machine.cancel_failure()

    assert machine.claim_expiry() is True
    assert machine.claim_expiry() is False
    assert machine.complete_pomodoro() is not None
    assert state.tasks.get(task.id).completed_pomodoros == 1
