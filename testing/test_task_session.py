"""Tests for the timed spreadsheet task session."""

from datetime import datetime, timedelta, timezone

import pytest

from excel_assessment.catalog import SAMPLE_DATA, TASKS
from excel_assessment.events import EvaluationCompleted, SubmitResponse, TimerTick
from excel_assessment.models import ActionKind, Evaluation, Stage
from excel_assessment.session import SpreadsheetTaskSession, cell_name, parse_cell


class FakeEvaluator:
    """Evaluator stub that remembers what each task was scored on."""

    def __init__(self, score: int = 7) -> None:
        self.score = score
        self.calls = []

    def evaluate_task(self, task, actions, grid, api_key):
        self.calls.append({"task": task.id, "actions": actions, "grid": grid, "key": api_key})
        return Evaluation(score=self.score, justification="checked")


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_session(score: int = 7):
    clock = FakeClock()
    evaluator = FakeEvaluator(score=score)
    session = SpreadsheetTaskSession(evaluator, clock=clock)
    return session, evaluator, clock


def tick_for(session, clock, seconds: int) -> None:
    for _ in range(seconds):
        clock.advance(1)
        session.tick()


def test_start_arms_timer_with_first_limit():
    session, _, _ = make_session()

    session.start("key")

    assert session.state.stage is Stage.ACTIVE
    assert session.state.remaining_seconds == TASKS[0].time_limit == 180
    assert session.state.grid == [list(row) for row in SAMPLE_DATA]


def test_expiry_closes_task_once_and_rearms_timer():
    session, evaluator, clock = make_session()
    session.start("key")

    tick_for(session, clock, 179)
    assert session.state.records == []
    assert session.state.remaining_seconds == 1

    tick_for(session, clock, 1)

    assert len(session.state.records) == 1
    assert session.state.records[0].elapsed_seconds == 180
    assert len(evaluator.calls) == 1
    assert session.state.item_index == 1
    assert session.state.remaining_seconds == TASKS[1].time_limit


def test_submit_then_expiry_produces_single_record():
    session, _, clock = make_session()
    session.start("key")
    tick_for(session, clock, 179)

    request = session.dispatch(SubmitResponse())
    assert request is not None
    clock.advance(1)
    assert session.dispatch(TimerTick()) is None
    assert session.state.remaining_seconds == 0
    assert session.dispatch(SubmitResponse()) is None

    session.dispatch(
        EvaluationCompleted(
            session_id=request.session_id,
            item_index=0,
            evaluation=Evaluation(score=9, justification="done"),
        )
    )

    assert len(session.state.records) == 1
    assert session.state.item_index == 1
    assert session.state.remaining_seconds == 300


def test_expiry_then_submit_produces_single_record():
    session, _, clock = make_session()
    session.start("key")
    for _ in range(179):
        session.dispatch(TimerTick())

    request = session.dispatch(TimerTick())
    assert request is not None
    assert session.dispatch(SubmitResponse()) is None

    session.resolve(request)

    assert len(session.state.records) == 1
    assert session.state.item_index == 1


def test_cell_edits_are_logged_with_kinds_and_update_grid():
    session, _, clock = make_session()
    session.start("key")

    clock.advance(5)
    session.edit_cell("E2", "P002")
    session.edit_cell("F2", "=VLOOKUP(E2,A:B,2,FALSE)")
    session.edit_cell("c3", "31.99")
    session.edit_cell("C3", "31.99")  # unchanged, not logged

    kinds = [(a.cell, a.kind) for a in session.state.actions]
    assert kinds == [
        ("E2", ActionKind.EDIT),
        ("F2", ActionKind.FORMULA_ENTRY),
        ("C3", ActionKind.DATA_CHANGE),
    ]
    assert session.state.actions[2].old_value == "29.99"
    assert session.state.grid[1][4] == "P002"
    assert session.state.grid[1][5] == "=VLOOKUP(E2,A:B,2,FALSE)"
    assert session.state.grid[2][2] == "31.99"


def test_edit_beyond_grid_grows_it():
    session, _, _ = make_session()
    session.start("key")

    session.edit_cell("I12", "=COUNTA(A2:A9)")

    assert len(session.state.grid) == 12
    assert session.state.grid[11][8] == "=COUNTA(A2:A9)"
    assert session.state.grid[11][:8] == [""] * 8


def test_each_task_only_sees_its_own_actions():
    session, evaluator, clock = make_session()
    session.start("key")

    clock.advance(10)
    session.edit_cell("F2", "=VLOOKUP(E2,A:B,2,FALSE)")
    clock.advance(10)
    session.submit()

    clock.advance(10)
    session.edit_cell("E2", "P003")
    clock.advance(10)
    session.submit()

    first, second = evaluator.calls
    assert [a.cell for a in first["actions"]] == ["F2"]
    assert [a.cell for a in second["actions"]] == ["E2"]
    assert second["grid"][1][5] == "=VLOOKUP(E2,A:B,2,FALSE)"
    assert [a.cell for a in session.state.records[1].response] == ["E2"]
    assert session.state.records[0].elapsed_seconds == 20


def test_edits_outside_active_stage_are_ignored():
    session, _, _ = make_session()

    session.edit_cell("A1", "changed")

    assert session.state.actions == []
    assert session.state.grid[0][0] == "Product ID"


def test_full_run_by_expiry_reaches_report():
    session, evaluator, clock = make_session(score=6)
    session.start("key")

    for task in TASKS:
        tick_for(session, clock, task.time_limit)

    report = session.report()
    assert session.state.stage is Stage.REPORT
    assert session.state.remaining_seconds == 0
    assert len(session.state.records) == len(TASKS)
    assert report.total_seconds == sum(t.time_limit for t in TASKS)
    assert all(row.passed for row in report.rows)
    assert report.rows[0].response == "(no spreadsheet actions)"

    session.tick()
    assert len(evaluator.calls) == len(TASKS)


def test_reset_restores_sample_grid():
    session, _, _ = make_session()
    session.start("key")
    session.edit_cell("A2", "X999")

    session.reset()

    assert session.state.grid[1][0] == "P001"
    assert session.state.actions == []
    assert session.state.remaining_seconds == 0


def test_invalid_cell_reference_raises():
    session, _, _ = make_session()
    session.start("key")

    with pytest.raises(ValueError):
        session.edit_cell("2F", "x")


def test_cell_name_round_trips_multi_letter_columns():
    assert cell_name(0, 0) == "A1"
    assert cell_name(9, 26) == "AA10"
    assert parse_cell("AA10") == (9, 26)
    assert parse_cell(" f2 ") == (1, 5)
