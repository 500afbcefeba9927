"""Assessment session controllers.

Both assessments run the same state machine (welcome -> active -> report).
Every input, whether a button press, a timer tick or a finished evaluation,
is an event fed to `dispatch`. Closing an item does not call the evaluator
directly: `dispatch` returns an `EvaluationRequest`, and the result comes back
later as an `EvaluationCompleted` event. Ticks, flags and edits can arrive in
between; the `loading` guard keeps an item from closing twice.

`run` (and the `start`/`submit`/`tick` helpers) resolve requests inline for
callers that are happy to block on the evaluator.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from excel_assessment.catalog import QUESTIONS, TASKS, sample_grid
from excel_assessment.events import (
    CellEdited,
    EvaluationCompleted,
    EvaluationRequest,
    Event,
    PasteDetected,
    ResetSession,
    StartSession,
    SubmitResponse,
    TimerTick,
    VisibilityChanged,
)
from excel_assessment.models import (
    ActionKind,
    CellAction,
    Evaluation,
    FlagKind,
    IntegrityFlag,
    Item,
    Question,
    ResponseRecord,
    SessionState,
    SpreadsheetTask,
    Stage,
)
from excel_assessment.report import AssessmentReport, build_report, round_half_up
from excel_assessment.services.evaluator import TRANSPORT_FAILURE

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_CELL_REF = re.compile(r"^([A-Z]+)([1-9][0-9]*)$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def cell_name(row: int, col: int) -> str:
    """Zero-based grid coordinates to an A1-style reference."""
    if row < 0 or col < 0:
        raise ValueError(f"Negative cell coordinates: ({row}, {col})")
    letters = ""
    n = col + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(65 + rem) + letters
    return f"{letters}{row + 1}"


def parse_cell(ref: str) -> tuple[int, int]:
    """A1-style reference to zero-based (row, col)."""
    match = _CELL_REF.match(ref.strip().upper())
    if not match:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    col = 0
    for ch in match.group(1):
        col = col * 26 + (ord(ch) - 64)
    return int(match.group(2)) - 1, col - 1


class SessionController(ABC):
    """Shared lifecycle for question and spreadsheet assessments."""

    timed = False

    def __init__(self, items: Sequence[Item], evaluator, clock: Clock = utcnow):
        if not items:
            raise ValueError("An assessment needs at least one item")
        self.items = tuple(items)
        self.evaluator = evaluator
        self.clock = clock
        self.state = self._fresh_state()
        self._pending: Optional[EvaluationRequest] = None
        self._handlers = {
            StartSession: self._on_start,
            SubmitResponse: self._on_submit,
            TimerTick: self._on_tick,
            EvaluationCompleted: self._on_evaluation_completed,
            VisibilityChanged: self._on_visibility_changed,
            PasteDetected: self._on_paste,
            CellEdited: self._on_cell_edited,
            ResetSession: self._on_reset,
        }

    # ---- read-only views ------------------------------------------------

    @property
    def current_item(self) -> Optional[Item]:
        if self.state.stage is not Stage.ACTIVE:
            return None
        return self.items[self.state.item_index]

    @property
    def progress(self) -> float:
        if self.state.stage is Stage.REPORT:
            return 1.0
        if self.state.stage is Stage.WELCOME:
            return 0.0
        return (self.state.item_index + 1) / len(self.items)

    def report(self) -> AssessmentReport:
        return build_report(self.state, per_item_time=self.timed)

    # ---- transition function --------------------------------------------

    def dispatch(self, event: Event) -> Optional[EvaluationRequest]:
        """Apply one event. Returns a request when an item has just closed."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event: {type(event).__name__}")
        return handler(event)

    def _on_start(self, event: StartSession) -> None:
        s = self.state
        if s.stage is not Stage.WELCOME:
            log.debug(f"Start ignored in stage {s.stage.value}")
            return None
        key = (event.api_key or s.api_key or "").strip()
        if not key:
            s.awaiting_credential = True
            log.info("Start blocked: API key required")
            return None

        now = self.clock()
        s.api_key = key
        s.awaiting_credential = False
        s.stage = Stage.ACTIVE
        s.item_index = 0
        s.started_at = now
        self._begin_item(now)
        log.info(f"Session {s.session_id[:8]} started with {len(self.items)} items")
        return None

    def _on_submit(self, event: SubmitResponse) -> Optional[EvaluationRequest]:
        return self._close_item(event.answer, reason="submit")

    def _on_tick(self, event: TimerTick) -> Optional[EvaluationRequest]:
        return None

    def _on_cell_edited(self, event: CellEdited) -> None:
        log.debug("Cell edit ignored: this assessment has no grid")
        return None

    def _on_evaluation_completed(self, event: EvaluationCompleted) -> None:
        s = self.state
        pending = self._pending
        if (
            pending is None
            or s.stage is not Stage.ACTIVE
            or event.session_id != s.session_id
            or event.item_index != s.item_index
        ):
            log.warning(f"Dropping stale evaluation for item {event.item_index + 1}")
            return None

        item = self.items[s.item_index]
        s.records.append(
            ResponseRecord(
                item_index=s.item_index,
                item_id=item.id,
                prompt=item.prompt,
                response=pending.response,
                score=event.evaluation.score,
                justification=event.evaluation.justification,
                elapsed_seconds=pending.elapsed_seconds,
            )
        )
        self._pending = None
        s.loading = False
        log.info(
            f"Item {s.item_index + 1}/{len(self.items)} scored "
            f"{event.evaluation.score}/10"
        )

        now = self.clock()
        if s.item_index < len(self.items) - 1:
            s.item_index += 1
            self._begin_item(now)
        else:
            s.stage = Stage.REPORT
            s.finished_at = now
            s.remaining_seconds = 0
            log.info(f"Session {s.session_id[:8]} complete")
        return None

    def _on_visibility_changed(self, event: VisibilityChanged) -> None:
        if event.hidden:
            self._flag(FlagKind.TAB_SWITCH)
        return None

    def _on_paste(self, event: PasteDetected) -> None:
        self._flag(FlagKind.PASTE)
        return None

    def _on_reset(self, event: ResetSession) -> None:
        if self._pending is not None:
            log.info("Reset with an evaluation in flight; its result will be dropped")
        self._pending = None
        self.state = self._fresh_state()
        log.info("Session reset")
        return None

    # ---- helpers ----------------------------------------------------------

    def _fresh_state(self) -> SessionState:
        return SessionState()

    def _begin_item(self, now: datetime) -> None:
        self.state.item_started_at = now

    def _close_item(self, answer: Optional[str], reason: str) -> Optional[EvaluationRequest]:
        s = self.state
        if s.stage is not Stage.ACTIVE:
            log.debug(f"{reason} ignored in stage {s.stage.value}")
            return None
        if s.loading:
            log.debug(f"{reason} ignored: item {s.item_index + 1} is already being evaluated")
            return None
        response = self._capture_response(answer)
        if response is None:
            return None

        elapsed = round_half_up((self.clock() - s.item_started_at).total_seconds())
        s.loading = True
        self._pending = EvaluationRequest(
            session_id=s.session_id,
            item_index=s.item_index,
            item=self.items[s.item_index],
            response=response,
            elapsed_seconds=max(0, elapsed),
            grid=tuple(tuple(row) for row in s.grid),
        )
        log.info(f"Item {s.item_index + 1}/{len(self.items)} closed by {reason}")
        return self._pending

    def _flag(self, kind: FlagKind) -> None:
        if self.state.stage is not Stage.ACTIVE:
            log.debug(f"{kind.value} outside an active session, not flagged")
            return
        self.state.flags.append(IntegrityFlag(kind=kind, timestamp=self.clock()))
        log.info(f"Integrity flag: {kind.value}")

    @abstractmethod
    def _capture_response(self, answer: Optional[str]):
        """Return what gets evaluated for the current item."""

    @abstractmethod
    def _evaluate(self, request: EvaluationRequest) -> Evaluation:
        """Score a closed item. May block."""

    # ---- blocking conveniences ----------------------------------------------

    def resolve(self, request: EvaluationRequest) -> None:
        """Call the evaluator for `request` and feed the result back."""
        try:
            evaluation = self._evaluate(request)
        except Exception:
            log.exception(f"Evaluator crashed on item {request.item_index + 1}")
            evaluation = Evaluation(score=0, justification=TRANSPORT_FAILURE)
        self.dispatch(
            EvaluationCompleted(
                session_id=request.session_id,
                item_index=request.item_index,
                evaluation=evaluation,
            )
        )

    def run(self, event: Event) -> None:
        request = self.dispatch(event)
        if request is not None:
            self.resolve(request)

    def start(self, api_key: Optional[str] = None) -> bool:
        self.run(StartSession(api_key=api_key))
        return self.state.stage is Stage.ACTIVE

    def submit(self, answer: Optional[str] = None) -> None:
        self.run(SubmitResponse(answer=answer))

    def tick(self) -> None:
        self.run(TimerTick())

    def edit_cell(self, cell: str, value: str) -> None:
        self.run(CellEdited(cell=cell, value=value))

    def report_visibility(self, hidden: bool) -> None:
        self.run(VisibilityChanged(hidden=hidden))

    def report_paste(self) -> None:
        self.run(PasteDetected())

    def reset(self) -> None:
        self.run(ResetSession())


class QuestionSession(SessionController):
    """Open-ended questions, one free-text answer each."""

    def __init__(self, evaluator, questions: Sequence[Question] = QUESTIONS, clock: Clock = utcnow):
        super().__init__(questions, evaluator, clock=clock)

    def _capture_response(self, answer: Optional[str]) -> Optional[str]:
        if answer is None or not answer.strip():
            log.debug("Blank answer not submitted")
            return None
        return answer

    def _evaluate(self, request: EvaluationRequest) -> Evaluation:
        return self.evaluator.evaluate_answer(request.item, request.response, self.state.api_key)


class SpreadsheetTaskSession(SessionController):
    """Timed tasks performed on an editable grid.

    The response for a task is every cell action recorded since the task
    started. The grid carries over from one task to the next.
    """

    timed = True

    def __init__(
        self,
        evaluator,
        tasks: Sequence[SpreadsheetTask] = TASKS,
        clock: Clock = utcnow,
        grid: Optional[Sequence[Sequence[str]]] = None,
    ):
        self._seed = [list(row) for row in grid] if grid is not None else None
        super().__init__(tasks, evaluator, clock=clock)

    def _fresh_state(self) -> SessionState:
        grid = [list(row) for row in self._seed] if self._seed is not None else sample_grid()
        return SessionState(grid=grid)

    def _begin_item(self, now: datetime) -> None:
        super()._begin_item(now)
        self.state.remaining_seconds = self.items[self.state.item_index].time_limit

    def _on_tick(self, event: TimerTick) -> Optional[EvaluationRequest]:
        s = self.state
        if s.stage is not Stage.ACTIVE or s.remaining_seconds <= 0:
            return None
        s.remaining_seconds -= 1
        if s.remaining_seconds == 0:
            return self._close_item(None, reason="timeout")
        return None

    def _on_cell_edited(self, event: CellEdited) -> None:
        s = self.state
        if s.stage is not Stage.ACTIVE:
            log.debug(f"Edit of {event.cell} ignored in stage {s.stage.value}")
            return None
        row, col = parse_cell(event.cell)
        while len(s.grid) <= row:
            s.grid.append([])
        cells = s.grid[row]
        while len(cells) <= col:
            cells.append("")

        old = cells[col]
        if old == event.value:
            return None
        if event.value.startswith("="):
            kind = ActionKind.FORMULA_ENTRY
        elif old:
            kind = ActionKind.DATA_CHANGE
        else:
            kind = ActionKind.EDIT
        s.actions.append(
            CellAction(
                timestamp=self.clock(),
                kind=kind,
                cell=cell_name(row, col),
                old_value=old,
                new_value=event.value,
            )
        )
        cells[col] = event.value
        return None

    def _capture_response(self, answer: Optional[str]) -> tuple[CellAction, ...]:
        started = self.state.item_started_at
        return tuple(a for a in self.state.actions if a.timestamp >= started)

    def _evaluate(self, request: EvaluationRequest) -> Evaluation:
        return self.evaluator.evaluate_task(
            request.item, request.response, request.grid, self.state.api_key
        )

