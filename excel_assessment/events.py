"""Inputs and effects of the session state machine."""

from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from excel_assessment.models import CellAction, Evaluation, Item


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class StartSession(_Event):
    api_key: Optional[str] = None


class SubmitResponse(_Event):
    answer: Optional[str] = None  # Ignored by task sessions


class TimerTick(_Event):
    pass


class EvaluationCompleted(_Event):
    session_id: str
    item_index: int
    evaluation: Evaluation


class VisibilityChanged(_Event):
    hidden: bool


class PasteDetected(_Event):
    pass


class CellEdited(_Event):
    cell: str  # A1-style reference
    value: str


class ResetSession(_Event):
    pass


Event = Union[
    StartSession,
    SubmitResponse,
    TimerTick,
    EvaluationCompleted,
    VisibilityChanged,
    PasteDetected,
    CellEdited,
    ResetSession,
]


class EvaluationRequest(BaseModel):
    """Emitted when an item closes; resolved by an `EvaluationCompleted`."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    item_index: int
    item: Item
    response: Union[str, Tuple[CellAction, ...]]
    elapsed_seconds: int
    grid: Tuple[Tuple[str, ...], ...] = ()  # Snapshot, task sessions only
