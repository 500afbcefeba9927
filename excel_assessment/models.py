"""Pydantic models for type safety."""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Stage(str, Enum):
    WELCOME = "welcome"
    ACTIVE = "active"
    REPORT = "report"


class ActionKind(str, Enum):
    EDIT = "edit"
    FORMULA_ENTRY = "formula_entry"
    DATA_CHANGE = "data_change"


class FlagKind(str, Enum):
    TAB_SWITCH = "tab_switch"
    PASTE = "paste"


class Question(BaseModel):
    """Open-ended question answered in free text."""
    model_config = ConfigDict(frozen=True)

    id: int
    prompt: str
    expected: str = ""  # Free-text descriptor, informational only


class SpreadsheetTask(BaseModel):
    """Timed task performed against the sample grid."""
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    prompt: str
    expected: str  # Canonical formula or a short marker like "multiple_formulas"
    difficulty: Literal["Easy", "Medium", "Hard"]
    time_limit: int = Field(gt=0)  # seconds


Item = Union[Question, SpreadsheetTask]


class CellAction(BaseModel):
    """One edit made to the grid."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    kind: ActionKind
    cell: str
    old_value: str
    new_value: str


class IntegrityFlag(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: FlagKind
    timestamp: datetime


class Evaluation(BaseModel):
    """Score and reason returned by the evaluator."""
    score: int = Field(ge=0, le=10)
    justification: str


class ResponseRecord(BaseModel):
    """Outcome for one item. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    item_index: int
    item_id: int
    prompt: str
    response: Union[str, Tuple[CellAction, ...]]
    score: int = Field(ge=0, le=10)
    justification: str
    elapsed_seconds: int = 0


class SessionState(BaseModel):
    """Mutable state for one assessment run."""
    session_id: str = Field(default_factory=lambda: uuid4().hex)
    stage: Stage = Stage.WELCOME
    item_index: int = 0
    remaining_seconds: int = 0  # Countdown, task sessions only
    loading: bool = False  # Evaluation in flight for the current item
    awaiting_credential: bool = False  # Start was attempted without a key
    started_at: Optional[datetime] = None
    item_started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    records: List[ResponseRecord] = []
    flags: List[IntegrityFlag] = []
    actions: List[CellAction] = []  # Full edit log, task sessions only
    grid: List[List[str]] = []
    api_key: Optional[str] = Field(default=None, repr=False, exclude=True)
