"""Final assessment report built from a finished session."""

from __future__ import annotations

import math
from typing import Sequence

from pydantic import BaseModel

from excel_assessment.config import settings
from excel_assessment.models import FlagKind, IntegrityFlag, ResponseRecord, SessionState


class ReportRow(BaseModel):
    number: int
    prompt: str
    response: str
    score: int
    justification: str
    elapsed_seconds: int
    passed: bool


class AssessmentReport(BaseModel):
    overall_score: int
    total_seconds: int
    flag_counts: dict[str, int]
    flags: list[IntegrityFlag]
    rows: list[ReportRow]

    @property
    def flag_total(self) -> int:
        return sum(self.flag_counts.values())


def round_half_up(value: float) -> int:
    """Round .5 upwards (7.5 -> 8), unlike the built-in banker's rounding."""
    return math.floor(value + 0.5)


def overall_score(records: Sequence[ResponseRecord]) -> int:
    """Rounded mean of item scores; 0 when nothing was scored."""
    if not records:
        return 0
    return round_half_up(sum(r.score for r in records) / len(records))


def count_flags(flags: Sequence[IntegrityFlag]) -> dict[str, int]:
    counts = {kind.value: 0 for kind in FlagKind}
    for flag in flags:
        counts[flag.kind.value] += 1
    return counts


def describe_response(record: ResponseRecord) -> str:
    if isinstance(record.response, str):
        return record.response
    if not record.response:
        return "(no spreadsheet actions)"
    return "\n".join(f"{a.cell}: {a.old_value!r} -> {a.new_value!r}" for a in record.response)


def build_report(state: SessionState, per_item_time: bool = False) -> AssessmentReport:
    """Summarize a session for rendering.

    Timed sessions report the sum of per-item time; untimed ones report the
    wall-clock time between start and finish.
    """
    if per_item_time or not (state.started_at and state.finished_at):
        total = sum(r.elapsed_seconds for r in state.records)
    else:
        total = round_half_up((state.finished_at - state.started_at).total_seconds())

    rows = [
        ReportRow(
            number=r.item_index + 1,
            prompt=r.prompt,
            response=describe_response(r),
            score=r.score,
            justification=r.justification,
            elapsed_seconds=r.elapsed_seconds,
            passed=r.score >= settings.PASS_THRESHOLD,
        )
        for r in state.records
    ]
    return AssessmentReport(
        overall_score=overall_score(state.records),
        total_seconds=total,
        flag_counts=count_flags(state.flags),
        flags=list(state.flags),
        rows=rows,
    )
