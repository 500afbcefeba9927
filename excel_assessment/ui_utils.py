"""Helpers for the Streamlit UI."""

from __future__ import annotations

from typing import Iterable, Sequence

from excel_assessment.models import FlagKind, IntegrityFlag

FLAG_LABELS = {
    FlagKind.PASTE: "Text pasted",
    FlagKind.TAB_SWITCH: "Tab switched",
}


def format_time(seconds: int) -> str:
    """Countdown display, e.g. 185 -> '3:05'."""
    seconds = max(0, int(seconds))
    mins, secs = divmod(seconds, 60)
    return f"{mins}:{secs:02d}"


def format_duration(seconds: int) -> str:
    """Report display, e.g. 185 -> '3m 5s'."""
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins}m {secs}s"


def score_band(score: int) -> str:
    """Bucket a 0-10 score: strong (8+), fair (6-7) or weak."""
    if score >= 8:
        return "strong"
    if score >= 6:
        return "fair"
    return "weak"


def flag_timeline(flags: Iterable[IntegrityFlag]) -> list[dict[str, str]]:
    """Flags as display rows in the order they were raised."""
    return [
        {"event": FLAG_LABELS[flag.kind], "time": flag.timestamp.strftime("%H:%M:%S")}
        for flag in flags
    ]


def column_letters(width: int) -> list[str]:
    """Header labels A, B, ... for a grid `width` columns wide (up to Z)."""
    return [chr(65 + i) for i in range(min(width, 26))]


def pad_grid(grid: Sequence[Sequence[str]], rows: int = 0, cols: int = 0) -> list[list[str]]:
    """Return a rectangular copy of `grid`, at least `rows` x `cols`."""
    width = max([cols] + [len(row) for row in grid])
    height = max(rows, len(grid))
    padded = [list(row) + [""] * (width - len(row)) for row in grid]
    padded += [[""] * width for _ in range(height - len(grid))]
    return padded
