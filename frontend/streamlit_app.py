"""Streamlit UI for the Excel skills assessments."""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

import altair as alt
import streamlit as st

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from excel_assessment.config import settings
from excel_assessment.models import SpreadsheetTask, Stage
from excel_assessment.services.evaluator import GeminiEvaluator
from excel_assessment.session import QuestionSession, SessionController, SpreadsheetTaskSession
from excel_assessment.ui_utils import (
    column_letters,
    flag_timeline,
    format_duration,
    format_time,
    pad_grid,
    score_band,
)

logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s: %(message)s")
log = logging.getLogger(__name__)

GRID_ROWS = 12
GRID_COLS = 10
BAND_ICONS = {"strong": "🟢", "fair": "🟡", "weak": "🔴"}
MODES = {
    "Knowledge questions": "questions",
    "Interactive spreadsheet": "tasks",
}


@st.cache_resource
def get_evaluator() -> GeminiEvaluator:
    return GeminiEvaluator()


def init_state() -> None:
    """Initialize Streamlit session state keys."""
    if "questions" not in st.session_state:
        st.session_state["questions"] = QuestionSession(get_evaluator())
    if "tasks" not in st.session_state:
        st.session_state["tasks"] = SpreadsheetTaskSession(get_evaluator())


def render_welcome(session: SessionController, title: str, bullets: list[str]) -> None:
    st.title(title)
    st.markdown("\n".join(f"- {line}" for line in bullets))

    if session.state.awaiting_credential:
        st.warning(
            "API key required. Enter your Google Gemini API key to enable AI evaluation. "
            "It is kept in memory for this session only."
        )
    api_key = st.text_input(
        "Gemini API key",
        value=settings.GEMINI_API_KEY or "",
        type="password",
        key=f"api-key-{session.state.session_id}",
    )
    if st.button("Start Assessment", type="primary"):
        session.start(api_key)
        st.rerun()


def render_progress(session: SessionController) -> None:
    st.markdown("**Progress**")
    for record in session.state.records:
        icon = BAND_ICONS[score_band(record.score)]
        st.caption(f"{icon} Item {record.item_index + 1}: {record.score}/10")
    st.caption(f"Current: item {session.state.item_index + 1}")
    flags = len(session.state.flags)
    if flags:
        st.caption(f"⚠️ Integrity flags: {flags}")


def render_question(session: QuestionSession) -> None:
    state = session.state
    item = session.current_item
    total = len(session.items)
    st.progress(session.progress, text=f"Question {state.item_index + 1} of {total}")

    left, right = st.columns([3, 1], gap="large")
    with left:
        st.subheader(f"Question {state.item_index + 1}")
        st.info(item.prompt)
        with st.form(key=f"answer-{state.session_id}-{state.item_index}"):
            answer = st.text_area("Your Answer:", height=200, placeholder="Type your detailed answer here...")
            submitted = st.form_submit_button("Submit Answer", disabled=state.loading)
        if submitted:
            if not answer.strip():
                st.error("Please write an answer before submitting.")
            else:
                with st.spinner("Evaluating..."):
                    session.submit(answer)
                st.rerun()
    with right:
        render_progress(session)


def tick_key(session: SpreadsheetTaskSession) -> str:
    return f"last-tick-{session.state.session_id}"


def restart_countdown(session: SpreadsheetTaskSession) -> None:
    """Start counting whole seconds from now, after the item has changed."""
    st.session_state[tick_key(session)] = time.monotonic()


@st.fragment(run_every=1)
def render_countdown(session: SpreadsheetTaskSession) -> None:
    before = (session.state.stage, session.state.item_index)
    now = time.monotonic()
    last = st.session_state.setdefault(tick_key(session), now)
    due = int(now - last)
    with st.spinner("Time is up, evaluating..."):
        for _ in range(due):
            session.tick()
            # Seconds past an expiry belong to the expired task only.
            if (session.state.stage, session.state.item_index) != before:
                break
    if (session.state.stage, session.state.item_index) != before:
        restart_countdown(session)
        st.rerun()
    st.session_state[tick_key(session)] = last + due
    st.metric("Time remaining", format_time(session.state.remaining_seconds))


def render_grid(session: SpreadsheetTaskSession) -> None:
    grid = pad_grid(session.state.grid, rows=GRID_ROWS, cols=GRID_COLS)
    letters = column_letters(len(grid[0]))
    rows = [
        {"#": str(i), **dict(zip(letters, row))}
        for i, row in enumerate(grid, 1)
    ]
    st.dataframe(rows, use_container_width=True, hide_index=True)

    with st.form(key=f"formula-bar-{session.state.session_id}", clear_on_submit=True):
        ref_col, value_col, button_col = st.columns([1, 4, 1])
        cell = ref_col.text_input("Cell", value="F2")
        value = value_col.text_input("Value or formula", placeholder="=VLOOKUP(E2,A:B,2,FALSE)")
        entered = button_col.form_submit_button("Enter")
    if entered:
        try:
            session.edit_cell(cell, value)
        except ValueError as exc:
            log.warning(f"Rejected cell edit: {exc}")
            st.error(str(exc))
        else:
            st.rerun()


def render_task(session: SpreadsheetTaskSession) -> None:
    state = session.state
    task: SpreadsheetTask = session.current_item
    total = len(session.items)
    st.progress(session.progress, text=f"Task {state.item_index + 1} of {total}")

    side, main = st.columns([1, 3], gap="large")
    with side:
        st.subheader(task.title)
        st.caption(f"Difficulty: {task.difficulty}")
        st.info(task.prompt)
        render_countdown(session)
        render_progress(session)
        if st.button("Complete Task", disabled=state.loading):
            with st.spinner("Evaluating..."):
                session.submit()
            restart_countdown(session)
            st.rerun()
    with main:
        st.subheader("Spreadsheet")
        render_grid(session)
        st.caption(f"{len(state.actions)} actions recorded")


def render_report(session: SessionController) -> None:
    report = session.report()
    st.title("Assessment Complete")

    metric_cols = st.columns(3)
    metric_cols[0].metric("Overall Score", f"{report.overall_score}/10")
    metric_cols[1].metric("Time Taken", format_duration(report.total_seconds))
    metric_cols[2].metric("Integrity Flags", report.flag_total)

    chart = (
        alt.Chart(alt.Data(values=[{"item": f"#{row.number}", "score": row.score} for row in report.rows]))
        .mark_bar()
        .encode(
            x=alt.X("item:N", title="Item"),
            y=alt.Y("score:Q", title="Score", scale=alt.Scale(domain=[0, 10])),
        )
    )
    st.altair_chart(chart, use_container_width=True)

    for row in report.rows:
        icon = BAND_ICONS[score_band(row.score)]
        with st.expander(f"{icon} Item {row.number}: {row.score}/10"):
            st.markdown(f"**Prompt:** {row.prompt}")
            st.markdown("**Response:**")
            st.code(row.response, language=None)
            st.markdown(f"**Evaluation:** {row.justification}")
            if session.timed:
                status = "Completed" if row.passed else "Incomplete"
                st.caption(f"Time: {format_duration(row.elapsed_seconds)} | Status: {status}")

    if report.flags:
        st.subheader("Integrity monitoring")
        for kind, count in report.flag_counts.items():
            if count:
                st.caption(f"{kind.replace('_', ' ')}: {count} time(s)")
        st.dataframe(flag_timeline(report.flags), use_container_width=True, hide_index=True)

    if st.button("Take Assessment Again"):
        session.reset()
        st.rerun()


st.set_page_config(page_title="Excel Skills Assessment", layout="wide")
init_state()

with st.sidebar:
    mode = MODES[st.radio("Assessment", list(MODES))]

session = st.session_state[mode]
stage = session.state.stage

if stage is Stage.WELCOME:
    if mode == "questions":
        render_welcome(
            session,
            "Excel Skills Assessment",
            [
                f"{len(session.items)} progressively challenging Excel questions",
                "AI-powered evaluation and scoring",
                "Comprehensive performance report",
            ],
        )
    else:
        render_welcome(
            session,
            "Interactive Excel Skills Assessment",
            [
                "Interactive spreadsheet with real data manipulation",
                f"{len(session.items)} hands-on tasks: VLOOKUP, formulas, data analysis",
                "Time-limited tasks with live action tracking",
                "AI evaluates your actual spreadsheet work",
            ],
        )
elif stage is Stage.ACTIVE:
    if mode == "questions":
        render_question(session)
    else:
        render_task(session)
else:
    render_report(session)
