"""Tests for the Streamlit frontend, driven through AppTest."""

import time
from pathlib import Path

from streamlit.testing.v1 import AppTest

from excel_assessment.catalog import TASKS
from excel_assessment.models import Evaluation, Stage
from excel_assessment.session import QuestionSession, SpreadsheetTaskSession

APP_PATH = str(Path(__file__).resolve().parents[1] / "frontend" / "streamlit_app.py")


class SlowEvaluator:
    """Evaluator stub that takes a while to answer, like a real model call."""

    def __init__(self, delay: float = 2.0) -> None:
        self.delay = delay

    def evaluate_answer(self, question, answer, api_key):
        return Evaluation(score=7, justification="ok")

    def evaluate_task(self, task, actions, grid, api_key):
        time.sleep(self.delay)
        return Evaluation(score=7, justification="checked")


def make_app() -> AppTest:
    return AppTest.from_file(APP_PATH, default_timeout=30)


def click(at: AppTest, label: str) -> None:
    next(button for button in at.button if button.label == label).click().run()


def test_slow_evaluation_is_not_charged_to_next_task():
    tasks = SpreadsheetTaskSession(SlowEvaluator())
    tasks.start("key")
    at = make_app()
    at.session_state["questions"] = QuestionSession(SlowEvaluator())
    at.session_state["tasks"] = tasks
    at.run()
    at.sidebar.radio[0].set_value("Interactive spreadsheet").run()

    click(at, "Complete Task")

    assert not at.exception
    state = at.session_state["tasks"].state
    assert state.stage is Stage.ACTIVE
    assert state.item_index == 1
    assert state.remaining_seconds == TASKS[1].time_limit == 300


def test_existing_controllers_survive_reruns():
    questions = QuestionSession(SlowEvaluator())
    at = make_app()
    at.session_state["questions"] = questions
    at.run()
    at.run()

    assert not at.exception
    assert at.session_state["questions"].state.session_id == questions.state.session_id


def test_welcome_lists_only_delivered_features():
    at = make_app()
    at.run()

    assert not at.exception
    text = " ".join(block.value for block in at.markdown).lower()
    assert "ai-powered evaluation" in text
    assert "integrity" not in text
