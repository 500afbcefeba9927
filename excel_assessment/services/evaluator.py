"""Gemini scoring service for answers and spreadsheet tasks."""

import logging
import re
from typing import List, Optional, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError

from excel_assessment.config import settings
from excel_assessment.models import CellAction, Evaluation, Question, SpreadsheetTask
from excel_assessment.prompts import ANSWER_RUBRIC, TASK_RUBRIC, format_actions, format_grid
from excel_assessment.report import round_half_up

log = logging.getLogger(__name__)

MISSING_KEY = "API key required for evaluation"
TRANSPORT_FAILURE = "Error occurred during evaluation"
UNPARSABLE = "{subject} received but could not be properly evaluated"

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


# Response envelope: {candidates: [{content: {parts: [{text}]}}]}
class _Part(BaseModel):
    text: str


class _Content(BaseModel):
    parts: List[_Part]


class _Candidate(BaseModel):
    content: _Content


class GenerateContentResponse(BaseModel):
    candidates: List[_Candidate]

    def first_text(self) -> str:
        if not self.candidates or not self.candidates[0].content.parts:
            raise ValueError("response has no candidate text")
        return self.candidates[0].content.parts[0].text


class _Verdict(BaseModel):
    score: float = Field(allow_inf_nan=False)
    justification: str


def strip_fence(text: str) -> str:
    """Return the body of a fenced code block, or the text unchanged."""
    match = _FENCE.search(text)
    return match.group(1) if match else text.strip()


def clamp_score(raw: float) -> int:
    score = round_half_up(raw)
    clamped = max(0, min(10, score))
    if clamped != raw:
        log.warning(f"Evaluator score {raw} normalized to {clamped}")
    return clamped


class GeminiEvaluator:
    """Scores one response per call; never raises for service failures."""

    def __init__(self, client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(timeout=settings.EVALUATOR_TIMEOUT)
        self.url = (
            f"{settings.GEMINI_BASE_URL.rstrip('/')}/v1beta/models/"
            f"{settings.GEMINI_MODEL}:generateContent"
        )

    def evaluate_answer(self, question: Question, answer: str, api_key: Optional[str]) -> Evaluation:
        prompt = ANSWER_RUBRIC.format(question=question.prompt, answer=answer)
        return self._evaluate(prompt, api_key, subject="Answer")

    def evaluate_task(
        self,
        task: SpreadsheetTask,
        actions: Sequence[CellAction],
        grid: Sequence[Sequence[str]],
        api_key: Optional[str],
    ) -> Evaluation:
        prompt = TASK_RUBRIC.format(
            task=task.prompt,
            expected=task.expected,
            actions=format_actions(actions),
            grid=format_grid(grid),
        )
        return self._evaluate(prompt, api_key, subject="Task")

    def _payload(self, prompt: str) -> dict:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": settings.GEMINI_TEMPERATURE,
                "topK": settings.GEMINI_TOP_K,
                "topP": settings.GEMINI_TOP_P,
                "maxOutputTokens": settings.GEMINI_MAX_OUTPUT_TOKENS,
            },
        }

    def _evaluate(self, prompt: str, api_key: Optional[str], subject: str) -> Evaluation:
        if not api_key or not api_key.strip():
            return Evaluation(score=0, justification=MISSING_KEY)

        try:
            r = self.client.post(
                self.url,
                params={"key": api_key.strip()},
                json=self._payload(prompt),
            )
            r.raise_for_status()
            text = GenerateContentResponse.model_validate_json(r.content).first_text()
        except httpx.HTTPStatusError as e:
            log.error(f"Evaluation request failed with status {e.response.status_code}")
            return Evaluation(score=0, justification=TRANSPORT_FAILURE)
        except httpx.HTTPError as e:
            log.error(f"Evaluation request failed: {type(e).__name__}")
            return Evaluation(score=0, justification=TRANSPORT_FAILURE)
        except (ValidationError, ValueError) as e:
            log.error(f"Unexpected evaluation response envelope: {e}")
            return Evaluation(score=0, justification=TRANSPORT_FAILURE)

        try:
            verdict = _Verdict.model_validate_json(strip_fence(text))
        except ValidationError:
            log.warning(f"Could not parse evaluator verdict: {text[:80]!r}")
            return Evaluation(score=5, justification=UNPARSABLE.format(subject=subject))

        return Evaluation(score=clamp_score(verdict.score), justification=verdict.justification)
