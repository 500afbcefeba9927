"""Evaluation prompts sent to the scoring model."""

from typing import Iterable, Sequence

from excel_assessment.models import CellAction


ANSWER_RUBRIC = """You are an expert Excel Interviewer AI. Your role is to evaluate a candidate's answer to a specific Excel-related question.
The user will provide their answer. You must evaluate it based on the following criteria:
1. **Correctness:** Is the answer technically correct?
2. **Clarity:** Is the explanation clear and easy to understand?
3. **Completeness:** Does the answer fully address the question?

You must respond ONLY with a JSON object. The JSON object must have the following structure:
{{
  "score": <an integer between 0 and 10>,
  "justification": "<a brief, one-sentence explanation for your score>"
}}
Do not provide any other text or explanation outside of this JSON object.

Question: "{question}"
Candidate's Answer: "{answer}"

Evaluate the candidate's answer."""


TASK_RUBRIC = """You are an expert Excel evaluator. Analyze the candidate's spreadsheet actions and determine if they completed the task correctly.

Task: {task}
Expected Result: {expected}

Evaluate based on:
1. **Correctness**: Did they achieve the expected result?
2. **Formula Quality**: Are the formulas efficient and proper?
3. **Task Completion**: Was the task fully completed?

Respond ONLY with JSON:
{{
  "score": <0-10 integer>,
  "justification": "<brief explanation>"
}}

Spreadsheet Actions Taken:
{actions}

Current Spreadsheet State:
{grid}

Evaluate the task completion."""


def format_actions(actions: Iterable[CellAction]) -> str:
    lines = [
        f'{a.timestamp.isoformat()}: {a.kind.value} in cell {a.cell} - '
        f'changed "{a.old_value}" to "{a.new_value}"'
        for a in actions
    ]
    return "\n".join(lines) or "(no actions)"


def format_grid(grid: Sequence[Sequence[str]]) -> str:
    return "\n".join(f"Row {i}: {' | '.join(row)}" for i, row in enumerate(grid, 1))
