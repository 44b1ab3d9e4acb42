"""Scoring engine — deterministic marks for a submitted mock."""

from __future__ import annotations

import math
from typing import Any, List, Mapping

from ..models.schemas import BreakdownRow, MockPayload, ScoreResult

MARKS_CORRECT = 4
MARKS_WRONG = -1


def normalize_answer(value: Any) -> str:
    """Single comparison key for both the user's and the expected answer."""
    return str(value if value is not None else "").strip().upper()


def _round_tenths(value: float) -> float:
    # Half-up, matching how result percentages are displayed.
    return math.floor(value * 10 + 0.5) / 10


def score(exam: MockPayload, answers: Mapping[str, str]) -> ScoreResult:
    """Score ``answers`` against the answer key embedded in ``exam``.

    Pure: neither argument is modified and repeated calls return equal results.
    """
    correct = wrong = unattempted = 0
    breakdown: List[BreakdownRow] = []

    for index, question in enumerate(exam.questions):
        user_answer = str(answers.get(question.id) or "").strip()
        correct_answer = (question.correct_answer or "").strip()

        if not user_answer:
            unattempted += 1
            verdict, marks = "unattempted", 0
        elif correct_answer and normalize_answer(user_answer) == normalize_answer(correct_answer):
            correct += 1
            verdict, marks = "correct", MARKS_CORRECT
        else:
            wrong += 1
            verdict, marks = "wrong", MARKS_WRONG

        breakdown.append(
            BreakdownRow(
                index=index,
                id=question.id,
                chapter=question.chapter,
                type=question.type,
                user_answer=user_answer or "-",
                correct_answer=correct_answer or "-",
                verdict=verdict,
                marks=marks,
            )
        )

    attempted = correct + wrong
    marks_correct = correct * MARKS_CORRECT
    marks_wrong = wrong * MARKS_WRONG
    net_marks = marks_correct + marks_wrong
    max_marks = len(exam.questions) * MARKS_CORRECT

    accuracy = _round_tenths(correct / attempted * 100) if attempted else 0.0
    raw_score = net_marks / max_marks * 100 if max_marks else 0.0

    return ScoreResult(
        total_questions=len(exam.questions),
        attempted=attempted,
        correct=correct,
        wrong=wrong,
        unattempted=unattempted,
        marks_correct=marks_correct,
        marks_wrong=marks_wrong,
        net_marks=net_marks,
        max_marks=max_marks,
        accuracy_percent=accuracy,
        score_percent=max(0.0, _round_tenths(raw_score)),
        breakdown=breakdown,
    )
