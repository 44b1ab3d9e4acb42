"""Terminal exam loop driven by scripted input."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.exam.session import ExamSession
from src.models.schemas import MockOption, MockPayload, MockQuestion
from src.models.state import SessionPhase
from src.orchestration.exam_runner import QuitExam, run_exam
from src.orchestration.session_store import MemoryStore
from src.token_codec import encode_token


class Clock:
    def __init__(self) -> None:
        self.now = 1_700_000_000_000

    def __call__(self) -> int:
        return self.now


def _token() -> str:
    return encode_token(
        MockPayload(
            created_at="2024-05-01T10:00:00.000Z",
            expires_at="2024-05-01T10:20:00.000Z",
            duration_seconds=600,
            max_questions=3,
            chapters=["Kinematics"],
            questions=[
                MockQuestion(
                    id="q1",
                    subject="Physics",
                    chapter="Kinematics",
                    type="mcq",
                    prompt_html="<p>Pick <b>A</b></p>",
                    options=[MockOption(key="A", html="yes"), MockOption(key="B", html="no")],
                    correct_answer="A",
                ),
                MockQuestion(
                    id="q2", subject="Physics", chapter="Kinematics", type="value", correct_answer="42"
                ),
                MockQuestion(
                    id="q3", subject="Physics", chapter="Kinematics", type="value", correct_answer="7"
                ),
            ],
        )
    )


def _scripted(*lines):
    remaining = list(lines)

    def _input(prompt: str) -> str:
        return remaining.pop(0)

    return _input


def test_answers_advance_and_submit():
    session = ExamSession.open(_token(), MemoryStore(), now_ms=Clock())
    result = run_exam(session, _scripted("a", "42", ":s", "y"), show_breakdown=False)
    assert session.phase is SessionPhase.SUBMITTED
    assert result.correct == 2
    assert result.unattempted == 1
    assert result.net_marks == 8


def test_navigation_commands_and_clear():
    session = ExamSession.open(_token(), MemoryStore(), now_ms=Clock())
    inputs = _scripted("B", ":p", ":c", ":j 3", "7", ":j x", ":huh", ":s", "n", ":s", "yes")
    result = run_exam(session, inputs)
    assert session.answers == {"q3": "7"}
    assert result.correct == 1


def test_quit_leaves_session_active():
    session = ExamSession.open(_token(), MemoryStore(), now_ms=Clock())
    with pytest.raises(QuitExam):
        run_exam(session, _scripted("A", ":q"))
    assert session.phase is SessionPhase.ACTIVE
    assert session.answers == {"q1": "A"}


def test_answer_after_deadline_is_dropped():
    clock = Clock()
    session = ExamSession.open(_token(), MemoryStore(), now_ms=clock)

    def late_input(prompt: str) -> str:
        clock.now += 601 * 1000
        return "A"

    result = run_exam(session, late_input)
    assert session.auto_submitted is True
    assert session.answers == {}
    assert result.unattempted == 3


def test_error_session_returns_none():
    session = ExamSession.open("###", MemoryStore(), now_ms=Clock())
    assert run_exam(session, _scripted()) is None
