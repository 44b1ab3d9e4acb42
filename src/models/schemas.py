"""Pydantic schemas for mock payloads, scoring results and API bodies."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


QuestionType = Literal["mcq", "value"]
Verdict = Literal["correct", "wrong", "unattempted"]


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FrozenWireModel(_WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# ── Mock payload ───────────────────────────────────────────────────
class MockOption(_FrozenWireModel):
    key: str
    html: str


class MockSource(_FrozenWireModel):
    file: str
    record_title: Optional[str] = None


class MockQuestion(_FrozenWireModel):
    id: str
    subject: str
    chapter: str
    type: QuestionType
    exam_html: str = ""
    prompt_html: str = ""
    options: List[MockOption] = Field(default_factory=list)
    correct_answer: Optional[str] = None
    source: Optional[MockSource] = None


class MockPayload(_FrozenWireModel):
    created_at: str
    expires_at: str
    duration_seconds: int = Field(..., ge=1)
    max_questions: int = Field(..., ge=1)
    chapters: List[str] = Field(default_factory=list)
    questions: List[MockQuestion]

    @model_validator(mode="after")
    def _validate_question_bound(self) -> "MockPayload":
        if len(self.questions) > self.max_questions:
            raise ValueError("questions must not exceed max_questions")
        return self


# ── Scoring ────────────────────────────────────────────────────────
class BreakdownRow(_WireModel):
    index: int
    id: str
    chapter: str
    type: QuestionType
    user_answer: str
    correct_answer: str
    verdict: Verdict
    marks: int


class ScoreResult(_WireModel):
    total_questions: int
    attempted: int
    correct: int
    wrong: int
    unattempted: int
    marks_correct: int
    marks_wrong: int
    net_marks: int
    max_marks: int
    accuracy_percent: float
    score_percent: float
    breakdown: List[BreakdownRow]


# ── API bodies ─────────────────────────────────────────────────────
class CreateMockResponse(_WireModel):
    share_url: str
    token_size: int
    warnings: List[str] = Field(default_factory=list)


class ScoreRequest(_WireModel):
    token: str = Field(..., min_length=1)
    answers: Dict[str, str] = Field(default_factory=dict)


class TopicListResponse(_WireModel):
    subject: str
    topics: List[str]
    count: int
