"""Pydantic data models for mock payloads and exam sessions."""

from .schemas import (
    MockOption,
    MockSource,
    MockQuestion,
    MockPayload,
    BreakdownRow,
    ScoreResult,
    CreateMockResponse,
    ScoreRequest,
    TopicListResponse,
)
from .state import SessionPhase, SessionSnapshot

__all__ = [
    "MockOption",
    "MockSource",
    "MockQuestion",
    "MockPayload",
    "BreakdownRow",
    "ScoreResult",
    "CreateMockResponse",
    "ScoreRequest",
    "TopicListResponse",
    "SessionPhase",
    "SessionSnapshot",
]
