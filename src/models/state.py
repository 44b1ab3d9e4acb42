"""Client-side exam session state."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class SessionPhase(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    SUBMITTED = "submitted"
    ERROR = "error"


class SessionSnapshot(BaseModel):
    phase: SessionPhase
    current_index: int = 0
    total_questions: int = 0
    remaining_ms: int = 0
    answers: Dict[str, str] = Field(default_factory=dict)
    auto_submitted: bool = False
    error: Optional[str] = None
