"""Exam session state machine.

``loading → active ⇄ (answering / navigating) → submitted``, or
``loading → error`` when the token cannot be decoded. The countdown is derived
from a session start persisted per token, so reopening the same token resumes
the same deadline.
"""

from __future__ import annotations

import logging
from time import time
from typing import Callable, Dict, List, Optional

from ..errors import MockError
from ..models.schemas import MockPayload, MockQuestion, ScoreResult
from ..models.state import SessionPhase, SessionSnapshot
from ..orchestration.session_store import KeyValueStore, read_or_init_session_start
from ..token_codec import decode_token
from .scoring import score

_session_logger = logging.getLogger("mock.session")

SubmitListener = Callable[[ScoreResult, bool], None]


def wall_clock_ms() -> int:
    return int(time() * 1000)


def format_clock(ms: int) -> str:
    """Render remaining milliseconds as ``MM:SS`` (never negative)."""
    seconds = max(0, int(ms) // 1000)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class ExamSession:
    """Owns navigation, answers and the deadline for one decoded mock."""

    TICK_INTERVAL_SECONDS = 0.25

    def __init__(
        self,
        token: str,
        store: KeyValueStore,
        now_ms: Optional[Callable[[], int]] = None,
    ) -> None:
        self._token = (token or "").strip()
        self._store = store
        self._now = now_ms or wall_clock_ms
        self._phase = SessionPhase.LOADING
        self._payload: Optional[MockPayload] = None
        self._error: Optional[str] = None
        self._index = 0
        self._answers: Dict[str, str] = {}
        self._started_at_ms = 0
        self._remaining_ms = 0
        self._auto_submitted = False
        self._listeners: List[SubmitListener] = []

    @classmethod
    def open(
        cls,
        token: str,
        store: KeyValueStore,
        now_ms: Optional[Callable[[], int]] = None,
        on_submit: Optional[SubmitListener] = None,
    ) -> "ExamSession":
        session = cls(token, store, now_ms=now_ms)
        if on_submit is not None:
            session.add_submit_listener(on_submit)
        session.load()
        return session

    def load(self) -> SessionPhase:
        """Decode the token. Any failure is terminal for the session."""
        if self._phase is not SessionPhase.LOADING:
            return self._phase
        try:
            payload = decode_token(self._token)
        except MockError as exc:
            self._phase = SessionPhase.ERROR
            self._error = exc.message
            return self._phase

        self._payload = payload
        self._phase = SessionPhase.ACTIVE
        self._started_at_ms = read_or_init_session_start(
            self._store, self._token, self._now()
        )
        self.tick()
        return self._phase

    def add_submit_listener(self, listener: SubmitListener) -> None:
        self._listeners.append(listener)

    # ── read-only state ────────────────────────────────────────────
    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def payload(self) -> Optional[MockPayload]:
        return self._payload

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def started_at_ms(self) -> int:
        return self._started_at_ms

    @property
    def remaining_ms(self) -> int:
        return self._remaining_ms

    @property
    def auto_submitted(self) -> bool:
        return self._auto_submitted

    @property
    def total_questions(self) -> int:
        return len(self._payload.questions) if self._payload else 0

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_question(self) -> Optional[MockQuestion]:
        if not self._payload or not self._payload.questions:
            return None
        return self._payload.questions[self._index]

    @property
    def answers(self) -> Dict[str, str]:
        return dict(self._answers)

    def answer_for(self, question_id: str) -> str:
        return self._answers.get(question_id, "")

    # ── transitions ────────────────────────────────────────────────
    def set_answer(self, value: str) -> bool:
        """Record an answer for the current question while active."""
        question = self.current_question
        if self._phase is not SessionPhase.ACTIVE or question is None:
            return False
        cleaned = str(value if value is not None else "").strip()
        if cleaned:
            self._answers[question.id] = cleaned
        else:
            self._answers.pop(question.id, None)
        return True

    def jump_to(self, index: int) -> int:
        total = self.total_questions
        if total:
            self._index = max(0, min(total - 1, int(index)))
        return self._index

    def prev(self) -> int:
        return self.jump_to(self._index - 1)

    def next(self) -> int:
        return self.jump_to(self._index + 1)

    def submit(self, auto: bool = False) -> Optional[ScoreResult]:
        """Lock the session and score it. Returns ``None`` if not active."""
        if self._phase is not SessionPhase.ACTIVE:
            return None
        self._phase = SessionPhase.SUBMITTED
        self._auto_submitted = auto
        result = self.result()
        _session_logger.info(
            "session_submitted",
            extra={
                "event": "session_submitted",
                "auto": auto,
                "net_marks": result.net_marks,
                "attempted": result.attempted,
            },
        )
        for listener in self._listeners:
            listener(result, auto)
        return result

    def tick(self) -> int:
        """Recompute the countdown; auto-submits once the deadline passes."""
        if self._phase is not SessionPhase.ACTIVE or self._payload is None:
            return self._remaining_ms
        elapsed = self._now() - self._started_at_ms
        self._remaining_ms = int(self._payload.duration_seconds * 1000 - elapsed)
        if self._remaining_ms <= 0:
            self.submit(auto=True)
        return self._remaining_ms

    def result(self) -> Optional[ScoreResult]:
        if self._phase is not SessionPhase.SUBMITTED or self._payload is None:
            return None
        return score(self._payload, self._answers)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            phase=self._phase,
            current_index=self._index,
            total_questions=self.total_questions,
            remaining_ms=self._remaining_ms,
            answers=dict(self._answers),
            auto_submitted=self._auto_submitted,
            error=self._error,
        )
