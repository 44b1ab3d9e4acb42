"""Pool sampler — bounded, pool-uniform random draw without replacement."""

from __future__ import annotations

import random
from typing import Any, Iterable, List, Optional, Sequence, TypeVar

from ..models.schemas import MockQuestion

T = TypeVar("T")

MIN_QUESTIONS = 1
MAX_QUESTIONS = 10
DEFAULT_QUESTIONS = 10
MIN_DURATION_SECONDS = 60
MAX_DURATION_SECONDS = 60 * 60
DEFAULT_DURATION_SECONDS = 20 * 60


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _parse_number(raw: Any, default: int) -> int:
    """Parse a query value; missing, unparsable or zero means ``default``."""
    if raw is None:
        return default
    try:
        value = int(float(str(raw).strip()))
    except (TypeError, ValueError, OverflowError):
        return default
    return value or default


def clamp_max_questions(raw: Any = None) -> int:
    return _clamp(
        _parse_number(raw, DEFAULT_QUESTIONS), MIN_QUESTIONS, MAX_QUESTIONS
    )


def clamp_duration(raw: Any = None) -> int:
    return _clamp(
        _parse_number(raw, DEFAULT_DURATION_SECONDS),
        MIN_DURATION_SECONDS,
        MAX_DURATION_SECONDS,
    )


def build_pool(chunks: Iterable[Sequence[MockQuestion]]) -> List[MockQuestion]:
    """Concatenate per-chapter question lists, keeping the first of any repeated id."""
    pool: List[MockQuestion] = []
    seen = set()
    for chunk in chunks:
        for question in chunk:
            if question.id in seen:
                continue
            seen.add(question.id)
            pool.append(question)
    return pool


def sample_questions(
    pool: Sequence[T], count: int, rng: Optional[random.Random] = None
) -> List[T]:
    """Fisher-Yates shuffle of a copy of ``pool`` truncated to ``count``."""
    rng = rng or random.SystemRandom()
    shuffled = list(pool)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled[: max(0, min(count, len(shuffled)))]
