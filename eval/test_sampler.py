"""Pool building, clamping and seeded sampling."""

from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.assembly.sampler import (
    build_pool,
    clamp_duration,
    clamp_max_questions,
    sample_questions,
)
from src.models.schemas import MockQuestion


def _question(qid: str) -> MockQuestion:
    return MockQuestion(id=qid, subject="Physics", chapter="Kinematics", type="value")


@pytest.mark.parametrize(
    "raw,expected",
    [(None, 10), ("15", 10), ("0", 10), ("abc", 10), ("-3", 1), ("4", 4), (7, 7)],
)
def test_clamp_max_questions(raw, expected):
    assert clamp_max_questions(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [(None, 1200), ("10", 60), ("99999", 3600), ("", 1200), ("900", 900)],
)
def test_clamp_duration(raw, expected):
    assert clamp_duration(raw) == expected


def test_sample_never_exceeds_request_or_pool():
    pool = [_question(f"q{i}") for i in range(25)]
    for requested in (1, 5, 10):
        picked = sample_questions(pool, requested, random.Random(requested))
        assert len(picked) == min(requested, len(pool))
        assert len({q.id for q in picked}) == len(picked)

    small = pool[:3]
    assert len(sample_questions(small, 10, random.Random(1))) == 3


def test_sampling_is_reproducible_with_a_seed():
    pool = [_question(f"q{i}") for i in range(30)]
    first = [q.id for q in sample_questions(pool, 10, random.Random(42))]
    second = [q.id for q in sample_questions(pool, 10, random.Random(42))]
    assert first == second


def test_sampling_does_not_mutate_the_pool():
    pool = [_question(f"q{i}") for i in range(10)]
    before = [q.id for q in pool]
    sample_questions(pool, 5, random.Random(7))
    assert [q.id for q in pool] == before


def test_sampling_reaches_every_question():
    pool = [_question(f"q{i}") for i in range(6)]
    rng = random.Random(3)
    seen = set()
    for _ in range(200):
        seen.update(q.id for q in sample_questions(pool, 2, rng))
    assert seen == {q.id for q in pool}


def test_build_pool_keeps_order_and_drops_repeated_ids():
    chunk_a = [_question("a"), _question("b")]
    chunk_b = [_question("b"), _question("c")]
    assert [q.id for q in build_pool([chunk_a, chunk_b])] == ["a", "b", "c"]
    assert build_pool([[], []]) == []
