"""Mock builder — resolve, fetch, normalize and sample one exam."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import logging
import random
from typing import Any, Dict, List, Optional, Sequence

from ..corpus_client import CorpusClient
from ..errors import (
    FetchError,
    ParseError,
    PoolEmptyError,
    ResolutionError,
    cap_diagnostics,
)
from ..models.schemas import MockPayload, MockQuestion
from .normalizer import normalize_record
from .resolver import resolve_chapters, resolved_in_request_order, subject_names
from .sampler import build_pool, clamp_duration, clamp_max_questions, sample_questions

_assembly_logger = logging.getLogger("mock.assembly")


@dataclass
class ChapterFetch:
    """Outcome of one chapter fetch; exactly one of questions/error is meaningful."""

    chapter: str
    subject: str
    questions: List[MockQuestion] = field(default_factory=list)
    parse_errors: List[ParseError] = field(default_factory=list)
    error: Optional[FetchError] = None


@dataclass
class AssembledMock:
    payload: MockPayload
    warnings: List[str] = field(default_factory=list)
    failed_chapters: List[str] = field(default_factory=list)
    parse_errors: List[Dict[str, Any]] = field(default_factory=list)


def _iso_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def _fetch_chapter(client: CorpusClient, chapter: str, subject: str) -> ChapterFetch:
    try:
        fetched = client.fetch_topic(subject, chapter)
    except FetchError as exc:
        return ChapterFetch(chapter=chapter, subject=subject, error=exc)

    questions: List[MockQuestion] = []
    for record in fetched.records:
        questions.extend(normalize_record(record, subject, chapter))
    return ChapterFetch(
        chapter=chapter,
        subject=subject,
        questions=questions,
        parse_errors=fetched.parse_errors,
    )


def fetch_chapters(
    client: CorpusClient,
    chapters: Sequence[str],
    chapter_to_subject: Dict[str, str],
    max_workers: int = 8,
) -> List[ChapterFetch]:
    """Fetch every chapter concurrently; results come back in ``chapters`` order."""
    if not chapters:
        return []
    workers = max(1, min(max_workers, len(chapters)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            pool.submit(_fetch_chapter, client, chapter, chapter_to_subject[chapter])
            for chapter in chapters
        ]
        return [future.result() for future in futures]


def assemble_mock(
    chapters: Sequence[str],
    client: CorpusClient,
    max_questions: Any = None,
    duration_seconds: Any = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
    max_workers: int = 8,
) -> AssembledMock:
    """Build a randomized mock payload from the requested chapters.

    Raises ``FetchError`` when the index cannot be fetched,
    ``ResolutionError`` when no chapter matches it and ``PoolEmptyError`` when
    the matched chapters yield no questions. Individual chapter failures only
    produce warnings.
    """
    limit = clamp_max_questions(max_questions)
    duration = clamp_duration(duration_seconds)

    index = client.fetch_index()
    chapter_to_subject = resolve_chapters(index, chapters)
    resolved = resolved_in_request_order(chapters, chapter_to_subject)
    if not resolved:
        raise ResolutionError(
            "No chapters matched index.json. Check spelling/case.",
            requested=list(chapters),
            subjects=subject_names(index),
        )

    results = fetch_chapters(client, resolved, chapter_to_subject, max_workers)

    warnings: List[str] = []
    failed: List[str] = []
    parse_errors: List[Dict[str, Any]] = []
    for result in results:
        if result.error is not None:
            failed.append(result.chapter)
            warnings.append(f"Chapter '{result.chapter}' could not be fetched.")
            _assembly_logger.warning(
                "chapter_fetch_failed",
                extra={
                    "event": "chapter_fetch_failed",
                    "chapter": result.chapter,
                    "subject": result.subject,
                    "url": result.error.url,
                    "status": result.error.status,
                },
            )
            continue
        if result.parse_errors:
            _assembly_logger.info(
                "chapter_parse_errors",
                extra={
                    "event": "chapter_parse_errors",
                    "chapter": result.chapter,
                    "count": len(result.parse_errors),
                },
            )
            parse_errors.extend(
                {"chapter": result.chapter, **err.to_dict()}
                for err in result.parse_errors
            )

    pool = build_pool(result.questions for result in results)
    if not pool:
        raise PoolEmptyError(
            "No questions found for the requested chapters.",
            chapters=resolved,
            resolved=chapter_to_subject,
            failed=failed or None,
        )

    questions = sample_questions(pool, limit, rng)
    created = now or datetime.now(timezone.utc)
    payload = MockPayload(
        created_at=_iso_utc(created),
        expires_at=_iso_utc(created + timedelta(seconds=duration)),
        duration_seconds=duration,
        max_questions=limit,
        chapters=resolved,
        questions=questions,
    )

    _assembly_logger.info(
        "mock_assembled",
        extra={
            "event": "mock_assembled",
            "chapters": resolved,
            "pool_size": len(pool),
            "question_count": len(questions),
            "failed_chapters": failed,
        },
    )
    return AssembledMock(
        payload=payload,
        warnings=warnings,
        failed_chapters=failed,
        parse_errors=cap_diagnostics(parse_errors),
    )
