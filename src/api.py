"""HTTP API for assembling, decoding and scoring shareable mock tests."""

from __future__ import annotations

from collections import defaultdict, deque
from contextlib import asynccontextmanager
from functools import lru_cache
import logging
import math
from threading import Lock
from time import monotonic, perf_counter
from typing import Any, Callable, Deque, Dict, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .assembly.builder import assemble_mock
from .assembly.resolver import (
    index_subjects,
    split_chapter_param,
    subject_names,
    topic_list,
)
from .config import Settings, env_int, load_settings
from .corpus_client import CorpusClient
from .errors import FetchError, MockError, RateLimitedError, cap_diagnostics
from .exam.scoring import score
from .models.schemas import (
    CreateMockResponse,
    MockPayload,
    ScoreRequest,
    ScoreResult,
    TopicListResponse,
)
from .observability.context import reset_request_id, set_request_id
from .observability.logging_setup import configure_logging
from .token_codec import TOKEN_QUERY_PARAM, build_share_url, decode_token, encode_token


@asynccontextmanager
async def _app_lifespan(_: FastAPI):
    configure_logging()
    settings = _settings()
    logging.getLogger("mock.api").info(
        "api_startup",
        extra={
            "event": "api_startup",
            "corpus_base_url": settings.corpus_base_url,
            "public_base_url": settings.public_base_url,
        },
    )
    yield


app = FastAPI(
    title="Mock Test API",
    description="Assemble randomized practice mocks into shareable tokens",
    version="1.0.0",
    lifespan=_app_lifespan,
)

_http_logger = logging.getLogger("mock.http")
_NO_STORE = {"Cache-Control": "no-store"}


class _ClientRateLimiter:
    """Sliding-window budget of create/score calls per client address.

    Only the endpoints that do real work (assembly fans out to the corpus,
    scoring inflates a token) draw from the budget.
    """

    def __init__(
        self,
        budget: int,
        window_seconds: int,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self.budget = max(1, budget)
        self.window_seconds = max(1, window_seconds)
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def hit(self, client: str) -> None:
        """Record one call for ``client``; raise once the budget is spent."""
        now = self._clock()
        with self._lock:
            hits = self._hits[client]
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()
            if len(hits) >= self.budget:
                wait = hits[0] + self.window_seconds - now
                raise RateLimitedError(retry_after=max(1, math.ceil(wait)))
            hits.append(now)


@lru_cache(maxsize=1)
def _settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def _corpus_client() -> CorpusClient:
    return CorpusClient(_settings())


@lru_cache(maxsize=1)
def _rate_limiter() -> Optional[_ClientRateLimiter]:
    budget = env_int("API_RATE_LIMIT_REQUESTS_PER_MINUTE", 60, minimum=0)
    if budget <= 0:
        return None
    return _ClientRateLimiter(
        budget=budget,
        window_seconds=env_int("API_RATE_LIMIT_WINDOW_SECONDS", 60, minimum=1),
    )


def _client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _enforce_rate_limit(request: Request) -> None:
    limiter = _rate_limiter()
    if limiter is not None:
        limiter.hit(_client_address(request))


def _error_response(exc: MockError) -> JSONResponse:
    headers = dict(_NO_STORE)
    if isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


def _share_origin(request: Request) -> str:
    configured = _settings().public_base_url
    if configured:
        return configured
    return str(request.base_url).rstrip("/")


@app.exception_handler(MockError)
async def _mock_error_handler(_: Request, exc: MockError) -> JSONResponse:
    return _error_response(exc)


def _status_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


@app.middleware("http")
async def _request_logging(request: Request, call_next: Callable[..., Any]):
    """Tag the request with an id and log one line per request.

    Tokens are never logged; requests carrying one log its length instead.
    """
    request_id = request.headers.get("x-request-id") or uuid4().hex
    ctx_token = set_request_id(request_id)
    started = perf_counter()
    fields: Dict[str, Any] = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": _client_address(request),
    }
    token = request.query_params.get(TOKEN_QUERY_PARAM)
    if token:
        fields["token_chars"] = len(token)

    try:
        response = await call_next(request)
    except Exception:
        _http_logger.exception(
            "request_failed",
            extra={
                "event": "request_failed",
                "status_code": 500,
                "duration_ms": round((perf_counter() - started) * 1000, 2),
                **fields,
            },
        )
        raise
    finally:
        reset_request_id(ctx_token)

    response.headers["x-request-id"] = request_id
    _http_logger.log(
        _status_level(response.status_code),
        "request_completed",
        extra={
            "event": "request_completed",
            "status_code": response.status_code,
            "duration_ms": round((perf_counter() - started) * 1000, 2),
            **fields,
        },
    )
    return response


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


@app.get(
    "/v1/mock/create",
    response_model=CreateMockResponse,
    dependencies=[Depends(_enforce_rate_limit)],
)
def create_mock(
    request: Request,
    subject: str = "",
    max_questions: Optional[str] = Query(None, alias="max"),
    duration: Optional[str] = None,
):
    """Assemble a mock. ``subject`` holds comma-separated chapter names."""
    chapters = split_chapter_param(subject)
    if not chapters:
        return JSONResponse(
            {"error": "Missing subject param. Provide comma-separated chapter names."},
            status_code=400,
            headers=_NO_STORE,
        )

    assembled = assemble_mock(
        chapters,
        _corpus_client(),
        max_questions=max_questions,
        duration_seconds=duration,
        max_workers=_settings().max_workers,
    )
    token = encode_token(assembled.payload)
    body = CreateMockResponse(
        share_url=build_share_url(_share_origin(request), token),
        token_size=len(token),
        warnings=assembled.warnings,
    )
    return JSONResponse(
        body.model_dump(mode="json", by_alias=True),
        headers=_NO_STORE,
    )


@app.get("/mock", response_model=MockPayload, response_model_by_alias=True)
def view_mock(m: str = ""):
    payload = decode_token(m)
    return JSONResponse(
        payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    )


@app.post(
    "/v1/mock/score",
    response_model=ScoreResult,
    response_model_by_alias=True,
    dependencies=[Depends(_enforce_rate_limit)],
)
def score_mock(req: ScoreRequest):
    payload = decode_token(req.token)
    result = score(payload, req.answers)
    return JSONResponse(result.model_dump(mode="json", by_alias=True))


@app.get("/v1/topics/{subject}", response_model=TopicListResponse)
def list_topics(subject: str):
    index = _corpus_client().fetch_index()
    node = index_subjects(index).get(subject)
    if node is None:
        return JSONResponse(
            {
                "error": f"Invalid subject: {subject}",
                "subjects": subject_names(index),
            },
            status_code=404,
        )
    topics = topic_list(node)
    body = TopicListResponse(subject=subject, topics=topics, count=len(topics))
    return JSONResponse(body.model_dump(mode="json", by_alias=True))


@app.get("/v1/sub/{subject}/topic/{topic}")
def topic_records(subject: str, topic: str):
    client = _corpus_client()
    try:
        fetched = client.fetch_topic(subject, topic)
    except FetchError as exc:
        body = {"id": subject, "topic": topic, **exc.to_dict()}
        if exc.status == 404:
            return JSONResponse(body, status_code=404)
        if "parseErrors" in exc.context:
            return JSONResponse(body, status_code=500)
        return JSONResponse(body, status_code=502)

    return {
        "id": subject,
        "topic": topic,
        "url": fetched.url,
        "count": len(fetched.records),
        "parseErrors": [e.to_dict() for e in cap_diagnostics(fetched.parse_errors)],
        "data": fetched.records,
    }
