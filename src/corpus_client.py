"""Corpus client — isolates every fetch against the question corpus.

The corpus is a tree of ``<Subject>/<Topic>.jsonl`` files plus an
``index.json`` document, served over HTTP(S) or read from a ``file://`` URL.
Topic files are always fetched fresh; only the index is cached in-process.
"""

from __future__ import annotations

import http.client
import json
import logging
from dataclasses import dataclass, field
from threading import Lock
from time import perf_counter, time
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .config import Settings, load_settings
from .errors import FetchError, ParseError, cap_diagnostics
from .util.jsonio import parse_jsonl

_corpus_logger = logging.getLogger("mock.corpus")


def _short_error(exc: Exception, max_len: int = 240) -> str:
    text = " ".join(str(exc).split())
    if len(text) <= max_len:
        return text
    return f"{text[: max_len - 3].rstrip()}..."


@dataclass
class TopicFetch:
    url: str
    records: List[Any] = field(default_factory=list)
    parse_errors: List[ParseError] = field(default_factory=list)
    total_lines: int = 0


class CorpusClient:
    """Fetches the index document and topic record files."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or load_settings()
        self._index: Optional[Dict[str, Any]] = None
        self._index_expires_at = 0.0
        self._lock = Lock()

    @property
    def base_url(self) -> str:
        return self._settings.corpus_base_url

    def topic_url(self, subject: str, topic: str) -> str:
        return f"{self.base_url}/{quote(subject, safe='')}/{quote(topic, safe='')}.jsonl"

    def _fetch_text(self, url: str) -> str:
        started = perf_counter()
        status: Optional[int] = None
        try:
            request = Request(url, headers={"Accept": "application/json, text/plain"})
            with urlopen(request, timeout=self._settings.http_timeout_seconds) as response:
                status = getattr(response, "status", None)
                raw = response.read().decode("utf-8")
        except HTTPError as exc:
            raise FetchError(
                "Failed to fetch corpus resource",
                url=url,
                status=exc.code,
            ) from exc
        except (URLError, OSError, http.client.HTTPException, UnicodeDecodeError) as exc:
            raise FetchError(
                f"Failed to fetch corpus resource: {_short_error(exc)}",
                url=url,
            ) from exc
        finally:
            _corpus_logger.debug(
                "corpus_fetch",
                extra={
                    "event": "corpus_fetch",
                    "url": url,
                    "status_code": status,
                    "duration_ms": round((perf_counter() - started) * 1000, 2),
                },
            )
        return raw

    def fetch_index(self, force: bool = False) -> Dict[str, Any]:
        """Return the index document, reusing a cached copy until its TTL lapses."""
        now = time()
        with self._lock:
            if not force and self._index is not None and now < self._index_expires_at:
                return self._index

        url = self._settings.corpus_index_url
        raw = self._fetch_text(url)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise FetchError("Corpus index is not valid JSON", url=url) from exc
        if not isinstance(data, dict):
            raise FetchError("Corpus index must be a JSON object", url=url)

        with self._lock:
            self._index = data
            self._index_expires_at = now + self._settings.index_ttl_seconds
        return data

    def fetch_topic(self, subject: str, topic: str) -> TopicFetch:
        """Fetch and parse one topic's JSONL file.

        Malformed lines are collected as parse errors. A non-empty file where
        no line parses raises :class:`FetchError`.
        """
        url = self.topic_url(subject, topic)
        records, parse_errors, total_lines = parse_jsonl(self._fetch_text(url))
        if total_lines > 0 and not records:
            raise FetchError(
                "JSONL fetched but no valid lines parsed",
                url=url,
                parseErrors=[e.to_dict() for e in cap_diagnostics(parse_errors)],
            )
        return TopicFetch(
            url=url,
            records=records,
            parse_errors=parse_errors,
            total_lines=total_lines,
        )
