"""Corpus index resolver — maps requested chapter names to subjects."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Sequence

_SEPARATORS = re.compile(r"[-_]+")
_WHITESPACE = re.compile(r"\s+")
_ENCODED_COMMA = re.compile(r"%2C", re.IGNORECASE)


def normalize_topic(name: Any) -> str:
    """Case-, whitespace- and separator-insensitive matching key."""
    text = str(name or "").strip().lower()
    text = _SEPARATORS.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def split_chapter_param(raw: str) -> List[str]:
    """Split a comma-separated chapter list, tolerating escaped commas."""
    cleaned = _ENCODED_COMMA.sub(",", raw or "")
    return [part.strip() for part in cleaned.split(",") if part.strip()]


def index_subjects(index: Any) -> Mapping[str, Any]:
    """The ``subjects`` mapping of an index document, or ``{}`` if malformed."""
    subjects = index.get("subjects") if isinstance(index, Mapping) else None
    return subjects if isinstance(subjects, Mapping) else {}


def subject_names(index: Mapping[str, Any]) -> List[str]:
    return list(index_subjects(index).keys())


def topic_list(node: Any) -> List[str]:
    """``topicList`` is authoritative; otherwise the sorted ``topics`` keys."""
    if not isinstance(node, Mapping):
        return []
    listed = node.get("topicList")
    if isinstance(listed, list):
        return [str(t) for t in listed]
    topics = node.get("topics")
    if isinstance(topics, Mapping):
        return sorted(str(t) for t in topics.keys())
    return []


def resolve_chapters(
    index: Mapping[str, Any], chapters: Sequence[str]
) -> Dict[str, str]:
    """Return ``{requested name: subject}`` for every chapter found in the index.

    Keys keep the caller's original spelling so fetch URLs can be built from
    it. Unknown chapters are dropped, and of several requested spellings of
    the same chapter only the first is kept. When a name matches topics under
    several subjects, the first subject in index order wins.
    """
    by_key: Dict[str, str] = {}
    for chapter in chapters:
        by_key.setdefault(normalize_topic(chapter), chapter)

    resolved: Dict[str, str] = {}
    for subject_name, node in index_subjects(index).items():
        for topic in topic_list(node):
            original = by_key.get(normalize_topic(topic))
            if original is not None:
                resolved.setdefault(original, subject_name)
    return resolved


def resolved_in_request_order(
    chapters: Sequence[str], mapping: Mapping[str, str]
) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for chapter in chapters:
        if chapter in mapping and chapter not in seen:
            seen.add(chapter)
            ordered.append(chapter)
    return ordered
