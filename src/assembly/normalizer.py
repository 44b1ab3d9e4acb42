"""Record normalizer — raw JSONL records to :class:`MockQuestion` entries."""

from __future__ import annotations

from html.parser import HTMLParser
from typing import Any, List, Mapping, Optional, Tuple

from ..models.schemas import MockOption, MockQuestion, MockSource

_OPTION_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LIST_TAGS = {"ul", "ol"}


class _ListItemCollector(HTMLParser):
    """Collect the inner markup of every ``<li>`` in document order."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=False)
        self.items: List[List[str]] = []
        # (item index, list depth at which it was opened)
        self._open: List[Tuple[int, int]] = []
        self._list_depth = 0

    def _append(self, chunk: str) -> None:
        for item_index, _ in self._open:
            self.items[item_index].append(chunk)

    def _close_items_at_or_below(self, depth: int) -> None:
        while self._open and self._open[-1][1] >= depth:
            self._open.pop()
            self._append("</li>")

    def handle_starttag(self, tag: str, attrs: Any) -> None:
        if tag == "li":
            # An unclosed sibling <li> ends where the next one starts.
            self._close_items_at_or_below(self._list_depth)
        self._append(self.get_starttag_text() or f"<{tag}>")
        if tag in _LIST_TAGS:
            self._list_depth += 1
        elif tag == "li":
            self.items.append([])
            self._open.append((len(self.items) - 1, self._list_depth))

    def handle_startendtag(self, tag: str, attrs: Any) -> None:
        self._append(self.get_starttag_text() or f"<{tag}/>")

    def handle_endtag(self, tag: str) -> None:
        if tag == "li":
            if self._open and self._open[-1][1] == self._list_depth:
                self._open.pop()
            self._append("</li>")
            return
        if tag in _LIST_TAGS and self._list_depth > 0:
            self._close_items_at_or_below(self._list_depth)
            self._list_depth -= 1
        self._append(f"</{tag}>")

    def handle_data(self, data: str) -> None:
        self._append(data)

    def handle_entityref(self, name: str) -> None:
        self._append(f"&{name};")

    def handle_charref(self, name: str) -> None:
        self._append(f"&#{name};")


def _option_key(position: int) -> str:
    if position < len(_OPTION_LETTERS):
        return _OPTION_LETTERS[position]
    return str(position + 1)


def parse_options(options_html: Optional[str]) -> List[MockOption]:
    """Split options markup into lettered options.

    Every list item becomes one option keyed A, B, C, ... in the order it is
    encountered. Markup without list items is a single option ``A``.
    """
    html = (options_html or "").strip()
    if not html:
        return []

    collector = _ListItemCollector()
    collector.feed(html)
    collector.close()

    if not collector.items:
        return [MockOption(key="A", html=html)]
    return [
        MockOption(key=_option_key(i), html="".join(parts).strip())
        for i, parts in enumerate(collector.items)
    ]


def infer_correct_answer(record: Mapping[str, Any], index: int) -> Optional[str]:
    answer_key = record.get("answer_key")
    if not isinstance(answer_key, list) or index >= len(answer_key):
        return None
    raw = answer_key[index]
    text = "" if raw is None else str(raw).strip()
    return text or None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_record(
    record: Any, subject: str, chapter: str
) -> List[MockQuestion]:
    """Turn one parsed storage record into normalized questions."""
    if not isinstance(record, Mapping):
        return []
    raw_questions = record.get("questions")
    if not isinstance(raw_questions, list):
        return []

    record_file = str(record.get("file") or "")
    record_title = record.get("title")
    source = MockSource(
        file=record_file,
        record_title=record_title if isinstance(record_title, str) else None,
    )

    questions: List[MockQuestion] = []
    for i, raw in enumerate(raw_questions):
        if not isinstance(raw, Mapping):
            continue
        options_html = _text(raw.get("options_html"))
        question_type = "mcq" if options_html else "value"
        questions.append(
            MockQuestion(
                id=f"{subject}::{chapter}::{record_file}::{i}",
                subject=subject,
                chapter=chapter,
                type=question_type,
                exam_html=_text(raw.get("exam_html")),
                prompt_html=_text(raw.get("text_html")),
                options=parse_options(options_html) if question_type == "mcq" else [],
                correct_answer=infer_correct_answer(record, i),
                source=source,
            )
        )
    return questions
