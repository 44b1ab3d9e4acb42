"""JSON / JSONL I/O helpers with defensive parsing."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Tuple

from ..errors import ParseError

_LINE_SPLIT = re.compile(r"\r?\n")


def load_json(path: Path) -> Dict[str, Any]:
    """Load JSON from a file, returning empty dict on missing/corrupt file."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_json(path: Path, data: Dict[str, Any]) -> None:
    """Persist dict as pretty-printed JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8"
    )


def parse_jsonl(text: str) -> Tuple[List[Any], List[ParseError], int]:
    """Parse newline-delimited JSON.

    Blank lines are ignored. Returns ``(records, parse_errors, total_lines)``
    where ``total_lines`` counts non-blank lines and each parse error carries
    its 1-based position among them.
    """
    lines = [line for line in _LINE_SPLIT.split(text) if line.strip()]
    records: List[Any] = []
    errors: List[ParseError] = []
    for number, line in enumerate(lines, 1):
        try:
            records.append(json.loads(line))
        except json.JSONDecodeError as exc:
            errors.append(ParseError(line=number, message=exc.msg))
    return records, errors, len(lines)
