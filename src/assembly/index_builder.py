"""Build ``index.json`` for a local corpus laid out as ``<Subject>/<Topic>.jsonl``."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..util.jsonio import save_json


def _sort_key(name: str):
    return (name.casefold(), name)


def topic_from_file(file_name: str) -> str:
    """``"Motion in a Plane.jsonl"`` → ``"Motion in a Plane"``."""
    if file_name.lower().endswith(".jsonl"):
        return file_name[: -len(".jsonl")]
    return file_name


def build_index(root: Path) -> Dict[str, Any]:
    root = Path(root).resolve()
    if not root.is_dir():
        raise FileNotFoundError(f"Corpus directory not found: {root}")

    subjects: Dict[str, Any] = {}
    for subject_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        topics: Dict[str, Any] = {}
        files = sorted(
            p for p in subject_dir.iterdir()
            if p.is_file() and p.name.lower().endswith(".jsonl")
        )
        for path in files:
            topic = topic_from_file(path.name)
            entry = topics.setdefault(topic, {"topic": topic, "files": []})
            entry["files"].append(
                {
                    "name": path.name,
                    "relPath": path.relative_to(root).as_posix(),
                }
            )

        subjects[subject_dir.name] = {
            "folderName": subject_dir.name,
            "topics": topics,
            "topicList": sorted(topics, key=_sort_key),
        }

    return {
        "subjects": subjects,
        "subjectList": sorted(subjects, key=_sort_key),
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "inputRoot": root.as_posix(),
    }


def write_index(root: Path, output: Optional[Path] = None) -> Path:
    """Scan ``root`` and write the index next to it (``root/index.json`` by default)."""
    target = Path(output) if output else Path(root) / "index.json"
    save_json(target, build_index(root))
    return target
