"""CLI subcommands."""

from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src import main as cli
from src.assembly.resolver import normalize_topic
from src.corpus_client import TopicFetch
from src.errors import FetchError
from src.token_codec import decode_token, extract_token, session_storage_key


class _FakeCorpus:
    def __init__(self, settings=None):
        self.settings = settings

    def fetch_index(self, force=False):
        return {"subjects": {"Physics": {"topicList": ["Kinematics", "Optics"]}}}

    def fetch_topic(self, subject, topic):
        if normalize_topic(topic) != "kinematics":
            raise FetchError("Failed to fetch corpus resource", url=f"mem://{topic}", status=404)
        record = {
            "file": "k.html",
            "questions": [{"text_html": f"Q{i}"} for i in range(4)],
            "answer_key": ["1", "2", "3", "4"],
        }
        return TopicFetch(url="mem://Kinematics", records=[record], total_lines=1)


def _share_url(output: str) -> str:
    return next(line for line in output.splitlines() if "/mock?m=" in line).strip()


def test_create_prints_share_link(monkeypatch, capsys):
    monkeypatch.setattr(cli, "CorpusClient", _FakeCorpus)
    code = cli.main(
        ["create", "Kinematics", "--max", "3", "--duration", "300", "--origin", "https://x.test"]
    )
    assert code == 0
    url = _share_url(capsys.readouterr().out)
    assert url.startswith("https://x.test/mock?m=")
    payload = decode_token(extract_token(url))
    assert len(payload.questions) == 3
    assert payload.duration_seconds == 300


def test_create_resolves_lower_case_chapter(monkeypatch, capsys):
    monkeypatch.setattr(cli, "CorpusClient", _FakeCorpus)
    assert cli.main(["create", "kinematics", "--origin", "https://x.test"]) == 0
    payload = decode_token(extract_token(_share_url(capsys.readouterr().out)))
    assert payload.chapters == ["kinematics"]
    assert len(payload.questions) == 4


def test_create_reports_warnings(monkeypatch, capsys):
    monkeypatch.setattr(cli, "CorpusClient", _FakeCorpus)
    assert cli.main(["create", "Kinematics,Optics", "--origin", "https://x.test"]) == 0
    assert "Chapter 'Optics' could not be fetched." in capsys.readouterr().out


def test_create_unknown_chapter_fails(monkeypatch, capsys):
    monkeypatch.setattr(cli, "CorpusClient", _FakeCorpus)
    assert cli.main(["create", "Astrology"]) == 1
    assert "No chapters matched" in capsys.readouterr().out


def test_decode_round_trips_created_token(monkeypatch, capsys):
    monkeypatch.setattr(cli, "CorpusClient", _FakeCorpus)
    cli.main(["create", "Kinematics", "--origin", "https://x.test"])
    url = _share_url(capsys.readouterr().out)

    assert cli.main(["decode", url]) == 0
    decoded = json.loads(capsys.readouterr().out)
    assert decoded["chapters"] == ["Kinematics"]
    assert len(decoded["questions"]) == 4


def test_decode_bad_token(capsys):
    assert cli.main(["decode", "###"]) == 1
    assert "Failed to decode mock token." in capsys.readouterr().out


def test_index_command(tmp_path, capsys):
    (tmp_path / "Physics").mkdir()
    (tmp_path / "Physics" / "Optics.jsonl").write_text("{}\n", encoding="utf-8")
    assert cli.main(["index", str(tmp_path)]) == 0
    index = json.loads((tmp_path / "index.json").read_text(encoding="utf-8"))
    assert index["subjects"]["Physics"]["topicList"] == ["Optics"]


def test_index_missing_root(tmp_path):
    assert cli.main(["index", str(tmp_path / "absent")]) == 1


def test_take_records_start_in_configured_store(monkeypatch, capsys, tmp_path):
    monkeypatch.setattr(cli, "CorpusClient", _FakeCorpus)
    cli.main(["create", "Kinematics", "--origin", "https://x.test"])
    token = extract_token(_share_url(capsys.readouterr().out))

    store_path = tmp_path / "clocks" / "sessions.json"
    monkeypatch.setenv("SESSION_STORE_PATH", str(store_path))
    monkeypatch.setattr(cli, "run_exam", lambda session: session.submit())

    assert cli.main(["take", token]) == 0
    stored = json.loads(store_path.read_text(encoding="utf-8"))
    assert list(stored) == [session_storage_key(token)]
