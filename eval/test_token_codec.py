"""Token encode/decode, fail-closed decoding and share-link helpers."""

from __future__ import annotations

import base64
import gzip
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.errors import MissingTokenError, PayloadInvalidError, TokenDecodeError
from src.models.schemas import MockOption, MockPayload, MockQuestion, MockSource
from src.token_codec import (
    build_share_url,
    decode_token,
    encode_token,
    extract_token,
    session_storage_key,
)


def _payload() -> MockPayload:
    return MockPayload(
        created_at="2024-05-01T10:00:00.000Z",
        expires_at="2024-05-01T10:20:00.000Z",
        duration_seconds=1200,
        max_questions=10,
        chapters=["Motion in a Plane", "Thermodynamics"],
        questions=[
            MockQuestion(
                id="Physics::Motion in a Plane::f1::0",
                subject="Physics",
                chapter="Motion in a Plane",
                type="mcq",
                exam_html="<b>2023</b>",
                prompt_html="Range of a projectile at $45^\\circ$ — ±√2?",
                options=[MockOption(key="A", html="10"), MockOption(key="B", html="20")],
                correct_answer="B",
                source=MockSource(file="f1", record_title="Shift 1"),
            ),
            MockQuestion(
                id="Chemistry::Thermodynamics::f2::3",
                subject="Chemistry",
                chapter="Thermodynamics",
                type="value",
                prompt_html="ΔH in kJ?",
            ),
        ],
    )


def _raw_token(obj) -> str:
    data = gzip.compress(json.dumps(obj).encode("utf-8"))
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def test_round_trip():
    payload = _payload()
    assert decode_token(encode_token(payload)) == payload


def test_token_is_url_safe_and_unpadded():
    token = encode_token(_payload())
    assert not set(token) & {"+", "/", "="}


def test_encoding_is_deterministic():
    assert encode_token(_payload()) == encode_token(_payload())


def test_wire_format_uses_camel_case():
    token = encode_token(_payload())
    padded = token + "=" * (-len(token) % 4)
    data = json.loads(gzip.decompress(base64.urlsafe_b64decode(padded)))
    assert data["durationSeconds"] == 1200
    assert data["questions"][0]["correctAnswer"] == "B"
    assert data["questions"][0]["promptHtml"].startswith("Range")
    assert "correctAnswer" not in data["questions"][1]


def test_missing_token_is_distinct_error():
    with pytest.raises(MissingTokenError):
        decode_token("")
    with pytest.raises(MissingTokenError):
        decode_token("   ")


@pytest.mark.parametrize(
    "token",
    [
        "!!!not-base64!!!",
        base64.urlsafe_b64encode(b"plain bytes, not gzip").decode().rstrip("="),
        base64.urlsafe_b64encode(gzip.compress(b"{not json")).decode().rstrip("="),
    ],
)
def test_corrupt_tokens_fail_closed(token):
    with pytest.raises(TokenDecodeError):
        decode_token(token)


def test_truncated_token_fails_closed():
    token = encode_token(_payload())
    with pytest.raises((TokenDecodeError, PayloadInvalidError)):
        decode_token(token[: len(token) // 2])


def test_empty_question_list_is_invalid_payload():
    data = json.loads(json.dumps(_payload().model_dump(mode="json", by_alias=True)))
    data["questions"] = []
    with pytest.raises(PayloadInvalidError):
        decode_token(_raw_token(data))


def test_shape_invalid_payload():
    with pytest.raises(PayloadInvalidError):
        decode_token(_raw_token(["not", "an", "object"]))
    with pytest.raises(PayloadInvalidError):
        decode_token(_raw_token({"questions": [{"id": "x"}]}))


def test_session_storage_key_is_bounded():
    token = "x" * 500
    key = session_storage_key(token)
    assert key == "mock_start_v1:" + "x" * 48
    assert session_storage_key("abc") == "mock_start_v1:abc"


def test_share_url_and_extract():
    url = build_share_url("https://mocks.example.com/", "tok_en-1")
    assert url == "https://mocks.example.com/mock?m=tok_en-1"
    assert extract_token(url) == "tok_en-1"
    assert extract_token("  tok_en-1 ") == "tok_en-1"
    assert extract_token("https://mocks.example.com/mock") == ""


def test_deeply_nested_json_fails_closed():
    data = gzip.compress(("[" * 200_000 + "]" * 200_000).encode("utf-8"))
    token = base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")
    assert len(token) < 2000
    with pytest.raises(TokenDecodeError):
        decode_token(token)
