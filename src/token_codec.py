"""Mock token codec: JSON → gzip → URL-safe base64, and back.

The token is the only persisted representation of an exam. Decoding fails
closed: anything that is not a well-formed, non-empty payload raises.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib
from typing import Any
from urllib.parse import parse_qs, urlparse

from pydantic import ValidationError

from .errors import MissingTokenError, PayloadInvalidError, TokenDecodeError
from .models.schemas import MockPayload

SESSION_KEY_PREFIX = "mock_start_v1:"
SESSION_KEY_TOKEN_CHARS = 48
TOKEN_QUERY_PARAM = "m"


def payload_to_json(payload: MockPayload) -> str:
    return json.dumps(
        payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        ensure_ascii=False,
        separators=(",", ":"),
    )


def encode_token(payload: MockPayload) -> str:
    compressed = gzip.compress(payload_to_json(payload).encode("utf-8"), mtime=0)
    encoded = base64.b64encode(compressed, altchars=b"-_").decode("ascii")
    return encoded.rstrip("=")


def _b64url_to_bytes(token: str) -> bytes:
    padded = token + "=" * (-len(token) % 4)
    return base64.b64decode(padded, altchars=b"-_", validate=True)


def _decode_json(token: str) -> Any:
    try:
        raw = gzip.decompress(_b64url_to_bytes(token))
        return json.loads(raw.decode("utf-8"))
    except (
        binascii.Error,
        OSError,
        EOFError,
        zlib.error,
        UnicodeDecodeError,
        ValueError,
        RecursionError,
    ) as exc:
        raise TokenDecodeError("Failed to decode mock token.") from exc


def decode_token(token: str) -> MockPayload:
    token = (token or "").strip()
    if not token:
        raise MissingTokenError("Missing token. Open this page with /mock?m=...")

    data = _decode_json(token)
    if not isinstance(data, dict) or not data.get("questions"):
        raise PayloadInvalidError("Invalid mock payload.")
    try:
        return MockPayload.model_validate(data)
    except ValidationError as exc:
        raise PayloadInvalidError(
            "Invalid mock payload.",
            detail=[err["msg"] for err in exc.errors()][:10],
        ) from exc


def session_storage_key(token: str) -> str:
    return f"{SESSION_KEY_PREFIX}{token[:SESSION_KEY_TOKEN_CHARS]}"


def build_share_url(origin: str, token: str) -> str:
    return f"{origin.rstrip('/')}/mock?{TOKEN_QUERY_PARAM}={token}"


def extract_token(value: str) -> str:
    """Accept a bare token or a share URL carrying it in ``?m=``."""
    value = (value or "").strip()
    if "?" not in value and "://" not in value:
        return value
    values = parse_qs(urlparse(value).query).get(TOKEN_QUERY_PARAM)
    return values[0].strip() if values else ""
