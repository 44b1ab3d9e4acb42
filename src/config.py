"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CORPUS_BASE_URL = (
    "https://raw.githubusercontent.com/skunktank69/jee_mocks_db/refs/heads/master/mocks_jsonl"
)


def env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return max(minimum, value)


def env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        return default
    return max(minimum, value)


def _env_str(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    corpus_base_url: str
    corpus_index_url: str
    http_timeout_seconds: float
    index_ttl_seconds: int
    max_workers: int
    public_base_url: Optional[str]
    session_store_path: Path
    log_level: str
    log_format: str


def load_settings() -> Settings:
    base_url = (_env_str("CORPUS_BASE_URL") or DEFAULT_CORPUS_BASE_URL).rstrip("/")
    return Settings(
        corpus_base_url=base_url,
        corpus_index_url=_env_str("CORPUS_INDEX_URL") or f"{base_url}/index.json",
        http_timeout_seconds=env_float("CORPUS_HTTP_TIMEOUT_SECONDS", 10.0, minimum=0.5),
        index_ttl_seconds=env_int("CORPUS_INDEX_TTL_SECONDS", 3600, minimum=0),
        max_workers=env_int("CORPUS_MAX_WORKERS", 8, minimum=1),
        public_base_url=(_env_str("PUBLIC_BASE_URL") or "").rstrip("/") or None,
        session_store_path=Path(
            os.environ.get("SESSION_STORE_PATH", ".data/sessions.json")
        ),
        log_level=(_env_str("APP_LOG_LEVEL") or "INFO").upper(),
        log_format=(_env_str("APP_LOG_FORMAT") or "json").lower(),
    )
