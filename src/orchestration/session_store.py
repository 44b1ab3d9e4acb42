"""Device-local key-value storage for exam session clocks."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Protocol

from ..token_codec import session_storage_key
from ..util.jsonio import load_json, save_json

_store_logger = logging.getLogger("mock.session")


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Process-local store, mainly for tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value


class JsonFileStore:
    """Store backed by one JSON object on local disk.

    The file is re-read on every access so separate processes on the same
    device observe each other's writes.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = load_json(self._path).get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = load_json(self._path)
            data[key] = value
            save_json(self._path, data)


def _parse_start(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return int(value)


def read_or_init_session_start(
    store: KeyValueStore, token: str, now_ms: int
) -> int:
    """Return the persisted session start for ``token``, writing ``now_ms`` if absent.

    Read-before-write: the first caller to find no value wins and every later
    caller reads it back. Storage failures degrade to ``now_ms``.
    """
    key = session_storage_key(token)
    try:
        existing = _parse_start(store.get(key))
        if existing is not None:
            return existing
        store.set(key, str(int(now_ms)))
    except OSError as exc:
        _store_logger.warning(
            "session_store_unavailable",
            extra={"event": "session_store_unavailable", "error": str(exc)},
        )
    return int(now_ms)
