"""Error taxonomy shared by mock assembly and the exam client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

MAX_DIAGNOSTICS = 10


@dataclass(frozen=True)
class ParseError:
    """One malformed JSONL line. Collected, never raised."""

    line: int
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"line": self.line, "message": self.message}


def cap_diagnostics(items: List[Any], limit: int = MAX_DIAGNOSTICS) -> List[Any]:
    return list(items[:limit])


class MockError(Exception):
    """Base error carrying an HTTP-ish status and a structured body."""

    status_code = 500

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        for key, value in self.context.items():
            if value is not None:
                body[key] = value
        return body


class ResolutionError(MockError):
    """No requested chapter matched the corpus index."""

    status_code = 404


class FetchError(MockError):
    """Upstream corpus fetch failed."""

    status_code = 502

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status: Optional[int] = None,
        **context: Any,
    ) -> None:
        super().__init__(message, url=url, status=status, **context)
        self.url = url
        self.status = status


class PoolEmptyError(MockError):
    """Every resolved chapter contributed zero questions."""

    status_code = 404


class MissingTokenError(MockError):
    """No mock token was supplied."""

    status_code = 400


class TokenDecodeError(MockError):
    """Token failed base64, gzip, or JSON decoding."""

    status_code = 422


class PayloadInvalidError(MockError):
    """Token decoded but the payload is empty or has the wrong shape."""

    status_code = 422


class RateLimitedError(MockError):
    """Client exhausted its create/score budget for the current window."""

    status_code = 429

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            "Rate limit exceeded. Please retry later.", retryAfter=retry_after
        )
        self.retry_after = retry_after
