"""
Translation of upstream throttling responses into caller-facing signals.
"""

import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import httpx

from shared.errors import RateLimitedError
from shared.logging import get_logger

from ..domain.models import RateLimitSignal

DEFAULT_MESSAGE = "Rate limit exceeded. Please wait before making another request."


class RateLimitSignalTranslator:
    """Builds a RateLimitSignal from an upstream 429 response.

    Never sleeps or retries; retrying belongs to the caller.
    """

    def __init__(self, default_retry_after: int = 60):
        self.default_retry_after = default_retry_after
        self.logger = get_logger("gateway.rate_limit_translator")

    def translate(self, response: httpx.Response) -> RateLimitSignal:
        body = self._json_body(response)
        headers = response.headers

        retry_after = self._as_int(body.get("retryAfter"))
        if retry_after is None:
            retry_after = self._parse_retry_after_header(headers.get("Retry-After"))
        reset_at = self._as_int(headers.get("X-RateLimit-Reset"))
        if retry_after is None and reset_at is not None:
            retry_after = reset_at - int(time.time())
        if retry_after is None:
            retry_after = self.default_retry_after
        retry_after = max(0, retry_after)

        message = body.get("message") or body.get("error") or DEFAULT_MESSAGE
        limit = self._as_int(headers.get("X-RateLimit-Limit"))
        remaining = self._as_int(headers.get("X-RateLimit-Remaining"))

        signal = RateLimitSignal(
            retry_after_seconds=retry_after,
            message=str(message),
            limit=limit if limit is not None else 1,
            remaining=remaining if remaining is not None else 0,
            reset_at=reset_at,
        )
        self.logger.info(
            "Translated upstream rate limit",
            retry_after_seconds=signal.retry_after_seconds,
            limit=signal.limit,
            remaining=signal.remaining,
        )
        return signal

    def to_error(self, response: httpx.Response) -> RateLimitedError:
        signal = self.translate(response)
        return RateLimitedError(signal, headers=self.headers_for(signal))

    @staticmethod
    def headers_for(signal: RateLimitSignal) -> Dict[str, str]:
        reset_at = signal.reset_at
        if reset_at is None:
            reset_at = int(time.time()) + signal.retry_after_seconds
        return {
            "Retry-After": str(signal.retry_after_seconds),
            "X-RateLimit-Limit": str(signal.limit),
            "X-RateLimit-Remaining": str(signal.remaining),
            "X-RateLimit-Reset": str(reset_at),
        }

    @staticmethod
    def _json_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _as_int(value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return None

    def _parse_retry_after_header(self, value: Optional[str]) -> Optional[int]:
        if not value:
            return None
        seconds = self._as_int(value)
        if seconds is not None:
            return seconds
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return int((when - datetime.now(timezone.utc)).total_seconds())
