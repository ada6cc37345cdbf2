"""
Async caller for the gateway: roast submission with countdown handling and
fire-and-forget analytics events.
"""

import asyncio
import random
import string
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

import httpx
from pydantic import ValidationError

from shared.logging import get_logger

from service_gateway.app.domain.models import RateLimitSignal, RoastResult
from service_gateway.app.domain.tickers import normalize_tickers

from .retry_state import RetryStateMachine

DEFAULT_RETRY_AFTER_SECONDS = 60


def new_session_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"session-{int(time.time() * 1000)}-{suffix}"


class GatewayClient:
    """Talks to the gateway on behalf of one user session.

    Use as an async context manager, or call ``close()``; closing cancels
    the retry countdown and any event submissions still in flight.
    """

    def __init__(
        self,
        base_url: str,
        analytics_api_key: str,
        timeout: float = 30.0,
        tick_interval: float = 1.0,
        session_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.http = httpx.AsyncClient(base_url=base_url.rstrip('/'), timeout=timeout, transport=transport)
        self.analytics_api_key = analytics_api_key
        self.session_id = session_id or new_session_id()
        self.state = RetryStateMachine(tick_interval=tick_interval)
        self.last_rate_limit: Optional[RateLimitSignal] = None
        self._event_tasks: Set[asyncio.Task] = set()
        self.logger = get_logger("client.gateway")

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def submit_roast(self, text: str) -> Optional[RoastResult]:
        """Submit comma-separated tickers.

        Returns the result on success and None otherwise; ``state`` tells
        which. Raises InvalidInputError before any state change when the
        text holds no valid tickers, and InvalidTransition while a request
        is pending or the countdown is running.
        """
        tickers = normalize_tickers(text)
        self.state.submit()
        self.track_event(
            "portfolio_roast_request",
            tickerCount=len(tickers),
            tickers=tickers,
        )

        try:
            response = await self.http.post("/api/roast", json={"tickers": tickers})
        except httpx.HTTPError as e:
            self.logger.warning("Roast request failed", error=str(e))
            self.state.fail(str(e))
            return None

        if response.status_code == 429:
            self.last_rate_limit = self._rate_limit_signal(response)
            self.state.rate_limit(self.last_rate_limit.retry_after_seconds)
            return None

        if not response.is_success:
            self.state.fail(f"Gateway responded with status {response.status_code}")
            return None

        try:
            result = RoastResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            self.state.fail(f"Undecodable roast result: {e}")
            return None

        self.state.succeed()
        return result

    @staticmethod
    def _rate_limit_signal(response: httpx.Response) -> RateLimitSignal:
        try:
            body = response.json()
        except ValueError:
            body = {}
        details = body.get("details", {}) if isinstance(body, dict) else {}

        retry_after = response.headers.get("Retry-After", details.get("retryAfterSeconds"))
        try:
            seconds = int(retry_after)
        except (TypeError, ValueError):
            seconds = DEFAULT_RETRY_AFTER_SECONDS

        message = body.get("message") if isinstance(body, dict) else None
        return RateLimitSignal(
            retry_after_seconds=max(0, seconds),
            message=message or "Rate limit exceeded",
        )

    def track_page_view(self, page: str) -> None:
        self.track_event("page_view", page=page)

    def track_event(self, event_name: str, **fields: Any) -> None:
        """Send an analytics event without blocking the caller."""
        payload: Dict[str, Any] = {
            "event": event_name,
            **fields,
            "sessionId": self.session_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            task = asyncio.get_running_loop().create_task(self._send_event(payload))
        except RuntimeError:
            self.logger.debug("No running loop, analytics event dropped", event_name=event_name)
            return
        self._event_tasks.add(task)
        task.add_done_callback(self._event_tasks.discard)

    async def _send_event(self, payload: Dict[str, Any]) -> None:
        try:
            response = await self.http.post(
                "/api/analytics",
                json=payload,
                headers={"Authorization": f"Bearer {self.analytics_api_key}"},
            )
        except httpx.HTTPError as e:
            self.logger.debug("Analytics event not delivered", error=str(e))
            return
        if not response.is_success:
            self.logger.debug("Analytics event rejected", status_code=response.status_code)

    async def flush_events(self) -> None:
        """Wait for in-flight analytics events."""
        if self._event_tasks:
            await asyncio.gather(*list(self._event_tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.state.close()
        for task in list(self._event_tasks):
            task.cancel()
        await asyncio.gather(*list(self._event_tasks), return_exceptions=True)
        self._event_tasks.clear()
        await self.http.aclose()
