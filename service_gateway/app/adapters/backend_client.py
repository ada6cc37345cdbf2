"""
Analysis backend client for Gateway.
"""

from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx
from pydantic import ValidationError

from shared.logging import get_logger
from shared.errors import UpstreamUnavailableError
from shared.metrics import MetricsCollector

from ..domain.models import AnalyticsSnapshot, RoastRequest, RoastResult
from ..ratelimit import RateLimitSignalTranslator

PASSTHROUGH_HEADERS = ("X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset")


@dataclass
class ForwardedRoast:
    """A roast result as returned by the backend, plus its quota headers."""

    result: RoastResult
    headers: Dict[str, str] = field(default_factory=dict)


class BackendClient:
    """Client for the upstream roast and analytics backend.

    One outbound call per invocation, no retries and no state kept between
    calls.
    """

    def __init__(
        self,
        backend_url: str,
        timeout: float = 30.0,
        analytics_timeout: float = 5.0,
        translator: Optional[RateLimitSignalTranslator] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.base_url = backend_url.rstrip('/')
        self.timeout = timeout
        self.analytics_timeout = analytics_timeout
        self.translator = translator or RateLimitSignalTranslator()
        self.metrics = metrics
        self.logger = get_logger("gateway.backend_client")

    def _timed(self, operation: str):
        if self.metrics is None:
            return nullcontext()
        return self.metrics.time_operation("upstream_request_duration_seconds", operation=operation)

    @staticmethod
    def _identity_headers(request: RoastRequest) -> Dict[str, str]:
        headers = {
            "X-User-ID": request.caller_identity,
            "X-Forwarded-For": request.client_address,
        }
        if request.user_agent:
            headers["User-Agent"] = request.user_agent
        return headers

    async def forward_roast(self, request: RoastRequest) -> ForwardedRoast:
        """Forward a validated roast request.

        Raises:
            RateLimitedError: upstream answered 429.
            UpstreamUnavailableError: transport failure, any other non-2xx
                status, or an undecodable body.
        """
        url = f"{self.base_url}/roast"
        try:
            with self._timed("roast"):
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        url,
                        json={"tickers": request.tickers},
                        headers=self._identity_headers(request),
                    )
        except httpx.HTTPError as e:
            self.logger.error("Backend roast request failed", url=url, error=str(e))
            raise UpstreamUnavailableError(
                "Roast backend unreachable",
                details={"error": str(e)}
            )

        if response.status_code == 429:
            raise self.translator.to_error(response)

        if not response.is_success:
            self.logger.warning(
                "Backend roast request returned error status",
                url=url,
                status_code=response.status_code,
            )
            raise UpstreamUnavailableError(
                f"Unexpected status {response.status_code}",
                details={"status_code": response.status_code}
            )

        try:
            result = RoastResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            self.logger.warning("Backend roast response undecodable", url=url, error=str(e))
            raise UpstreamUnavailableError(
                "Roast backend returned an undecodable body",
                details={"status_code": response.status_code}
            )

        headers = {
            name: response.headers[name]
            for name in PASSTHROUGH_HEADERS
            if name in response.headers
        }
        self.logger.debug("Backend roast received", tickers=request.tickers)
        return ForwardedRoast(result=result, headers=headers)

    async def fetch_analytics(self) -> AnalyticsSnapshot:
        """Fetch the current analytics snapshot from the metrics source."""
        url = f"{self.base_url}/analytics"
        try:
            with self._timed("analytics"):
                async with httpx.AsyncClient(timeout=self.analytics_timeout) as client:
                    response = await client.get(url, headers={"Content-Type": "application/json"})
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(
                "Analytics source unreachable",
                details={"error": str(e)}
            )

        if response.status_code != 200:
            raise UpstreamUnavailableError(
                f"Analytics source responded with status {response.status_code}",
                details={"status_code": response.status_code}
            )

        try:
            return AnalyticsSnapshot.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise UpstreamUnavailableError(
                "Analytics source returned an undecodable body",
                details={"error": str(e)}
            )

    async def check_health(self) -> str:
        """Report backend reachability without failing the caller."""
        try:
            async with httpx.AsyncClient(timeout=self.analytics_timeout) as client:
                response = await client.get(f"{self.base_url}/health")
        except httpx.HTTPError as e:
            self.logger.warning("Backend health check failed", error=str(e))
            return "unavailable"
        return "ok" if response.status_code == 200 else "unavailable"
