"""
Roast submission flow: normalize, forward, degrade.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Union

from shared.errors import InvalidInputError, RateLimitedError, UpstreamUnavailableError
from shared.logging import get_logger, set_caller_context
from shared.metrics import MetricsCollector

from .fallback import FallbackResponder
from .models import RoastRequest, RoastResult
from .tickers import normalize_tickers

UNKNOWN_ADDRESS = "unknown"


def resolve_client_address(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """Best available origin address for the caller."""
    forwarded_for = headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return peer or UNKNOWN_ADDRESS


def derive_caller_identity(address: str) -> str:
    """Coarse usage-bucketing label; not a security token."""
    return f"{address}-{time.time_ns()}"


@dataclass
class RoastOutcome:
    """What the route sends back for a roast submission."""

    result: RoastResult
    headers: Dict[str, str] = field(default_factory=dict)


class RoastService:
    """Runs a roast submission against the backend.

    Input errors and upstream throttling propagate as exceptions; every other
    upstream failure is absorbed into a fallback result.
    """

    def __init__(self, backend, fallback: FallbackResponder, metrics: Optional[MetricsCollector] = None):
        self.backend = backend
        self.fallback = fallback
        self.metrics = metrics
        self.logger = get_logger("gateway.roast_service")

    def _count(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("roast_requests_total", outcome=outcome)

    def build_request(
        self,
        raw_tickers: Union[str, Iterable[str], None],
        headers: Mapping[str, str],
        peer: Optional[str] = None,
    ) -> RoastRequest:
        try:
            tickers = normalize_tickers(raw_tickers)
        except InvalidInputError:
            self._count("invalid")
            raise

        address = resolve_client_address(headers, peer)
        identity = derive_caller_identity(address)
        set_caller_context(caller_id=identity)
        return RoastRequest(
            tickers=tickers,
            caller_identity=identity,
            client_address=address,
            user_agent=headers.get("User-Agent"),
        )

    async def submit(self, request: RoastRequest) -> RoastOutcome:
        try:
            forwarded = await self.backend.forward_roast(request)
        except RateLimitedError:
            self._count("rate_limited")
            raise
        except UpstreamUnavailableError as e:
            self.logger.warning(
                "Roast backend unavailable, serving fallback",
                code=e.code,
                message=e.message,
                details=e.details,
            )
            self._count("fallback")
            return RoastOutcome(
                result=self.fallback.build(request.tickers),
                headers={"X-Roast-Fallback": "true"},
            )

        self._count("success")
        return RoastOutcome(
            result=self.fallback.complete(forwarded.result, request.tickers),
            headers=forwarded.headers,
        )
