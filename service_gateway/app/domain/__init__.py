"""
Domain package for the Gateway.

Holds the wire data contracts, ticker normalization, fallback construction
and the roast submission flow. Nothing here keeps state between requests.
"""

from .models import (
    AnalyticsEvent,
    AnalyticsSnapshot,
    CredentialMetric,
    RateLimitSignal,
    RoastRequest,
    RoastResult,
    StockAssessment,
)
from .tickers import normalize_tickers, MAX_TICKERS
from .fallback import FallbackResponder, build_fallback_snapshot
from .roasting import RoastService, RoastOutcome

__all__ = [
    "AnalyticsEvent",
    "AnalyticsSnapshot",
    "CredentialMetric",
    "RateLimitSignal",
    "RoastRequest",
    "RoastResult",
    "StockAssessment",
    "normalize_tickers",
    "MAX_TICKERS",
    "FallbackResponder",
    "build_fallback_snapshot",
    "RoastService",
    "RoastOutcome",
]
