"""
Degraded-but-valid responses for when upstream sources are unavailable.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from shared.logging import get_logger

from .models import AnalyticsSnapshot, CredentialMetric, RoastResult, StockAssessment

FALLBACK_ROAST_TEMPLATE = (
    "Our roast machine is catching its breath right now, so this one comes "
    "from the emergency joke drawer. You picked {count} {noun}, which is "
    "{count} more opinion{plural} than most people bother to research. Give "
    "it a minute and try again for the full treatment."
)

FALLBACK_PROS = [
    "You managed to spell the ticker correctly",
    "It's a real company that exists",
    "Could potentially make money",
    "At least it's not a cryptocurrency",
]

FALLBACK_CONS = [
    "Your research probably consisted of a 5-second search",
    "Buying stocks based on name recognition isn't a strategy",
    "You might want to read an annual report sometime",
    "FOMO isn't an investment thesis",
]


class FallbackResponder:
    """Builds structurally complete roast results without the backend."""

    def __init__(self, risk_score: Optional[int] = 50):
        self.risk_score = risk_score
        self.logger = get_logger("gateway.fallback")

    def placeholder_stock(self, ticker: str) -> StockAssessment:
        return StockAssessment(
            company=f"{ticker} Corporation",
            pros=list(FALLBACK_PROS),
            cons=list(FALLBACK_CONS),
        )

    def build(self, tickers: List[str], reason: str = "upstream_unavailable") -> RoastResult:
        """Synthesize a result with one placeholder entry per requested ticker."""
        self.logger.info("Serving fallback roast", tickers=tickers, reason=reason)
        count = len(tickers)
        return RoastResult(
            roast=FALLBACK_ROAST_TEMPLATE.format(
                count=count,
                noun="stock" if count == 1 else "stocks",
                plural="" if count == 1 else "s",
            ),
            score=self.risk_score,
            stocks={ticker: self.placeholder_stock(ticker) for ticker in tickers},
        )

    def complete(self, result: RoastResult, tickers: Iterable[str]) -> RoastResult:
        """Add placeholders for requested tickers the backend left out."""
        missing = [ticker for ticker in tickers if ticker not in result.stocks]
        if not missing:
            return result
        self.logger.info("Filling tickers missing from upstream result", missing=missing)
        stocks = dict(result.stocks)
        for ticker in missing:
            stocks[ticker] = self.placeholder_stock(ticker)
        return result.model_copy(update={"stocks": stocks})


def build_fallback_snapshot(frozen_at: Optional[datetime] = None) -> AnalyticsSnapshot:
    """Static dashboard snapshot; ``lastUpdate`` stays at ``frozen_at``."""
    frozen_at = frozen_at or datetime.now(timezone.utc)
    return AnalyticsSnapshot(
        requests_per_minute={"roast": 2.5, "health": 0.1, "analytics": 0.05},
        total_requests={"roast": 1247, "health": 89, "analytics": 12},
        requests_today={"roast": 156, "health": 24, "analytics": 3},
        unique_users=245,
        total_page_visits=892,
        concurrent_users=4,
        highest_concurrent=23,
        credential_metrics=[
            CredentialMetric(
                index=0,
                name="GEMINI_API_KEY_1",
                request_count=423,
                error_count=12,
                last_used=frozen_at,
                is_active=True,
            ),
            CredentialMetric(
                index=1,
                name="GEMINI_API_KEY_2",
                request_count=398,
                error_count=8,
                last_used=frozen_at,
                is_active=True,
            ),
        ],
        system_uptime_seconds=3600.45,
        last_update_timestamp=frozen_at,
    )
