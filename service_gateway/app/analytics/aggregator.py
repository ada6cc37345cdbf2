"""
Analytics read path.
"""

from datetime import datetime, timezone
from typing import Optional

from shared.errors import UpstreamUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..domain.fallback import build_fallback_snapshot
from ..domain.models import AnalyticsSnapshot


class AnalyticsReadAggregator:
    """Serves the latest AnalyticsSnapshot, or a static one when the source fails.

    The fallback snapshot is built once, so its ``lastUpdate`` stays frozen
    across polls; that is how dashboards tell live data from fallback data.
    Polling cadence belongs to the caller.
    """

    def __init__(self, backend, metrics: Optional[MetricsCollector] = None,
                 fallback_snapshot: Optional[AnalyticsSnapshot] = None):
        self.backend = backend
        self.metrics = metrics
        self.fallback_snapshot = fallback_snapshot or build_fallback_snapshot(datetime.now(timezone.utc))
        self.logger = get_logger("gateway.analytics_aggregator")

    def _count(self, source: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("analytics_snapshots_total", source=source)

    async def get_snapshot(self) -> AnalyticsSnapshot:
        try:
            snapshot = await self.backend.fetch_analytics()
        except UpstreamUnavailableError as e:
            self.logger.error(
                "Error fetching analytics, serving fallback snapshot",
                message=e.message,
                details=e.details,
            )
            self._count("fallback")
            return self.fallback_snapshot

        self._count("live")
        return snapshot
