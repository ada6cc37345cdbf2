"""
Analytics contract between the gateway and the external metrics store.

- aggregator: read path for the operations dashboard, never errors.
- ingestor: bearer-checked write path for client usage events.
"""

from .aggregator import AnalyticsReadAggregator
from .ingestor import AnalyticsEventIngestor

__all__ = ["AnalyticsReadAggregator", "AnalyticsEventIngestor"]
