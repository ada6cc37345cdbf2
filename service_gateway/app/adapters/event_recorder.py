"""
Hands accepted analytics events to the external metrics store.
"""

from typing import Optional

import httpx

from shared.logging import get_logger
from shared.errors import RecordingFailureError

from ..domain.models import AnalyticsEvent


class EventRecorder:
    """Records analytics events.

    With a metrics store URL the event is POSTed to
    ``{metrics_store_url}/analytics/events``; without one the event is only
    written to the structured log.
    """

    def __init__(self, metrics_store_url: Optional[str] = None, timeout: float = 5.0):
        self.metrics_store_url = metrics_store_url.rstrip('/') if metrics_store_url else None
        self.timeout = timeout
        self.logger = get_logger("gateway.event_recorder")

    async def record(self, event: AnalyticsEvent) -> None:
        payload = event.payload()
        if self.metrics_store_url is None:
            self.logger.info("Frontend analytics event", analytics_event=payload)
            return

        url = f"{self.metrics_store_url}/analytics/events"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise RecordingFailureError(details={"error": str(e)})

        if not response.is_success:
            raise RecordingFailureError(details={"status_code": response.status_code})
