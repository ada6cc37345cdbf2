"""
Analytics write path.
"""

import hmac
from typing import Any, Dict, Optional

from pydantic import ValidationError

from shared.errors import InvalidInputError, RecordingFailureError, UnauthorizedError
from shared.logging import get_logger, set_caller_context
from shared.metrics import MetricsCollector

from ..domain.models import AnalyticsEvent


class AnalyticsEventIngestor:
    """Accepts usage events from callers holding the shared secret."""

    def __init__(self, api_key: str, recorder, metrics: Optional[MetricsCollector] = None):
        self._api_key = api_key
        self.recorder = recorder
        self.metrics = metrics
        self.logger = get_logger("gateway.analytics_ingestor")

    def _count(self, status: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("analytics_events_total", status=status)

    def authorize(self, authorization: Optional[str]) -> None:
        """Check an ``Authorization`` header value against the shared secret."""
        scheme, _, token = (authorization or "").partition(" ")
        if (
            not self._api_key
            or scheme.lower() != "bearer"
            or not hmac.compare_digest(token.strip().encode(), self._api_key.encode())
        ):
            self.logger.warning("Rejected analytics event", has_credential=bool(authorization))
            self._count("unauthorized")
            raise UnauthorizedError()

    async def ingest(self, authorization: Optional[str], payload: Any) -> Dict[str, Any]:
        """Authorize, then hand the event to the recorder.

        Raises:
            UnauthorizedError: missing or wrong bearer credential; nothing
                is recorded.
            InvalidInputError: payload is not an object with an event name.
            RecordingFailureError: the recorder failed.
        """
        self.authorize(authorization)
        return await self.accept(payload)

    async def accept(self, payload: Any) -> Dict[str, Any]:
        """Record an event from an already authorized caller."""
        if not isinstance(payload, dict):
            raise InvalidInputError("Event payload must be a JSON object")
        try:
            event = AnalyticsEvent.model_validate(payload)
        except ValidationError as e:
            raise InvalidInputError(
                "Event name is required",
                details={"errors": [err.get("msg") for err in e.errors()]}
            )

        set_caller_context(session_id=event.session_id)
        try:
            await self.recorder.record(event)
        except RecordingFailureError as e:
            self.logger.error("Error tracking analytics event", event_name=event.event_name, details=e.details)
            self._count("failed")
            raise
        except Exception as e:
            self.logger.error("Error tracking analytics event", event_name=event.event_name, error=str(e))
            self._count("failed")
            raise RecordingFailureError(details={"error": str(e)})

        self._count("accepted")
        self.logger.info("Analytics event accepted", event_name=event.event_name)
        return {"success": True}
