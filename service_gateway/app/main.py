"""
API Gateway service for Portfolio Roast.
"""

from typing import Dict, List, Optional, Union

from fastapi import Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import InvalidInputError
from service_gateway.app.adapters import BackendClient, EventRecorder
from service_gateway.app.analytics import AnalyticsEventIngestor, AnalyticsReadAggregator
from service_gateway.app.domain import FallbackResponder, RoastService
from service_gateway.app.ratelimit import RateLimitSignalTranslator


class RoastSubmission(BaseModel):
    """Inbound roast request body."""

    tickers: Union[str, List[str]]


class GatewayService(BaseService):
    """API Gateway service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__("gateway", 8000, config=config)

        self.rate_limit_translator = RateLimitSignalTranslator(self.config.default_retry_after_seconds)
        self.backend_client = BackendClient(
            self.config.backend_url,
            timeout=self.config.backend_timeout_seconds,
            analytics_timeout=self.config.analytics_timeout_seconds,
            translator=self.rate_limit_translator,
            metrics=self.metrics,
        )
        self.fallback_responder = FallbackResponder(risk_score=self.config.fallback_risk_score)
        self.roast_service = RoastService(self.backend_client, self.fallback_responder, metrics=self.metrics)
        self.analytics_aggregator = AnalyticsReadAggregator(self.backend_client, metrics=self.metrics)
        self.event_recorder = EventRecorder(
            self.config.metrics_store_url,
            timeout=self.config.analytics_timeout_seconds,
        )
        self.event_ingestor = AnalyticsEventIngestor(
            self.config.analytics_api_key,
            self.event_recorder,
            metrics=self.metrics,
        )

        self._setup_gateway_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"backend": await self.backend_client.check_health()}

    def _setup_gateway_routes(self):
        """Set up gateway routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "gateway",
                "message": "Portfolio Roast - API Gateway",
                "version": "1.0.0",
            }

        @self.app.post("/api/roast")
        async def submit_roast(submission: RoastSubmission, request: Request):
            """Validate tickers, forward to the backend, degrade on failure."""
            roast_request = self.roast_service.build_request(
                submission.tickers,
                request.headers,
                peer=request.client.host if request.client else None,
            )
            outcome = await self.roast_service.submit(roast_request)
            return JSONResponse(content=outcome.result.to_wire(), headers=outcome.headers)

        @self.app.get("/api/analytics")
        async def get_analytics():
            """Dashboard snapshot; never errors."""
            snapshot = await self.analytics_aggregator.get_snapshot()
            return JSONResponse(content=snapshot.to_wire())

        @self.app.post("/api/analytics")
        async def track_event(request: Request, authorization: Optional[str] = Header(default=None)):
            """Ingest a usage event from a caller holding the shared secret."""
            self.event_ingestor.authorize(authorization)
            try:
                payload = await request.json()
            except ValueError:
                raise InvalidInputError("Event payload must be valid JSON")
            return await self.event_ingestor.accept(payload)


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = GatewayService(config)
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
