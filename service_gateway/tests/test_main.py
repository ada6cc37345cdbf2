"""
Unit tests for Gateway main service.
"""

import pytest
import httpx
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.main import GatewayService, create_app
from service_gateway.app.adapters.backend_client import ForwardedRoast
from service_gateway.app.domain.models import AnalyticsSnapshot, RateLimitSignal, RoastResult, StockAssessment
from shared.config import get_config
from shared.errors import RateLimitedError, RecordingFailureError, UpstreamUnavailableError

API_KEY = "test-analytics-key"


class TestGatewayService:
    """Test cases for GatewayService."""

    @pytest.fixture
    def config(self):
        return get_config(
            "gateway",
            8000,
            backend_url="http://backend.test:8080",
            analytics_api_key=API_KEY,
        )

    @pytest.fixture
    def app(self, config):
        """Create FastAPI app instance."""
        return create_app(config)

    @pytest.fixture
    def client(self, app):
        """Create test client."""
        return TestClient(app)

    @pytest.fixture
    def auth_headers(self):
        return {"Authorization": f"Bearer {API_KEY}"}

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "gateway"
        assert data["message"] == "Portfolio Roast - API Gateway"

    @patch('service_gateway.app.main.BackendClient.check_health', new_callable=AsyncMock)
    def test_health_reports_backend(self, mock_check_health, client):
        mock_check_health.return_value = "unavailable"

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "gateway"
        assert data["status"] == "ok"
        assert data["dependencies"]["backend"] == "unavailable"

    def test_metrics_endpoint(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "http_requests_total" in response.text

    def test_services_can_be_created_repeatedly(self, config):
        """Prometheus series are registered once per process."""
        first = GatewayService(config)
        second = GatewayService(config)
        assert first.metrics is second.metrics

    @patch('service_gateway.app.main.BackendClient.forward_roast', new_callable=AsyncMock)
    def test_roast_success(self, mock_forward, client):
        mock_forward.return_value = ForwardedRoast(
            RoastResult(
                roast="genuine roast",
                score=30,
                stocks={
                    "AAPL": StockAssessment(company="Apple Inc.", pros=["p"], cons=["c"]),
                    "TSLA": StockAssessment(company="Tesla Inc.", pros=["p"], cons=["c"]),
                },
            ),
            {"X-RateLimit-Remaining": "1"},
        )

        response = client.post(
            "/api/roast",
            json={"tickers": "aapl, tsla, xyz1, "},
            headers={"X-Forwarded-For": "198.51.100.1, 10.0.0.1", "User-Agent": "pytest-ua"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["roast"] == "genuine roast"
        assert data["score"] == 30
        assert set(data["stocks"]) == {"AAPL", "TSLA"}
        assert response.headers["X-RateLimit-Remaining"] == "1"
        assert "X-Roast-Fallback" not in response.headers

        forwarded_request = mock_forward.await_args.args[0]
        assert forwarded_request.tickers == ["AAPL", "TSLA"]
        assert forwarded_request.client_address == "198.51.100.1"
        assert forwarded_request.user_agent == "pytest-ua"

    @patch('service_gateway.app.main.BackendClient.forward_roast', new_callable=AsyncMock)
    def test_roast_accepts_ticker_list(self, mock_forward, client):
        mock_forward.return_value = ForwardedRoast(RoastResult(roast="r", stocks={}))

        response = client.post("/api/roast", json={"tickers": ["AAPL", "MSFT"]})

        assert response.status_code == 200
        assert set(response.json()["stocks"]) == {"AAPL", "MSFT"}

    @pytest.mark.parametrize("body", [
        {"tickers": "123, 4x5"},
        {"tickers": ""},
        {"tickers": []},
        {"tickers": "A,B,C,D,E,F,G,H,I,J,K"},
        {"symbols": "AAPL"},
    ])
    @patch('service_gateway.app.main.BackendClient.forward_roast', new_callable=AsyncMock)
    def test_roast_invalid_input(self, mock_forward, client, body):
        response = client.post("/api/roast", json=body)

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"
        mock_forward.assert_not_called()

    @patch('service_gateway.app.main.BackendClient.forward_roast', new_callable=AsyncMock)
    def test_roast_rate_limited(self, mock_forward, client):
        signal = RateLimitSignal(retry_after_seconds=45, message="You can make another request in 45s")
        mock_forward.side_effect = RateLimitedError(
            signal,
            headers={"Retry-After": "45", "X-RateLimit-Limit": "1", "X-RateLimit-Remaining": "0"},
        )

        response = client.post("/api/roast", json={"tickers": "AAPL"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "45"
        data = response.json()
        assert data["code"] == "RATE_LIMITED"
        assert data["message"] == "You can make another request in 45s"
        assert data["details"]["retryAfterSeconds"] == 45

    @pytest.mark.parametrize("headers", [{"Retry-After": "1e999"}, {"X-RateLimit-Reset": "inf"}])
    def test_roast_rate_limited_with_overflowing_headers(self, client, headers):
        """Unusable upstream throttling metadata still yields a 429 with the default window."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                return_value=httpx.Response(429, json={}, headers=headers)
            )

            response = client.post("/api/roast", json={"tickers": "AAPL"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.json()["details"]["retryAfterSeconds"] == 60

    def test_roast_backend_unreachable_returns_fallback(self, client):
        """Transport failure still yields 200 with one entry per ticker."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                side_effect=httpx.ConnectError("Connection refused")
            )

            response = client.post("/api/roast", json={"tickers": "AAPL, TSLA, QQQQ"})

        assert response.status_code == 200
        assert response.headers["X-Roast-Fallback"] == "true"
        data = response.json()
        assert data["roast"]
        assert list(data["stocks"]) == ["AAPL", "TSLA", "QQQQ"]
        for stock in data["stocks"].values():
            assert stock["company"] and stock["pros"] and stock["cons"]

    @patch('service_gateway.app.main.BackendClient.forward_roast', new_callable=AsyncMock)
    def test_roast_backend_error_returns_fallback(self, mock_forward, client):
        mock_forward.side_effect = UpstreamUnavailableError("Unexpected status 500")

        response = client.post("/api/roast", json={"tickers": "NVDA"})

        assert response.status_code == 200
        assert list(response.json()["stocks"]) == ["NVDA"]

    @patch('service_gateway.app.main.BackendClient.fetch_analytics', new_callable=AsyncMock)
    def test_analytics_live(self, mock_fetch, client):
        mock_fetch.return_value = AnalyticsSnapshot(unique_users=7, concurrent_users=2, highest_concurrent=5)

        response = client.get("/api/analytics")

        assert response.status_code == 200
        data = response.json()
        assert data["uniqueUsers"] == 7
        assert data["highestConcurrent"] == 5

    @patch('service_gateway.app.main.BackendClient.fetch_analytics', new_callable=AsyncMock)
    def test_analytics_fallback_never_errors(self, mock_fetch, client):
        mock_fetch.side_effect = UpstreamUnavailableError("down")

        first = client.get("/api/analytics")
        second = client.get("/api/analytics")

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["lastUpdate"] == second.json()["lastUpdate"]
        assert first.json()["geminiKeyMetrics"]

    @patch('service_gateway.app.main.EventRecorder.record', new_callable=AsyncMock)
    def test_track_event_success(self, mock_record, client, auth_headers):
        response = client.post(
            "/api/analytics",
            json={"event": "page_view", "page": "chat_interface", "sessionId": "s-1"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        mock_record.assert_awaited_once()

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer nope"}])
    @patch('service_gateway.app.main.EventRecorder.record', new_callable=AsyncMock)
    def test_track_event_unauthorized(self, mock_record, client, headers):
        response = client.post("/api/analytics", json={"event": "page_view"}, headers=headers)

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"
        assert response.headers["WWW-Authenticate"] == "Bearer"
        mock_record.assert_not_called()

    @patch('service_gateway.app.main.EventRecorder.record', new_callable=AsyncMock)
    def test_track_event_unauthorized_with_garbage_body(self, mock_record, client):
        response = client.post("/api/analytics", content=b"{not json")

        assert response.status_code == 401
        mock_record.assert_not_called()

    @patch('service_gateway.app.main.EventRecorder.record', new_callable=AsyncMock)
    def test_track_event_invalid_json(self, mock_record, client, auth_headers):
        response = client.post("/api/analytics", content=b"{not json", headers=auth_headers)

        assert response.status_code == 400
        mock_record.assert_not_called()

    @patch('service_gateway.app.main.EventRecorder.record', new_callable=AsyncMock)
    def test_track_event_recording_failure(self, mock_record, client, auth_headers):
        mock_record.side_effect = RecordingFailureError(details={"error": "store down"})

        response = client.post("/api/analytics", json={"event": "page_view"}, headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["code"] == "RECORDING_FAILURE"
