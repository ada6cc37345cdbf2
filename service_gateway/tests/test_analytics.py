"""
Unit tests for the analytics read aggregator, event ingestor and recorder.
"""

import pytest
import httpx
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.adapters.event_recorder import EventRecorder
from service_gateway.app.analytics import AnalyticsEventIngestor, AnalyticsReadAggregator
from service_gateway.app.domain.fallback import build_fallback_snapshot
from service_gateway.app.domain.models import AnalyticsEvent, AnalyticsSnapshot, CredentialMetric
from shared.errors import (
    InvalidInputError,
    RecordingFailureError,
    UnauthorizedError,
    UpstreamUnavailableError,
)

API_KEY = "test-analytics-key"


class TestAnalyticsSnapshotContract:
    """Invariants enforced when decoding snapshots."""

    def test_highest_concurrent_never_below_current(self):
        snapshot = AnalyticsSnapshot.model_validate({"concurrentUsers": 7, "highestConcurrent": 3})
        assert snapshot.highest_concurrent == 7

    def test_error_count_capped_at_request_count(self):
        metric = CredentialMetric.model_validate(
            {"keyIndex": 0, "keyName": "KEY", "requestCount": 4, "errorCount": 9}
        )
        assert metric.error_count == 4

    def test_wire_names(self):
        wire = build_fallback_snapshot(datetime(2025, 1, 1, tzinfo=timezone.utc)).to_wire()
        assert {
            "requestsPerMinute", "totalRequests", "requestsToday", "uniqueUsers",
            "totalPageVisits", "concurrentUsers", "highestConcurrent",
            "geminiKeyMetrics", "systemUptime", "lastUpdate",
        } <= set(wire)
        assert set(wire["geminiKeyMetrics"][0]) == {
            "keyIndex", "keyName", "requestCount", "errorCount", "lastUsed", "isActive"
        }

    def test_last_used_may_be_absent(self):
        metric = CredentialMetric(index=1, name="KEY", request_count=0, error_count=0)
        assert "lastUsed" not in metric.to_wire()


class TestAnalyticsReadAggregator:
    """Test cases for AnalyticsReadAggregator."""

    @pytest.fixture
    def backend(self):
        backend = MagicMock()
        backend.fetch_analytics = AsyncMock()
        return backend

    @pytest.mark.asyncio
    async def test_live_snapshot(self, backend):
        live = AnalyticsSnapshot(unique_users=99, last_update_timestamp=datetime.now(timezone.utc))
        backend.fetch_analytics.return_value = live
        aggregator = AnalyticsReadAggregator(backend)

        assert await aggregator.get_snapshot() is live

    @pytest.mark.asyncio
    async def test_fallback_snapshot_is_frozen(self, backend):
        backend.fetch_analytics.side_effect = UpstreamUnavailableError("down")
        aggregator = AnalyticsReadAggregator(backend)

        first = await aggregator.get_snapshot()
        second = await aggregator.get_snapshot()

        assert first.last_update_timestamp == second.last_update_timestamp
        assert first.highest_concurrent >= first.concurrent_users
        for metric in first.credential_metrics:
            assert metric.error_count <= metric.request_count

    @pytest.mark.asyncio
    async def test_metrics_recorded_by_source(self, backend):
        metrics = MagicMock()
        backend.fetch_analytics.side_effect = UpstreamUnavailableError("down")
        aggregator = AnalyticsReadAggregator(backend, metrics=metrics)

        await aggregator.get_snapshot()

        metrics.increment_counter.assert_called_once_with("analytics_snapshots_total", source="fallback")


class TestAnalyticsEventIngestor:
    """Test cases for AnalyticsEventIngestor."""

    @pytest.fixture
    def recorder(self):
        recorder = MagicMock()
        recorder.record = AsyncMock()
        return recorder

    @pytest.fixture
    def ingestor(self, recorder):
        return AnalyticsEventIngestor(API_KEY, recorder)

    @pytest.fixture
    def event_payload(self):
        return {
            "event": "page_view",
            "page": "chat_interface",
            "sessionId": "session-1-abc",
            "timestamp": "2025-01-01T00:00:00Z",
        }

    @pytest.mark.asyncio
    async def test_accepts_valid_credential(self, ingestor, recorder, event_payload):
        result = await ingestor.ingest(f"Bearer {API_KEY}", event_payload)

        assert result == {"success": True}
        recorded = recorder.record.await_args.args[0]
        assert recorded.event_name == "page_view"
        assert recorded.payload()["page"] == "chat_interface"
        assert recorded.payload()["sessionId"] == "session-1-abc"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("authorization", [
        None,
        "",
        API_KEY,
        "Bearer wrong-key",
        f"Basic {API_KEY}",
        "Bearer",
    ])
    async def test_rejects_bad_credential_without_recording(self, ingestor, recorder, event_payload, authorization):
        with pytest.raises(UnauthorizedError) as exc_info:
            await ingestor.ingest(authorization, event_payload)

        assert exc_info.value.status_code == 401
        recorder.record.assert_not_called()

    @pytest.mark.asyncio
    async def test_unauthorized_checked_before_payload(self, ingestor, recorder):
        with pytest.raises(UnauthorizedError):
            await ingestor.ingest(None, "not even an object")
        recorder.record.assert_not_called()

    @pytest.mark.asyncio
    async def test_event_name_required(self, ingestor, recorder):
        with pytest.raises(InvalidInputError):
            await ingestor.ingest(f"Bearer {API_KEY}", {"page": "home"})
        recorder.record.assert_not_called()

    @pytest.mark.asyncio
    async def test_event_name_alias(self, ingestor, recorder):
        await ingestor.ingest(f"Bearer {API_KEY}", {"eventName": "portfolio_roast_request", "tickerCount": 2})
        recorded = recorder.record.await_args.args[0]
        assert recorded.event_name == "portfolio_roast_request"

    @pytest.mark.asyncio
    async def test_recording_failure_is_server_error(self, ingestor, recorder, event_payload):
        recorder.record.side_effect = RuntimeError("disk full")

        with pytest.raises(RecordingFailureError) as exc_info:
            await ingestor.ingest(f"Bearer {API_KEY}", event_payload)

        assert exc_info.value.status_code == 500


class TestEventRecorder:
    """Test cases for EventRecorder."""

    @pytest.fixture
    def event(self):
        return AnalyticsEvent.model_validate({"event": "page_view", "sessionId": "s-1", "page": "home"})

    @pytest.mark.asyncio
    async def test_log_only_without_store(self, event):
        recorder = EventRecorder()
        with patch('httpx.AsyncClient') as mock_client:
            await recorder.record(event)
            mock_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_posts_to_metrics_store(self, event):
        recorder = EventRecorder("http://metrics-store:9000/")
        with patch('httpx.AsyncClient') as mock_client:
            post = AsyncMock(return_value=httpx.Response(
                status_code=202,
                request=httpx.Request("POST", "http://metrics-store:9000/analytics/events"),
            ))
            mock_client.return_value.__aenter__.return_value.post = post

            await recorder.record(event)

        assert post.call_args.args[0] == "http://metrics-store:9000/analytics/events"
        assert post.call_args.kwargs["json"] == {"event": "page_view", "sessionId": "s-1", "page": "home"}

    @pytest.mark.asyncio
    async def test_store_failure_raises(self, event):
        recorder = EventRecorder("http://metrics-store:9000")
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                side_effect=httpx.ConnectError("Connection refused")
            )

            with pytest.raises(RecordingFailureError):
                await recorder.record(event)
