"""
Data contracts shared between the gateway, the analysis backend and callers.

Wire names follow the backend's camelCase JSON; Python attributes are
snake_case. Models accept either spelling on input and emit wire names via
``model_dump(by_alias=True)``.
"""

from typing import Dict, Any, Optional, List
from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


class WireModel(BaseModel):
    """Base model for camelCase wire payloads."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class StockAssessment(WireModel):
    """Per-ticker assessment."""

    company: str
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)

    @field_validator("pros", "cons", mode="before")
    @classmethod
    def null_as_empty(cls, value):
        return [] if value is None else value


class RoastResult(WireModel):
    """Narrative plus one assessment per requested ticker."""

    roast: str
    score: Optional[int] = Field(default=None, ge=0, le=100)
    stocks: Dict[str, StockAssessment] = Field(default_factory=dict)

    @field_validator("stocks", mode="before")
    @classmethod
    def drop_undecodable_stocks(cls, value):
        """Malformed entries are dropped so the narrative survives; missing tickers get placeholders later."""
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        stocks = {}
        for ticker, entry in value.items():
            try:
                stocks[ticker] = StockAssessment.model_validate(entry)
            except ValidationError:
                continue
        return stocks


class RoastRequest(BaseModel):
    """A validated request ready to be forwarded upstream."""

    tickers: List[str] = Field(..., min_length=1, max_length=10)
    caller_identity: str
    client_address: str = "unknown"
    user_agent: Optional[str] = None


class RateLimitSignal(WireModel):
    """Throttling signal republished to the caller."""

    retry_after_seconds: int = Field(..., ge=0, alias="retryAfterSeconds")
    message: str
    limit: int = 1
    remaining: int = 0
    reset_at: Optional[int] = Field(default=None, alias="resetAt")


class CredentialMetric(WireModel):
    """Usage counters for one upstream credential."""

    index: int = Field(..., alias="keyIndex")
    name: str = Field(..., alias="keyName")
    request_count: int = Field(0, alias="requestCount", ge=0)
    error_count: int = Field(0, alias="errorCount", ge=0)
    last_used: Optional[datetime] = Field(None, alias="lastUsed")
    is_active: bool = Field(True, alias="isActive")

    @model_validator(mode="after")
    def _cap_errors(self) -> "CredentialMetric":
        if self.error_count > self.request_count:
            self.error_count = self.request_count
        return self


class AnalyticsSnapshot(WireModel):
    """Operational counters aggregated by the external metrics store."""

    requests_per_minute: Dict[str, float] = Field(default_factory=dict, alias="requestsPerMinute")
    total_requests: Dict[str, int] = Field(default_factory=dict, alias="totalRequests")
    requests_today: Dict[str, int] = Field(default_factory=dict, alias="requestsToday")
    unique_users: int = Field(0, alias="uniqueUsers", ge=0)
    total_page_visits: int = Field(0, alias="totalPageVisits", ge=0)
    concurrent_users: int = Field(0, alias="concurrentUsers", ge=0)
    highest_concurrent: int = Field(0, alias="highestConcurrent", ge=0)
    credential_metrics: List[CredentialMetric] = Field(default_factory=list, alias="geminiKeyMetrics")
    system_uptime_seconds: float = Field(0.0, alias="systemUptime", ge=0)
    last_update_timestamp: Optional[datetime] = Field(None, alias="lastUpdate")

    @model_validator(mode="after")
    def _high_water_mark(self) -> "AnalyticsSnapshot":
        if self.highest_concurrent < self.concurrent_users:
            self.highest_concurrent = self.concurrent_users
        return self


class AnalyticsEvent(BaseModel):
    """A usage event; everything except the name is opaque."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    event_name: str = Field(
        ...,
        validation_alias=AliasChoices("event", "eventName", "event_name"),
        serialization_alias="event",
        min_length=1,
    )
    session_id: Optional[str] = Field(None, alias="sessionId")
    timestamp: Any = None

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
