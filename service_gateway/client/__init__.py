"""
Caller-side helpers for the gateway.

- retry_state: submission state machine with the rate-limit countdown.
- gateway_client: async client that drives it and sends analytics events.
- dashboard: fixed-cadence analytics snapshot polling.
"""

from .retry_state import InvalidTransition, RetryStateMachine, SubmissionState
from .gateway_client import GatewayClient, new_session_id
from .dashboard import DashboardPoller

__all__ = [
    "InvalidTransition",
    "RetryStateMachine",
    "SubmissionState",
    "GatewayClient",
    "new_session_id",
    "DashboardPoller",
]
