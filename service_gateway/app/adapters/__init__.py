"""
Adapters package for the Gateway Service.

Contains HTTP client wrappers for upstream dependencies (the analysis
backend and the metrics store). These adapters encapsulate:

- Base URLs and request shapes
- Identity propagation on outbound calls
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .backend_client import BackendClient, ForwardedRoast
from .event_recorder import EventRecorder

__all__ = [
    "BackendClient",
    "ForwardedRoast",
    "EventRecorder",
]
