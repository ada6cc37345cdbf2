"""
Rate limiting package for the Gateway.

The gateway holds no request budgets of its own. Throttling is decided by the
upstream backend; this package recognizes that signal and republishes it with
explicit retry metadata so callers can count down before resubmitting.
"""

from .signal import RateLimitSignalTranslator

__all__ = ["RateLimitSignalTranslator"]
