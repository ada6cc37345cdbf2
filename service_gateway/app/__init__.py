"""
API Gateway Service package for Portfolio Roast.

The gateway fronts client requests, providing:
- Ticker validation and normalization before anything leaves the process
- Backend forwarding with caller identity propagation
- Translation of upstream throttling into explicit retry windows
- Fallback results when the backend is slow, failing or unreachable
- The analytics read/write contract with the external metrics store

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: HTTP clients for upstream services.
- app.domain: Data contracts, normalizer, fallback and roast flow.
- app.ratelimit: Rate-limit signal translation.
- app.analytics: Analytics read aggregator and event ingestor.
"""
