"""Portfolio Roast gateway service and its caller-side client."""
