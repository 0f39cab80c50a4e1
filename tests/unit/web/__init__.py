"""Unit tests for QuoteCalc web route modules.

Testing pattern:
    - Use FastAPI's TestClient for route testing
    - Swap the pricing store for InMemoryPricingStore via dependency_overrides
    - Test request/response shapes and status codes
"""
