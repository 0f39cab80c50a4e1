"""HTTP route modules for QuoteCalc."""
