"""QuoteCalc - catalog-snapshot quotation engine."""

__version__ = "0.1.0"
