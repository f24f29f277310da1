"""Multi-chain stablecoin balance aggregation."""

__version__ = "0.1.0"
