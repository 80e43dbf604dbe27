"""Mortgage calculation engine: rate conversion, amortization schedule and cost indicators."""
