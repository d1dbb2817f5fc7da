"""Severe weather threat aggregation for a single location."""

__version__ = "0.1.0"
