"""Upstream data fetchers: one module per provider."""
