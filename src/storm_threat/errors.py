"""Exception types raised by the storm threat package."""

from __future__ import annotations


class StormThreatError(Exception):
    """Base class for all storm_threat errors."""


class InvalidQueryError(StormThreatError, ValueError):
    """Caller input rejected before any upstream request is made."""


class SourceFetchError(StormThreatError):
    """An upstream source could not be fetched or normalized."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class MalformedPayloadError(SourceFetchError):
    """Upstream payload parsed, but lacks the fields we need."""
