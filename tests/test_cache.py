"""Tests for the in-process TTL cache."""

from __future__ import annotations

import pytest

from storm_threat.cache import (
    ALERTS_TTL,
    INSTABILITY_TTL,
    OUTLOOK_TTL,
    SOURCE_TTLS,
    TTLCache,
    make_key,
)
from storm_threat.models import Source


class TestTTLCache:
    def test_miss_returns_none(self, cache):
        assert cache.get("nws_alerts:35.22:-97.44") is None

    def test_set_then_get(self, cache):
        cache.set("k", ["alert"], ttl=120)
        assert cache.get("k") == ["alert"]

    def test_get_just_before_expiry_returns_value(self, cache, fake_clock):
        cache.set("k", "v", ttl=120)
        fake_clock.advance(120 - 0.001)
        assert cache.get("k") == "v"

    def test_get_just_after_expiry_returns_none(self, cache, fake_clock):
        cache.set("k", "v", ttl=120)
        fake_clock.advance(120 + 0.001)
        assert cache.get("k") is None

    def test_expired_entry_is_evicted(self, cache, fake_clock):
        cache.set("k", "v", ttl=10)
        fake_clock.advance(11)
        cache.get("k")
        assert len(cache) == 0

    def test_set_replaces_and_restarts_ttl(self, cache, fake_clock):
        cache.set("k", "old", ttl=10)
        fake_clock.advance(8)
        cache.set("k", "new", ttl=10)
        fake_clock.advance(8)
        assert cache.get("k") == "new"

    def test_empty_list_is_a_hit(self, cache):
        cache.set("k", [], ttl=60)
        assert cache.get("k") == []

    def test_clear_drops_everything(self, cache):
        cache.set("a", 1, ttl=60)
        cache.set("b", 2, ttl=60)
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_discard_removes_one_key(self, cache):
        cache.set("a", 1, ttl=60)
        cache.set("b", 2, ttl=60)
        cache.discard("a")
        cache.discard("missing")
        assert cache.get("a") is None
        assert cache.get("b") == 2

    def test_different_keys_dont_collide(self, cache):
        cache.set("a", "alpha", ttl=60)
        cache.set("b", "bravo", ttl=60)
        assert cache.get("a") == "alpha"
        assert cache.get("b") == "bravo"

    def test_negative_ttl_rejected(self, cache):
        with pytest.raises(AssertionError):
            cache.set("k", "v", ttl=-1)

    def test_default_clock_is_monotonic(self):
        cache = TTLCache()
        cache.set("k", "v", ttl=60)
        assert cache.get("k") == "v"


class TestMakeKey:
    def test_coordinates_rounded_to_two_decimals(self):
        assert make_key(Source.ALERTS, 35.22261, -97.43949) == "nws_alerts:35.22:-97.44"

    def test_nearby_points_share_key(self):
        assert make_key(Source.INSTABILITY, 35.2226, -97.4395) == make_key(
            Source.INSTABILITY, 35.2231, -97.4401
        )

    def test_params_sorted(self):
        key = make_key(Source.SHELTERS, 35.0, -97.0, radius=50.0, state="OK")
        assert key == "fema_shelters:35.00:-97.00:radius=50.0:state=OK"

    def test_global_key(self):
        assert make_key(Source.OUTLOOK) == "spc_outlook"


class TestSourceTTLs:
    def test_every_source_has_ttl(self):
        assert set(SOURCE_TTLS) == set(Source)

    def test_ttl_values(self):
        assert SOURCE_TTLS[Source.ALERTS] == ALERTS_TTL == 120
        assert SOURCE_TTLS[Source.TORNADO_REPORTS] == 600
        assert SOURCE_TTLS[Source.SHELTERS] == 300
        assert SOURCE_TTLS[Source.INSTABILITY] == INSTABILITY_TTL == 3600
        assert SOURCE_TTLS[Source.OUTLOOK] == OUTLOOK_TTL == 21600
