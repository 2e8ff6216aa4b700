from __future__ import annotations
from codestreak.services.fallback_store import FallbackStore
from fakes import FakeClock


def test_set_then_get_returns_value():
    store = FallbackStore(clock=FakeClock())
    store.set("leaderboard:c1", "[]", 60)
    assert store.get("leaderboard:c1") == "[]"


def test_unknown_key_is_absent():
    store = FallbackStore(clock=FakeClock())
    assert store.get("nope") is None


def test_value_lives_for_full_ttl_then_expires_lazily():
    clock = FakeClock()
    store = FallbackStore(clock=clock)
    store.set("k", "v", 60)

    clock.advance(60)  # exactly at expiry: still served
    assert store.get("k") == "v"

    clock.advance(0.001)
    assert len(store) == 1  # nothing swept in the background
    assert store.get("k") is None
    assert len(store) == 0  # evicted by the read


def test_set_overwrites_value_and_ttl():
    clock = FakeClock()
    store = FallbackStore(clock=clock)
    store.set("k", "old", 10)
    clock.advance(5)
    store.set("k", "new", 10)
    clock.advance(8)
    assert store.get("k") == "new"


def test_delete_is_idempotent():
    store = FallbackStore(clock=FakeClock())
    store.set("k", "v", 60)
    store.delete("k")
    store.delete("k")
    store.delete("never-set")
    assert store.get("k") is None


def test_instances_are_isolated():
    a, b = FallbackStore(), FallbackStore()
    a.set("k", "v", 60)
    assert b.get("k") is None
