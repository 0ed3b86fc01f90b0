"""
Tests for the per-tenant session state store.
"""

import pytest

from lekka_kernel.domain.clock import DeterministicClock
from lekka_kernel.domain.session_state import SessionStateStore


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def store(clock):
    return SessionStateStore(ttl_seconds=60, clock=clock)


def test_put_and_get(store):
    store.put("t1", "s1", {"doc_type": "invoice"})

    assert store.get("t1", "s1") == {"doc_type": "invoice"}


def test_tenants_are_isolated(store):
    store.put("t1", "s1", {"x": 1})

    assert store.get("t2", "s1") == {}


def test_get_returns_a_copy(store):
    store.put("t1", "s1", {"x": 1})
    store.get("t1", "s1")["x"] = 2

    assert store.get("t1", "s1") == {"x": 1}


def test_entries_expire(store, clock):
    store.put("t1", "s1", {"x": 1})
    clock.advance(60)

    assert store.get("t1", "s1") == {}
    assert len(store) == 0


def test_update_refreshes_expiry(store, clock):
    store.put("t1", "s1", {"n": 1})
    clock.advance(50)
    result = store.update("t1", "s1", lambda state: state.update(n=state["n"] + 1))
    clock.advance(50)

    assert result == {"n": 2}
    assert store.get("t1", "s1") == {"n": 2}


def test_evict_expired(store, clock):
    store.put("t1", "s1", {})
    store.put("t1", "s2", {})
    clock.advance(61)

    assert store.evict_expired() == 2


def test_discard(store):
    store.put("t1", "s1", {"x": 1})
    store.discard("t1", "s1")

    assert store.get("t1", "s1") == {}


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        SessionStateStore(ttl_seconds=0)
