"""In-memory challenge store — TTL, atomic increment, sliding window, sweep."""

import threading

from mjengo.challenge_store import InMemoryChallengeStore

from conftest import FakeClock


def test_values_expire_lazily():
    clock = FakeClock()
    store = InMemoryChallengeStore(clock=clock)
    store.set("k", {"attempts": 0}, ttl_seconds=60)
    assert store.get("k") == {"attempts": 0}
    clock.advance(seconds=61)
    assert store.get("k") is None


def test_get_returns_a_copy():
    store = InMemoryChallengeStore(clock=FakeClock())
    store.set("k", {"attempts": 0}, ttl_seconds=60)
    value = store.get("k")
    value["attempts"] = 99
    assert store.get("k")["attempts"] == 0


def test_delete_reports_only_first_remover():
    store = InMemoryChallengeStore(clock=FakeClock())
    store.set("k", {"code": "1"}, ttl_seconds=60)
    assert store.delete("k") is True
    assert store.delete("k") is False


def test_incr_is_atomic_under_threads():
    store = InMemoryChallengeStore()
    store.set("k", {"attempts": 0}, ttl_seconds=60)

    def bump():
        for _ in range(200):
            store.incr("k", "attempts")

    threads = [threading.Thread(target=bump) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert store.get("k")["attempts"] == 1600


def test_incr_missing_key():
    store = InMemoryChallengeStore(clock=FakeClock())
    assert store.incr("missing", "attempts") is None


def test_hit_sliding_window():
    clock = FakeClock()
    store = InMemoryChallengeStore(clock=clock)
    assert store.hit("r", window_seconds=100, limit=2)
    clock.advance(seconds=50)
    assert store.hit("r", window_seconds=100, limit=2)
    assert not store.hit("r", window_seconds=100, limit=2)
    clock.advance(seconds=51)  # first hit leaves the window
    assert store.hit("r", window_seconds=100, limit=2)


def test_sweep_removes_expired_entries():
    clock = FakeClock()
    store = InMemoryChallengeStore(clock=clock)
    store.set("old", 1, ttl_seconds=10)
    store.set("new", 1, ttl_seconds=1000)
    store.hit("r", window_seconds=3600, limit=10)
    clock.advance(seconds=3601)
    assert store.sweep() == 3  # both values and the idle window
    assert store.get("new") is None
