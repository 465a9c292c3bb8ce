"""Unit tests for core.store module."""

from lilrelay.core.store import EventStore
from lilrelay.models.event import Event


def _event(n: int, content: str = "") -> Event:
    return Event(
        id=f"{n:064x}",
        pubkey="b" * 64,
        created_at=n,
        kind=1,
        tags=(),
        content=content,
        sig="c" * 128,
    )


class TestEventStore:
    """EventStore put/scan."""

    def test_empty(self) -> None:
        store = EventStore()
        assert len(store) == 0
        assert store.scan() == []
        assert "a" * 64 not in store

    def test_put_and_contains(self) -> None:
        store = EventStore()
        event = _event(1)
        assert store.put(event) is True
        assert event.id in store
        assert store.scan() == [event]
        assert len(store) == 1

    def test_same_id_overwrites(self) -> None:
        store = EventStore()
        first, second = _event(1, "first"), _event(1, "second")
        store.put(first)
        assert store.put(second) is False
        assert len(store) == 1
        assert store.scan() == [second]

    def test_scan_is_a_snapshot(self) -> None:
        store = EventStore()
        store.put(_event(1))
        snapshot = store.scan()
        store.put(_event(2))
        assert [e.created_at for e in snapshot] == [1]
        assert len(store.scan()) == 2

    def test_scan_tolerates_mutation(self) -> None:
        store = EventStore()
        for n in range(3):
            store.put(_event(n))
        for event in store.scan():
            store.put(_event(event.created_at + 100))
        assert len(store) == 6

    def test_contains_non_string(self) -> None:
        assert 42 not in EventStore()
