"""Unit tests for services.relay.hub module."""

from unittest.mock import MagicMock

from lilrelay.services.relay.hub import Hub, RelayStats


def _fake_connection(conn_id: int, delivered: int = 1) -> MagicMock:
    connection = MagicMock()
    connection.id = conn_id
    connection.offer.return_value = delivered
    connection.subscriptions = {}
    return connection


class TestRelayStats:
    """RelayStats counters."""

    def test_starts_at_zero(self) -> None:
        assert set(RelayStats().snapshot().values()) == {0}

    def test_snapshot_is_a_copy(self) -> None:
        stats = RelayStats()
        snapshot = stats.snapshot()
        stats.accepted += 2
        assert snapshot["accepted"] == 0
        assert stats.snapshot()["accepted"] == 2


class TestMembership:
    """register() / unregister()."""

    def test_register(self) -> None:
        hub = Hub()
        connection = _fake_connection(1)
        hub.register(connection)
        assert connection in hub
        assert len(hub) == 1

    def test_register_twice_keeps_one_entry(self) -> None:
        hub = Hub()
        connection = _fake_connection(1)
        hub.register(connection)
        hub.register(connection)
        assert len(hub) == 1

    def test_unregister_unknown_is_noop(self) -> None:
        hub = Hub()
        hub.unregister(_fake_connection(1))
        assert len(hub) == 0

    def test_connections_is_a_snapshot(self) -> None:
        hub = Hub()
        first = _fake_connection(1)
        hub.register(first)
        snapshot = hub.connections
        hub.register(_fake_connection(2))
        assert snapshot == (first,)

    def test_subscription_count(self) -> None:
        hub = Hub()
        a, b = _fake_connection(1), _fake_connection(2)
        a.subscriptions = {"x": object(), "y": object()}
        b.subscriptions = {"z": object()}
        hub.register(a)
        hub.register(b)
        assert hub.subscription_count == 3


class TestBroadcast:
    """broadcast() fan-out."""

    def test_offers_to_every_connection(self, event) -> None:
        hub = Hub()
        connections = [_fake_connection(i, delivered=i) for i in (1, 2, 3)]
        for connection in connections:
            hub.register(connection)

        assert hub.broadcast(event) == 6
        for connection in connections:
            connection.offer.assert_called_once_with(event)
        assert hub.stats.deliveries == 6

    def test_empty_hub(self, event) -> None:
        hub = Hub()
        assert hub.broadcast(event) == 0
        assert hub.stats.deliveries == 0

    def test_failing_offer_is_isolated(self, event) -> None:
        hub = Hub()
        broken = _fake_connection(1)
        broken.offer.side_effect = RuntimeError("boom")
        healthy = _fake_connection(2)
        hub.register(broken)
        hub.register(healthy)

        assert hub.broadcast(event) == 1
        broken.abort.assert_called_once_with("offer_failed")
        healthy.offer.assert_called_once_with(event)
        healthy.abort.assert_not_called()

    def test_unregister_during_broadcast(self, event) -> None:
        hub = Hub()
        first, second = _fake_connection(1), _fake_connection(2)

        def _drop_others(_event) -> int:
            hub.unregister(first)
            hub.unregister(second)
            return 1

        first.offer.side_effect = _drop_others
        second.offer.side_effect = _drop_others
        hub.register(first)
        hub.register(second)

        assert hub.broadcast(event) == 2
        assert len(hub) == 0
