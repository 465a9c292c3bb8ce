"""
Registry of live connections and fan-out of accepted events.

The [Hub][lilrelay.services.relay.hub.Hub] holds a non-owning set of open
[Connection][lilrelay.services.relay.connection.Connection] objects. On
every accepted publish it offers the event to each of them; each connection
decides which of its subscriptions match and enqueues without blocking.

Note:
    Membership changes and broadcasts all run on the event loop and never
    await, so a broadcast iterates a snapshot of the membership taken when
    it starts. Connections registered during a broadcast miss that event;
    connections removed during it are skipped by their own state check.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from lilrelay.core.logger import Logger


if TYPE_CHECKING:
    from lilrelay.models.event import Event

    from .connection import Connection


@dataclass(slots=True)
class RelayStats:
    """Cumulative relay counters, read by the service's stats cycle.

    Attributes:
        accepted: Events stored after passing validation.
        rejected: Events answered with ``OK false``.
        notices: ``NOTICE`` messages sent for malformed input.
        deliveries: Live ``EVENT`` messages enqueued by broadcasts.
        slow_consumers: Connections dropped for a full outbound queue.
        opened: Connections that reached ``OPEN``.
        closed: Connections that reached ``CLOSED``.
    """

    accepted: int = 0
    rejected: int = 0
    notices: int = 0
    deliveries: int = 0
    slow_consumers: int = 0
    opened: int = 0
    closed: int = 0

    def snapshot(self) -> dict[str, int]:
        return asdict(self)


class Hub:
    """Broadcast registry shared by every connection of one relay."""

    def __init__(self) -> None:
        self._connections: set[Connection] = set()
        self.stats = RelayStats()
        self._logger = Logger("relay.hub")

    def register(self, connection: Connection) -> None:
        self._connections.add(connection)

    def unregister(self, connection: Connection) -> None:
        """Remove *connection*; unknown connections are ignored."""
        self._connections.discard(connection)

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    @property
    def connections(self) -> tuple[Connection, ...]:
        """Point-in-time snapshot of registered connections."""
        return tuple(self._connections)

    @property
    def subscription_count(self) -> int:
        return sum(len(c.subscriptions) for c in self._connections)

    def broadcast(self, event: Event) -> int:
        """Offer *event* to every registered connection.

        A connection whose offer fails is aborted; the others still receive
        the event.

        Returns:
            Number of deliveries enqueued across all connections.
        """
        delivered = 0
        for connection in self.connections:
            try:
                delivered += connection.offer(event)
            except Exception as e:  # Per-connection error boundary
                self._logger.error(
                    "broadcast_offer_failed",
                    conn=connection.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                connection.abort("offer_failed")
        self.stats.deliveries += delivered
        return delivered
