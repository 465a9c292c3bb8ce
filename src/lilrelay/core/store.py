"""
In-memory event store shared by every connection.

[EventStore][lilrelay.core.store.EventStore] maps event id to
[Event][lilrelay.models.event.Event]. It is read-mostly: every new
subscription scans it for historical replay, while writes only happen on
accepted publishes.

Note:
    The store is owned by the event loop. Every method runs to completion
    without awaiting, so a ``put`` can never interleave with a ``scan`` and
    a snapshot is never torn. Events stored after a scan starts are simply
    not part of that snapshot; they reach live subscriptions through the
    broadcast path instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from lilrelay.models.event import Event


class EventStore:
    """Concurrent-safe (single-owner) mapping from event id to event.

    Re-publishing an id overwrites the stored copy (last write wins). Since
    ids are content hashes, the overwrite is a no-op in practice for
    verified events.

    Examples:
        ```python
        store = EventStore()
        store.put(event)
        event.id in store   # True
        store.scan()        # [event]
        ```
    """

    def __init__(self) -> None:
        self._events: dict[str, Event] = {}

    def put(self, event: Event) -> bool:
        """Insert or overwrite *event* by id.

        Returns:
            ``True`` if the id was new, ``False`` if an existing copy was
            replaced.
        """
        is_new = event.id not in self._events
        self._events[event.id] = event
        return is_new

    def scan(self) -> list[Event]:
        """Return a point-in-time snapshot of every stored event."""
        return list(self._events.values())

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events
