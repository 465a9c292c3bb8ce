"""
Per-client protocol state machine.

A [Connection][lilrelay.services.relay.connection.Connection] runs two units
of work that only communicate through a bounded outbound queue:

* the **inbound** side, driven by the WebSocket handler calling
  [handle_message()][lilrelay.services.relay.connection.Connection.handle_message]
  once per frame, strictly in order;
* the **writer** task, draining the queue to the transport.

```text
CONNECTING --open()--> OPEN --abort()/close()--> CLOSING --> CLOSED
```

Backpressure:
    Events fanned out by the [Hub][lilrelay.services.relay.hub.Hub] are
    enqueued without waiting. If the queue is full the peer is considered
    unresponsive and the connection is aborted, so one slow reader never
    delays a publisher or any other connection. Replies produced by the
    connection's own inbound side (``OK``, ``NOTICE``, replayed events,
    ``EOSE``) may wait up to ``write_timeout`` for room, which only ever
    slows this connection's own request processing. Replayed events stop
    at half the queue capacity, leaving the rest for live broadcasts
    while the peer is still reading.

Note:
    Subscription changes and broadcast offers both run on the event loop
    without awaiting in between, so the subscription map needs no lock.
    A new subscription is registered in the same step that snapshots the
    store; live events published after that step may therefore arrive
    before the subscription's ``EOSE``, but no event is ever lost or
    delivered twice.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from lilrelay.core.codec import decode_client_message
from lilrelay.core.exceptions import InvalidEventError, ProtocolError, TransportClosedError
from lilrelay.core.logger import Logger
from lilrelay.models.filter import Filter, matches, select_stored
from lilrelay.models.messages import (
    CloseMessage,
    EoseMessage,
    EventDelivery,
    EventMessage,
    NoticeMessage,
    OkMessage,
    ReqMessage,
)

from .configs import LimitsConfig


if TYPE_CHECKING:
    from collections.abc import Mapping

    from lilrelay.core.store import EventStore
    from lilrelay.models.event import Event
    from lilrelay.models.messages import RelayMessage

    from .hub import Hub
    from .transport import Transport


_connection_ids = itertools.count(1)


class ConnectionState(StrEnum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class Subscription:
    """A named, standing set of filters owned by one connection."""

    id: str
    filters: tuple[Filter, ...]

    def matches(self, event: Event) -> bool:
        return matches(event, self.filters)


class Connection:
    """One client session: subscriptions, outbound queue, and writer task.

    Args:
        transport: Channel used to send frames to the peer.
        hub: Broadcast registry joined on
            [open()][lilrelay.services.relay.connection.Connection.open].
        store: Shared event store.
        queue_size: Outbound queue capacity.
        write_timeout: Seconds allowed per frame write, and per wait for
            queue room on the connection's own replies.
        limits: Request limits; defaults to
            [LimitsConfig][lilrelay.services.relay.configs.LimitsConfig].
    """

    def __init__(
        self,
        transport: Transport,
        hub: Hub,
        store: EventStore,
        *,
        queue_size: int = 256,
        write_timeout: float = 10.0,
        limits: LimitsConfig | None = None,
    ) -> None:
        self.id = next(_connection_ids)
        self._transport = transport
        self._hub = hub
        self._store = store
        self._write_timeout = write_timeout
        self._limits = limits or LimitsConfig()
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        # Replay stops filling the queue here; the rest is left for live events
        self._replay_fill = max(1, queue_size // 2)
        self._dequeued = asyncio.Event()
        self._subscriptions: dict[str, Subscription] = {}
        self._state = ConnectionState.CONNECTING
        self._close_reason: str | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._closing_task: asyncio.Task[None] | None = None
        self._logger = Logger("relay.connection").bind(conn=self.id, remote=transport.remote)
        self._events_logger = Logger("lilrelay.events").bind(conn=self.id)

    def __repr__(self) -> str:
        return f"Connection(id={self.id}, remote={self.remote!r}, state={self._state.value})"

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def remote(self) -> str:
        return self._transport.remote

    @property
    def close_reason(self) -> str | None:
        return self._close_reason

    @property
    def subscriptions(self) -> Mapping[str, Subscription]:
        """Read-only snapshot of active subscriptions by id."""
        return MappingProxyType(dict(self._subscriptions))

    @property
    def queued(self) -> int:
        """Frames waiting in the outbound queue."""
        return self._queue.qsize()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(self) -> None:
        """Start the writer task and join the hub.

        Raises:
            RuntimeError: If the connection was already opened.
        """
        if self._state is not ConnectionState.CONNECTING:
            raise RuntimeError(f"cannot open connection in state {self._state}")
        self._writer_task = asyncio.create_task(
            self._write_loop(), name=f"relay-conn-{self.id}-writer"
        )
        self._hub.register(self)
        self._state = ConnectionState.OPEN
        self._hub.stats.opened += 1
        self._logger.info("connection_opened")

    def abort(self, reason: str) -> None:
        """Tear the connection down immediately.

        Deregisters from the hub, drops every subscription and discards
        queued frames at once; the writer and transport are shut down in a
        background task. No-op unless the connection is open.
        """
        if self._state is not ConnectionState.OPEN:
            return
        self._begin_closing(reason)

    async def close(self, reason: str = "closed") -> None:
        """Close the connection and wait until it is ``CLOSED``. Idempotent."""
        if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            self._begin_closing(reason)
        if self._closing_task is not None:
            await asyncio.shield(self._closing_task)

    def _begin_closing(self, reason: str) -> None:
        self._state = ConnectionState.CLOSING
        self._close_reason = reason
        self._hub.unregister(self)
        self._subscriptions.clear()
        while not self._queue.empty():
            self._queue.get_nowait()
        self._dequeued.set()
        self._closing_task = asyncio.create_task(
            self._finish_closing(), name=f"relay-conn-{self.id}-close"
        )

    async def _finish_closing(self) -> None:
        writer = self._writer_task
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer
        try:
            await asyncio.wait_for(self._transport.close(), timeout=self._write_timeout)
        except (TransportClosedError, TimeoutError) as e:
            self._logger.debug("transport_close_failed", error=str(e) or type(e).__name__)
        self._state = ConnectionState.CLOSED
        self._hub.stats.closed += 1
        self._logger.info("connection_closed", reason=self._close_reason)

    async def _write_loop(self) -> None:
        while True:
            data = await self._queue.get()
            self._dequeued.set()
            try:
                await asyncio.wait_for(self._transport.send_text(data), timeout=self._write_timeout)
            except TimeoutError:
                self._logger.warning("write_timeout", timeout=self._write_timeout)
                self.abort("write_timeout")
                return
            except TransportClosedError as e:
                self._logger.debug("write_failed", error=str(e))
                self.abort("transport_closed")
                return

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    async def handle_message(self, raw: str | bytes) -> None:
        """Process one client frame.

        Malformed input is answered with ``NOTICE`` (or ``OK false`` when
        the event id is known) and never closes the connection.
        """
        if not self.is_open:
            return
        max_length = self._limits.max_message_length
        size = len(raw.encode("utf-8", "surrogatepass")) if isinstance(raw, str) else len(raw)
        if size > max_length:
            await self._notice(f"message too large: {size} > {max_length}")
            return

        try:
            message = decode_client_message(raw)
        except InvalidEventError as e:
            self._hub.stats.rejected += 1
            self._logger.debug("event_rejected", id=e.event_id, reason=e.reason)
            await self._reply(OkMessage(e.event_id, False, e.reason))
            return
        except ProtocolError as e:
            await self._notice(str(e))
            return

        if isinstance(message, EventMessage):
            await self._publish(message.event)
        elif isinstance(message, ReqMessage):
            await self._subscribe(message)
        elif isinstance(message, CloseMessage):
            self._unsubscribe(message.subscription_id)

    async def _publish(self, event: Event) -> None:
        reason = self._check_event_limits(event)
        if reason is None and not event.verify():
            reason = "invalid signature"
        if reason is not None:
            self._hub.stats.rejected += 1
            self._logger.debug("event_rejected", id=event.id, reason=reason)
            await self._reply(OkMessage(event.id, False, reason))
            return

        is_new = self._store.put(event)
        self._hub.stats.accepted += 1
        self._events_logger.info(
            "event_stored",
            id=event.id,
            kind=event.kind,
            pubkey=event.pubkey,
            size=event.size,
            new=is_new,
        )
        # OK is queued before fan-out
        await self._reply(OkMessage(event.id, True, ""))
        self._hub.broadcast(event)

    def _check_event_limits(self, event: Event) -> str | None:
        limits = self._limits
        if len(event.tags) > limits.max_event_tags:
            return f"invalid: too many tags ({len(event.tags)} > {limits.max_event_tags})"
        if len(event.content) > limits.max_content_length:
            return (
                f"invalid: content too long ({len(event.content)} > {limits.max_content_length})"
            )
        return None

    async def _subscribe(self, message: ReqMessage) -> None:
        limits = self._limits
        sub_id = message.subscription_id
        n_filters = len(message.filters)
        if len(sub_id) > limits.max_subid_length:
            await self._notice(f"subscription id too long: max {limits.max_subid_length}")
            return
        if n_filters > limits.max_filters:
            await self._notice(f"too many filters: {n_filters} > {limits.max_filters}")
            return
        is_new = sub_id not in self._subscriptions
        if is_new and len(self._subscriptions) >= limits.max_subscriptions:
            await self._notice(f"too many subscriptions: max {limits.max_subscriptions}")
            return

        filters = tuple(f.with_limit_cap(limits.max_limit) for f in message.filters)
        backlog = select_stored(self._store.scan(), filters)
        self._subscriptions[sub_id] = Subscription(sub_id, filters)
        self._logger.debug(
            "subscription_opened", sub=sub_id, filters=n_filters, backlog=len(backlog)
        )

        for event in backlog:
            if not await self._replay(EventDelivery(sub_id, event)):
                return
        await self._reply(EoseMessage(sub_id))

    def _unsubscribe(self, sub_id: str) -> None:
        if self._subscriptions.pop(sub_id, None) is not None:
            self._logger.debug("subscription_closed", sub=sub_id)

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    def offer(self, event: Event) -> int:
        """Enqueue *event* once per matching subscription, without waiting.

        Called by the hub. A full queue aborts the connection.

        Returns:
            Number of deliveries enqueued.
        """
        if not self.is_open:
            return 0
        delivered = 0
        for subscription in tuple(self._subscriptions.values()):
            if not subscription.matches(event):
                continue
            try:
                self._queue.put_nowait(EventDelivery(subscription.id, event).to_json())
            except asyncio.QueueFull:
                self._hub.stats.slow_consumers += 1
                self._logger.warning("slow_consumer", queue_size=self._queue.maxsize)
                self.abort("outbound_queue_full")
                return delivered
            delivered += 1
        return delivered

    async def _reply(self, message: RelayMessage) -> bool:
        if not self.is_open:
            return False
        try:
            await asyncio.wait_for(self._queue.put(message.to_json()), timeout=self._write_timeout)
        except TimeoutError:
            self._logger.warning("reply_timeout", timeout=self._write_timeout)
            self.abort("outbound_queue_stalled")
            return False
        return self.is_open

    async def _replay(self, message: EventDelivery) -> bool:
        """Enqueue a stored event, keeping queue room free for broadcasts."""
        while self.is_open and self._queue.qsize() >= self._replay_fill:
            self._dequeued.clear()
            try:
                await asyncio.wait_for(self._dequeued.wait(), timeout=self._write_timeout)
            except TimeoutError:
                self._logger.warning("replay_timeout", timeout=self._write_timeout)
                self.abort("outbound_queue_stalled")
                return False
        return await self._reply(message)

    async def _notice(self, text: str) -> None:
        self._hub.stats.notices += 1
        self._logger.debug("notice_sent", message=text)
        await self._reply(NoticeMessage(text))
