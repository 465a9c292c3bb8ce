"""Shared fixtures for relay service tests."""

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest

from lilrelay.core.exceptions import TransportClosedError
from lilrelay.core.store import EventStore
from lilrelay.services.relay.connection import Connection
from lilrelay.services.relay.hub import Hub


class FakeTransport:
    """In-memory transport recording every frame a connection sends.

    ``blocked=True`` makes every send hang until ``unblock()`` is called,
    which simulates a peer that stopped reading. ``delay`` adds a fixed
    latency to each send, like a peer reading slowly but steadily.
    """

    def __init__(
        self, remote: str = "127.0.0.1:1", *, blocked: bool = False, delay: float = 0.0
    ) -> None:
        self.remote = remote
        self.delay = delay
        self.sent: list[list[Any]] = []
        self.closed = False
        self.close_code: int | None = None
        self.fail_sends = False
        self._inbox: asyncio.Queue[list[Any]] = asyncio.Queue()
        self._unblocked = asyncio.Event()
        if not blocked:
            self._unblocked.set()

    def unblock(self) -> None:
        self._unblocked.set()

    async def send_text(self, data: str) -> None:
        await self._unblocked.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_sends:
            raise TransportClosedError("peer gone")
        message = json.loads(data)
        self.sent.append(message)
        self._inbox.put_nowait(message)

    async def close(self, code: int = 1000) -> None:
        self.closed = True
        self.close_code = code

    async def next_message(self, timeout: float = 1.0) -> list[Any]:  # noqa: ASYNC109
        """Wait for the next frame the connection writes."""
        return await asyncio.wait_for(self._inbox.get(), timeout)

    async def messages_until_eose(self, sub_id: str, timeout: float = 1.0) -> list[list[Any]]:  # noqa: ASYNC109
        """Collect frames up to and including ``["EOSE", sub_id]``."""
        collected = []
        while True:
            message = await self.next_message(timeout)
            collected.append(message)
            if message == ["EOSE", sub_id]:
                return collected

    async def settle(self) -> None:
        """Let the writer task flush everything already queued."""
        for _ in range(10):
            await asyncio.sleep(0)

    def pending(self) -> list[list[Any]]:
        """Frames received but not yet consumed by next_message()."""
        items = []
        while not self._inbox.empty():
            items.append(self._inbox.get_nowait())
        return items


ConnectionFactory = Callable[..., Connection]


@pytest.fixture
def hub() -> Hub:
    return Hub()


@pytest.fixture
def store() -> EventStore:
    return EventStore()


@pytest.fixture
async def connect(hub: Hub, store: EventStore) -> AsyncIterator[ConnectionFactory]:
    """Factory opening connections over fake transports; closes them at teardown."""
    opened: list[Connection] = []

    def _connect(transport: FakeTransport | None = None, **kwargs: Any) -> Connection:
        connection = Connection(transport or FakeTransport(), hub, store, **kwargs)
        connection.open()
        opened.append(connection)
        return connection

    yield _connect

    for connection in opened:
        await connection.close()


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    """Factory for :class:`FakeTransport` instances."""
    return FakeTransport
