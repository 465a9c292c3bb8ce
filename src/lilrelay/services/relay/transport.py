"""
Outbound transport seam between a connection and its socket.

[Connection][lilrelay.services.relay.connection.Connection] only needs to
send text frames and close; it never sees Starlette types. Framing,
handshake, and the ping/pong heartbeat stay inside the server (uvicorn).
Tests substitute an in-memory transport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from fastapi import WebSocketDisconnect
from starlette.websockets import WebSocketState

from lilrelay.core.exceptions import TransportClosedError


if TYPE_CHECKING:
    from fastapi import WebSocket


class Transport(Protocol):
    """What a connection needs from the peer channel."""

    @property
    def remote(self) -> str: ...

    async def send_text(self, data: str) -> None:
        """Send one text frame. Raises TransportClosedError if the peer is gone."""
        ...

    async def close(self, code: int = 1000) -> None:
        """Close the channel. Raises TransportClosedError if already broken."""
        ...


class WebSocketTransport:
    """[Transport][lilrelay.services.relay.transport.Transport] over a FastAPI ``WebSocket``."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        client = websocket.client
        self._remote = f"{client.host}:{client.port}" if client else "unknown"

    @property
    def remote(self) -> str:
        return self._remote

    async def send_text(self, data: str) -> None:
        try:
            await self._websocket.send_text(data)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise TransportClosedError(f"send failed: {e!r}") from e

    async def close(self, code: int = 1000) -> None:
        if (
            self._websocket.application_state == WebSocketState.DISCONNECTED
            or self._websocket.client_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await self._websocket.close(code=code)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise TransportClosedError(f"close failed: {e!r}") from e
