"""Nostr relay service: WebSocket endpoint, NIP-11 document, health, metrics.

The HTTP/WebSocket server (FastAPI on uvicorn) runs as a background
``asyncio.Task`` alongside the standard ``run_forever()`` cycle. Every
WebSocket becomes one
[Connection][lilrelay.services.relay.connection.Connection] sharing the
service's [Hub][lilrelay.services.relay.hub.Hub] and
[EventStore][lilrelay.core.store.EventStore]. Each ``run()`` cycle checks
the server is alive, logs relay statistics, and updates Prometheus metrics.

Heartbeat and frame-size limits are enforced by uvicorn from
``ping_interval``, ``ping_timeout`` and ``read_limit``.

See Also:
    [RelayConfig][lilrelay.services.relay.configs.RelayConfig]: Service
        configuration.
    [BaseService][lilrelay.core.base_service.BaseService]: Abstract
        base class providing lifecycle and metrics.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING, Any, ClassVar

import uvicorn
from fastapi import FastAPI, Request, Response, WebSocket
from fastapi.responses import HTMLResponse, JSONResponse

from lilrelay.core.base_service import BaseService
from lilrelay.core.logger import Logger
from lilrelay.core.metrics import metrics_response
from lilrelay.core.store import EventStore
from lilrelay.models.constants import ServiceName
from lilrelay.nips.nip11 import NIP11_CONTENT_TYPE

from .configs import RelayConfig
from .connection import Connection
from .hub import Hub
from .transport import WebSocketTransport


if TYPE_CHECKING:
    from types import TracebackType

_HTTP_ERROR_THRESHOLD = 400
_NIP11_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Accept",
    "Access-Control-Allow-Methods": "GET",
}
_INDEX_HTML = (
    "<!DOCTYPE html><html><head><title>{name}</title></head><body>"
    "<h1>{name}</h1><p>{description}</p>"
    "<p>WebSocket endpoint: ws://{host}/ws</p>"
    '<p>To get relay information in JSON format, send a request with Accept header set to "'
    + NIP11_CONTENT_TYPE
    + '"</p></body></html>'
)


class Relay(BaseService[RelayConfig]):
    """In-memory Nostr relay.

    Lifecycle:
        1. ``__aenter__``: build the FastAPI app, start uvicorn.
        2. ``run()``: verify the server, log statistics, update metrics.
        3. ``__aexit__``: close every connection, stop the server task.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.RELAY
    CONFIG_CLASS: ClassVar[type[RelayConfig]] = RelayConfig

    def __init__(
        self,
        config: RelayConfig | None = None,
        *,
        store: EventStore | None = None,
        hub: Hub | None = None,
    ) -> None:
        super().__init__(config)
        self._store = store if store is not None else EventStore()
        self._hub = hub if hub is not None else Hub()
        self._info = self._config.relay_information()
        self._access_logger = Logger("lilrelay.access")
        self._server_task: asyncio.Task[None] | None = None
        self._last_stats = self._hub.stats.snapshot()

    @property
    def store(self) -> EventStore:
        return self._store

    @property
    def hub(self) -> Hub:
        return self._hub

    async def __aenter__(self) -> Relay:
        await super().__aenter__()

        app = self._build_app()
        self._server_task = asyncio.create_task(self._run_server(app))
        self._logger.info(
            "relay_server_started",
            host=self._config.host,
            port=self._config.port,
        )
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        connections = self._hub.connections
        for connection in connections:
            await connection.close("shutdown")
        if self._server_task is not None:
            self._server_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._server_task
            self._server_task = None
        self._logger.info("relay_server_stopped", connections_closed=len(connections))
        await super().__aexit__(_exc_type, _exc_val, _exc_tb)

    async def run(self) -> None:
        """Check the server task and publish relay statistics."""
        task = self._server_task
        if task is not None and task.done():
            exc = task.exception() if not task.cancelled() else None
            if exc is None and not task.cancelled():
                # uvicorn returns normally after handling SIGINT/SIGTERM itself
                self._logger.info("relay_server_exited")
                self.request_shutdown()
                return
            self._logger.error("relay_server_crashed", error=str(exc) if exc else "cancelled")
            raise RuntimeError("relay server task has stopped unexpectedly") from exc

        current = self._hub.stats.snapshot()
        deltas = {name: value - self._last_stats[name] for name, value in current.items()}
        self._last_stats = current

        connections = len(self._hub)
        subscriptions = self._hub.subscription_count
        stored_events = len(self._store)
        self._logger.info(
            "cycle_stats",
            connections=connections,
            subscriptions=subscriptions,
            stored_events=stored_events,
            **deltas,
        )
        for name, delta in deltas.items():
            self.inc_counter(name, delta)
        self.set_gauge("connections", connections)
        self.set_gauge("subscriptions", subscriptions)
        self.set_gauge("stored_events", stored_events)

    # -------------------------------------------------------------------------
    # HTTP / WebSocket app
    # -------------------------------------------------------------------------

    def _build_app(self) -> FastAPI:
        """Construct the FastAPI application serving the relay."""
        app = FastAPI(title=self._info.name or "lilrelay", docs_url=None, redoc_url=None)

        @app.middleware("http")
        async def log_requests(request: Request, call_next: Any) -> Response:
            start = time.monotonic()
            try:
                response: Response = await call_next(request)
            except Exception as exc:  # HTTP request error boundary
                self._access_logger.error(
                    "unhandled_error",
                    error=str(exc),
                    path=request.url.path,
                )
                response = JSONResponse({"error": "Internal server error"}, status_code=500)
            duration_ms = (time.monotonic() - start) * 1000
            log = (
                self._access_logger.warning
                if response.status_code >= _HTTP_ERROR_THRESHOLD
                else self._access_logger.info
            )
            log(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                remote=request.client.host if request.client else "unknown",
                duration_ms=round(duration_ms, 1),
            )
            return response

        @app.get("/")
        async def index(request: Request) -> Response:
            if NIP11_CONTENT_TYPE in request.headers.get("accept", ""):
                return JSONResponse(
                    self._info.to_dict(),
                    media_type=NIP11_CONTENT_TYPE,
                    headers=_NIP11_HEADERS,
                )
            return HTMLResponse(
                _INDEX_HTML.format(
                    name=self._info.name,
                    description=self._info.description,
                    host=request.headers.get("host", f"{self._config.host}:{self._config.port}"),
                )
            )

        @app.get("/health")
        async def health() -> dict[str, str]:
            return {"status": "ok"}

        if self._config.metrics.enabled:

            @app.get(self._config.metrics.path, include_in_schema=False)
            async def metrics() -> Response:
                body, content_type = metrics_response()
                return Response(content=body, media_type=content_type)

        app.add_api_websocket_route("/", self._serve_websocket)
        app.add_api_websocket_route("/ws", self._serve_websocket)
        return app

    async def _serve_websocket(self, websocket: WebSocket) -> None:
        """Drive one client session until the peer leaves or the connection closes."""
        await websocket.accept()
        connection = Connection(
            WebSocketTransport(websocket),
            self._hub,
            self._store,
            queue_size=self._config.queue_size,
            write_timeout=self._config.write_timeout,
            limits=self._config.limits,
        )
        connection.open()
        idle_timeout = self._config.idle_timeout
        try:
            while connection.is_open:
                try:
                    message = await asyncio.wait_for(websocket.receive(), timeout=idle_timeout)
                except TimeoutError:
                    self._logger.info("connection_idle", conn=connection.id, timeout=idle_timeout)
                    break
                if message["type"] == "websocket.disconnect":
                    self._logger.debug(
                        "peer_disconnected", conn=connection.id, code=message.get("code")
                    )
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await connection.handle_message(raw)
        except RuntimeError as e:
            # Starlette raises once the socket is already torn down
            self._logger.debug("receive_failed", conn=connection.id, error=str(e))
        finally:
            await connection.close()

    async def _run_server(self, app: FastAPI) -> None:
        """Run uvicorn as an asyncio server."""
        config = uvicorn.Config(
            app,
            host=self._config.host,
            port=self._config.port,
            log_level="warning",
            access_log=False,
            ws_max_size=self._config.read_limit,
            ws_ping_interval=self._config.ping_interval,
            ws_ping_timeout=self._config.ping_timeout,
        )
        server = uvicorn.Server(config)
        await server.serve()
