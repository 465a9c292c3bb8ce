"""Unit tests for services.relay.service module.

Tests:
- Relay service initialization
- HTTP endpoints: NIP-11 document, HTML page, health, metrics
- WebSocket sessions end to end via TestClient
- Run cycle statistics and server task monitoring
- Context manager startup and shutdown
"""

import asyncio
import json
from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from lilrelay.core.metrics import MetricsConfig
from lilrelay.models.constants import ServiceName
from lilrelay.nips.nip11 import RelayInformation
from lilrelay.services.relay.configs import LimitsConfig, RelayConfig
from lilrelay.services.relay.connection import Connection
from lilrelay.services.relay.service import Relay


NIP11_ACCEPT = {"Accept": "application/nostr+json"}


@pytest.fixture
def relay_config() -> RelayConfig:
    return RelayConfig(
        interval=60.0,
        host="127.0.0.1",
        port=9999,
        limits=LimitsConfig(max_subscriptions=5),
    )


@pytest.fixture
def relay(relay_config: RelayConfig) -> Relay:
    return Relay(config=relay_config)


@pytest.fixture
def client(relay: Relay) -> Iterator[TestClient]:
    """TestClient sharing one event loop across every request and socket."""
    with TestClient(relay._build_app()) as test_client:
        yield test_client


def _frame(*items: object) -> str:
    return json.dumps(list(items))


# ============================================================================
# Service
# ============================================================================


class TestRelay:
    """Relay service class."""

    def test_service_name(self) -> None:
        assert Relay.SERVICE_NAME == ServiceName.RELAY

    def test_init(self, relay: Relay) -> None:
        assert len(relay.store) == 0
        assert len(relay.hub) == 0
        assert relay._server_task is None

    def test_default_config(self) -> None:
        relay = Relay()
        assert relay.config.port == 8080

    def test_shared_store_and_hub(self, relay_config, store, hub) -> None:
        relay = Relay(config=relay_config, store=store, hub=hub)
        assert relay.store is store
        assert relay.hub is hub

    def test_from_dict(self) -> None:
        relay = Relay.from_dict({"port": 7447, "limits": {"max_filters": 3}})
        assert relay.config.port == 7447
        assert relay.config.limits.max_filters == 3


# ============================================================================
# HTTP Endpoints
# ============================================================================


class TestHttpEndpoints:
    """Plain HTTP routes."""

    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_nip11_document(self, client: TestClient, relay_config: RelayConfig) -> None:
        resp = client.get("/", headers=NIP11_ACCEPT)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/nostr+json")
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.headers["access-control-allow-methods"] == "GET"
        doc = resp.json()
        assert doc["name"] == relay_config.info.name
        assert doc["supported_nips"] == relay_config.info.supported_nips
        assert doc["limitation"]["max_subscriptions"] == 5
        assert doc["limitation"]["auth_required"] is False
        assert "pubkey" not in doc

    def test_nip11_accept_among_others(self, client: TestClient) -> None:
        resp = client.get("/", headers={"Accept": "text/html, application/nostr+json"})
        assert resp.headers["content-type"].startswith("application/nostr+json")

    def test_html_page(self, client: TestClient, relay_config: RelayConfig) -> None:
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert relay_config.info.name in resp.text
        assert "WebSocket endpoint: ws://testserver/ws" in resp.text

    def test_metrics_disabled(self, client: TestClient) -> None:
        assert client.get("/metrics").status_code == 404

    def test_metrics_enabled(self) -> None:
        relay = Relay(config=RelayConfig(metrics=MetricsConfig(enabled=True, path="/prom")))
        relay.set_gauge("connections", 0)
        with TestClient(relay._build_app()) as client:
            resp = client.get("/prom")
        assert resp.status_code == 200
        assert b"service_gauge" in resp.content

    def test_unknown_path(self, client: TestClient) -> None:
        assert client.get("/nope").status_code == 404

    def test_unhandled_error_returns_json_500(self, relay: Relay) -> None:
        app = relay._build_app()
        with (
            patch.object(RelayInformation, "to_dict", side_effect=RuntimeError("boom")),
            TestClient(app, raise_server_exceptions=False) as client,
        ):
            resp = client.get("/", headers=NIP11_ACCEPT)
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}


# ============================================================================
# WebSocket Sessions
# ============================================================================


class TestWebSocket:
    """End-to-end sessions over the WebSocket endpoints."""

    @pytest.mark.parametrize("path", ["/", "/ws"])
    def test_empty_subscription(self, client: TestClient, path: str) -> None:
        with client.websocket_connect(path) as ws:
            ws.send_text(_frame("REQ", "s1", {}))
            assert ws.receive_json() == ["EOSE", "s1"]

    def test_publish_and_subscribe(self, client: TestClient, relay: Relay, make_event) -> None:
        note = make_event(kind=1, content="over the wire")
        with client.websocket_connect("/ws") as ws_b:
            ws_b.send_text(_frame("REQ", "sB", {"kinds": [1]}))
            assert ws_b.receive_json() == ["EOSE", "sB"]

            with client.websocket_connect("/ws") as ws_a:
                ws_a.send_text(_frame("EVENT", note.to_dict()))
                assert ws_a.receive_json() == ["OK", note.id, True, ""]

            assert ws_b.receive_json() == ["EVENT", "sB", note.to_dict()]
        assert relay.store.scan() == [note]

    def test_forged_event_rejected(
        self, client: TestClient, relay: Relay, event, forge_event
    ) -> None:
        forged = forge_event(event)
        with client.websocket_connect("/ws") as ws:
            ws.send_text(_frame("EVENT", forged.to_dict()))
            assert ws.receive_json() == ["OK", forged.id, False, "invalid signature"]
            ws.send_text(_frame("REQ", "s1", {}))
            assert ws.receive_json() == ["EOSE", "s1"]
        assert len(relay.store) == 0

    def test_replay_stored_events(self, client: TestClient, relay: Relay, event) -> None:
        relay.store.put(event)
        with client.websocket_connect("/") as ws:
            ws.send_text(_frame("REQ", "s1", {"authors": [event.pubkey]}))
            assert ws.receive_json() == ["EVENT", "s1", event.to_dict()]
            assert ws.receive_json() == ["EOSE", "s1"]

    def test_malformed_frame_keeps_session(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("garbage")
            assert ws.receive_json() == ["NOTICE", "invalid message format"]
            ws.send_bytes(_frame("REQ", "s1", {}).encode())
            assert ws.receive_json() == ["EOSE", "s1"]

    def test_disconnect_unregisters(self, client: TestClient, relay: Relay) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text(_frame("REQ", "s1", {}))
            ws.receive_json()
            assert len(relay.hub) == 1
        # The handler finishes asynchronously after the client leaves
        for _ in range(100):
            if len(relay.hub) == 0:
                break
            client.get("/health")
        assert len(relay.hub) == 0

    def test_idle_timeout_closes(self) -> None:
        relay = Relay(config=RelayConfig(idle_timeout=0.1))
        with TestClient(relay._build_app()) as client, client.websocket_connect("/ws") as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_text()
            assert exc_info.value.code == 1000


# ============================================================================
# Run Cycle
# ============================================================================


class TestRelayRun:
    """Relay.run() cycle."""

    async def test_run_reports_stats(self, relay: Relay, event) -> None:
        relay.store.put(event)
        relay.hub.stats.accepted = 3
        relay.hub.stats.rejected = 1

        with (
            patch.object(relay, "inc_counter") as mock_counter,
            patch.object(relay, "set_gauge") as mock_gauge,
        ):
            await relay.run()

        mock_counter.assert_any_call("accepted", 3)
        mock_counter.assert_any_call("rejected", 1)
        mock_gauge.assert_any_call("connections", 0)
        mock_gauge.assert_any_call("subscriptions", 0)
        mock_gauge.assert_any_call("stored_events", 1)

    async def test_run_reports_deltas(self, relay: Relay) -> None:
        relay.hub.stats.accepted = 3
        with patch.object(relay, "inc_counter"), patch.object(relay, "set_gauge"):
            await relay.run()

        relay.hub.stats.accepted = 5
        with patch.object(relay, "inc_counter") as mock_counter, patch.object(relay, "set_gauge"):
            await relay.run()
        mock_counter.assert_any_call("accepted", 2)

    async def test_run_detects_crashed_server_task(self, relay: Relay) -> None:
        failed_task = MagicMock(spec=asyncio.Task)
        failed_task.done.return_value = True
        failed_task.cancelled.return_value = False
        failed_task.exception.return_value = OSError("bind failed")
        relay._server_task = failed_task

        with pytest.raises(RuntimeError, match="relay server task has stopped unexpectedly"):
            await relay.run()

    async def test_run_detects_cancelled_server_task(self, relay: Relay) -> None:
        cancelled_task = MagicMock(spec=asyncio.Task)
        cancelled_task.done.return_value = True
        cancelled_task.cancelled.return_value = True
        relay._server_task = cancelled_task

        with pytest.raises(RuntimeError):
            await relay.run()

    async def test_run_stops_after_clean_server_exit(self, relay: Relay) -> None:
        finished_task = MagicMock(spec=asyncio.Task)
        finished_task.done.return_value = True
        finished_task.cancelled.return_value = False
        finished_task.exception.return_value = None
        relay._server_task = finished_task

        await relay.run()
        assert not relay.is_running

    async def test_run_ok_when_server_task_running(self, relay: Relay) -> None:
        running_task = MagicMock(spec=asyncio.Task)
        running_task.done.return_value = False
        relay._server_task = running_task

        with patch.object(relay, "inc_counter"), patch.object(relay, "set_gauge"):
            await relay.run()
        assert relay.is_running


# ============================================================================
# Context Manager
# ============================================================================


class TestRelayLifecycle:
    """__aenter__ / __aexit__."""

    async def test_enter_and_exit(self, relay: Relay, make_transport, monkeypatch) -> None:
        started = asyncio.Event()

        async def _fake_server(app) -> None:
            started.set()
            await asyncio.Event().wait()

        monkeypatch.setattr(relay, "_run_server", _fake_server)

        async with relay:
            await asyncio.wait_for(started.wait(), 1.0)
            assert relay.is_running
            connection = Connection(make_transport(), relay.hub, relay.store)
            connection.open()
            server_task = relay._server_task

        assert not relay.is_running
        assert relay._server_task is None
        assert server_task is not None and server_task.cancelled()
        assert connection.close_reason == "shutdown"
        assert len(relay.hub) == 0
