"""In-memory Nostr relay service.

See Also:
    [Relay][lilrelay.services.relay.service.Relay]: The service class.
    [RelayConfig][lilrelay.services.relay.configs.RelayConfig]: Service configuration.
    [Connection][lilrelay.services.relay.connection.Connection]: Per-client
        protocol state machine.
    [Hub][lilrelay.services.relay.hub.Hub]: Broadcast registry.
"""

from .configs import LimitsConfig, RelayConfig, RelayInfoConfig
from .connection import Connection, ConnectionState, Subscription
from .hub import Hub, RelayStats
from .service import Relay
from .transport import Transport, WebSocketTransport


__all__ = [
    "Connection",
    "ConnectionState",
    "Hub",
    "LimitsConfig",
    "Relay",
    "RelayConfig",
    "RelayInfoConfig",
    "RelayStats",
    "Subscription",
    "Transport",
    "WebSocketTransport",
]
