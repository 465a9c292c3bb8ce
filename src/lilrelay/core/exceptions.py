"""lilrelay exception hierarchy.

Provides typed exceptions for every error category a relay connection can
hit, so handlers catch exactly what they can recover from and let
``CancelledError`` propagate untouched.

Exception hierarchy:

```text
LilRelayError (base -- never raised directly)
├── ConfigurationError       -- config validation, missing keys, bad YAML
├── ProtocolError            -- malformed client input, answered with NOTICE
│   └── InvalidEventError    -- publish rejected, answered with OK false
└── TransportClosedError     -- the peer's channel is gone
```

None of these is fatal to the process: the
[Hub][lilrelay.services.relay.hub.Hub] and
[EventStore][lilrelay.core.store.EventStore] stay usable after any single
connection fails.

See Also:
    [decode_client_message()][lilrelay.core.codec.decode_client_message]:
        Raises [ProtocolError][lilrelay.core.exceptions.ProtocolError] and
        [InvalidEventError][lilrelay.core.exceptions.InvalidEventError].
    [Connection][lilrelay.services.relay.connection.Connection]: Maps each
        category to its wire response or to teardown.
"""

from __future__ import annotations


class LilRelayError(Exception):
    """Base exception for all lilrelay errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(LilRelayError):
    """Invalid or missing configuration (YAML, CLI flags).

    See Also:
        [load_yaml()][lilrelay.core.yaml.load_yaml]: YAML loading function
            that raises this for non-mapping documents.
    """


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProtocolError(LilRelayError):
    """Malformed client message: unparseable, missing fields, wrong types.

    Recovered locally. The offending connection receives a ``NOTICE``
    carrying ``str(error)`` and stays open.
    """


class InvalidEventError(ProtocolError):
    """A published event was rejected.

    Unlike a plain [ProtocolError][lilrelay.core.exceptions.ProtocolError],
    the event id is known, so the rejection is reported as
    ``["OK", event_id, false, reason]`` rather than a generic notice.

    Attributes:
        event_id: Id of the rejected event, as sent by the client.
        reason: Human-readable rejection reason.
    """

    def __init__(self, event_id: str, reason: str) -> None:
        super().__init__(reason)
        self.event_id = event_id
        self.reason = reason


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportClosedError(LilRelayError):
    """The underlying channel can no longer send or close cleanly.

    Logged and never retried; the owning connection is torn down.
    """
