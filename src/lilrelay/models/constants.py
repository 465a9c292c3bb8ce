"""Shared constants for the models layer.

Defines enumerations and protocol limits used across multiple model
modules and by the relay service. Placing them here avoids circular
dependencies between the models and core layers.

See Also:
    [lilrelay.models.event][]: Validates kinds against
        [EVENT_KIND_MAX][lilrelay.models.constants.EVENT_KIND_MAX].
    [lilrelay.models.messages][]: Tags every wire variant with a
        [MessageType][lilrelay.models.constants.MessageType].
"""

from __future__ import annotations

from enum import StrEnum


class MessageType(StrEnum):
    """Type tags carried in position 0 of every NIP-01 wire message.

    Attributes:
        EVENT: Client publish (``["EVENT", event]``) or relay delivery
            (``["EVENT", subscription_id, event]``).
        REQ: Client subscription request.
        CLOSE: Client subscription cancellation.
        OK: Relay acknowledgment of a publish.
        EOSE: Relay end-of-stored-events marker for a subscription.
        NOTICE: Relay human-readable diagnostic.
    """

    EVENT = "EVENT"
    REQ = "REQ"
    CLOSE = "CLOSE"
    OK = "OK"
    EOSE = "EOSE"
    NOTICE = "NOTICE"


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics labels."""

    RELAY = "relay"


EVENT_KIND_MAX = 65_535

EVENT_ID_LENGTH = 64
PUBKEY_LENGTH = 64
SIGNATURE_LENGTH = 128
