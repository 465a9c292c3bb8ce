"""Pure frozen dataclasses for Nostr events, filters, and wire messages.

The models layer is the foundation of the layering. It has **no
dependencies** on any other lilrelay package. Every model uses
``@dataclass(frozen=True, slots=True)`` and validates in ``__post_init__``
or ``from_dict`` so invalid instances never escape construction.

Attributes:
    Event: Immutable NIP-01 event with signature verification delegated to
        ``nostr_sdk``.
    Filter: Declarative predicate over event attributes.
    matches: Pure matcher, ``(event, filters) -> bool``.
    select_stored: Replay selection honoring per-filter ``limit``.
    ClientMessage: ``EventMessage | ReqMessage | CloseMessage``.
    RelayMessage: ``EventDelivery | OkMessage | EoseMessage | NoticeMessage``.
    MessageType: Wire type tags.

See Also:
    [lilrelay.core.codec][]: Decodes raw frames into client variants.
    [lilrelay.core.store][]: In-memory event store.
"""

from .constants import EVENT_KIND_MAX, MessageType, ServiceName
from .event import Event
from .filter import Filter, matches, select_stored
from .messages import (
    ClientMessage,
    CloseMessage,
    EoseMessage,
    EventDelivery,
    EventMessage,
    NoticeMessage,
    OkMessage,
    RelayMessage,
    ReqMessage,
)


__all__ = [
    "EVENT_KIND_MAX",
    "ClientMessage",
    "CloseMessage",
    "EoseMessage",
    "Event",
    "EventDelivery",
    "EventMessage",
    "Filter",
    "MessageType",
    "NoticeMessage",
    "OkMessage",
    "RelayMessage",
    "ReqMessage",
    "ServiceName",
    "matches",
    "select_stored",
]
