"""Tagged variants for NIP-01 client and relay messages.

Inbound messages are decoded once at the boundary by
[decode_client_message()][lilrelay.core.codec.decode_client_message] into
one of three client variants. Outbound messages are built as one of four
relay variants and serialized with ``to_json()`` right before they enter a
connection's outbound queue.

```text
ClientMessage = EventMessage | ReqMessage | CloseMessage
RelayMessage  = EventDelivery | OkMessage | EoseMessage | NoticeMessage
```
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .constants import MessageType
from .event import Event  # noqa: TC001
from .filter import Filter  # noqa: TC001


def _dumps(payload: list[Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Client -> relay
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EventMessage:
    """``["EVENT", <event>]``: publish a structurally valid event."""

    event: Event


@dataclass(frozen=True, slots=True)
class ReqMessage:
    """``["REQ", <subscription_id>, <filter>, ...]``: open or replace a subscription."""

    subscription_id: str
    filters: tuple[Filter, ...]


@dataclass(frozen=True, slots=True)
class CloseMessage:
    """``["CLOSE", <subscription_id>]``: cancel a subscription."""

    subscription_id: str


ClientMessage = EventMessage | ReqMessage | CloseMessage


# ---------------------------------------------------------------------------
# Relay -> client
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EventDelivery:
    """``["EVENT", <subscription_id>, <event>]``."""

    subscription_id: str
    event: Event

    def to_wire(self) -> list[Any]:
        return [MessageType.EVENT.value, self.subscription_id, self.event.to_dict()]

    def to_json(self) -> str:
        return _dumps(self.to_wire())


@dataclass(frozen=True, slots=True)
class OkMessage:
    """``["OK", <event_id>, <accepted>, <message>]``.

    ``message`` is empty on acceptance and a human-readable reason on
    rejection, so the publisher can correlate the outcome to the event id.
    """

    event_id: str
    accepted: bool
    message: str = ""

    def to_wire(self) -> list[Any]:
        return [MessageType.OK.value, self.event_id, self.accepted, self.message]

    def to_json(self) -> str:
        return _dumps(self.to_wire())


@dataclass(frozen=True, slots=True)
class EoseMessage:
    """``["EOSE", <subscription_id>]``: historical replay finished."""

    subscription_id: str

    def to_wire(self) -> list[Any]:
        return [MessageType.EOSE.value, self.subscription_id]

    def to_json(self) -> str:
        return _dumps(self.to_wire())


@dataclass(frozen=True, slots=True)
class NoticeMessage:
    """``["NOTICE", <message>]``: diagnostic for malformed input."""

    message: str

    def to_wire(self) -> list[Any]:
        return [MessageType.NOTICE.value, self.message]

    def to_json(self) -> str:
        return _dumps(self.to_wire())


RelayMessage = EventDelivery | OkMessage | EoseMessage | NoticeMessage
