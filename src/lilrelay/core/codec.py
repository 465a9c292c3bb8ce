"""Decoding of raw client frames into typed messages.

Every inbound frame passes through
[decode_client_message()][lilrelay.core.codec.decode_client_message]
exactly once. Downstream code works with the closed set of
[ClientMessage][lilrelay.models.messages.ClientMessage] variants and never
inspects raw JSON arrays.

Errors split along what the client can correlate:

* [ProtocolError][lilrelay.core.exceptions.ProtocolError] for anything
  without a usable event id (answered with ``NOTICE``).
* [InvalidEventError][lilrelay.core.exceptions.InvalidEventError] once an
  ``EVENT`` payload carries a string ``id`` (answered with ``OK false``).
"""

from __future__ import annotations

import json
from typing import Any

from lilrelay.models.constants import MessageType
from lilrelay.models.event import Event
from lilrelay.models.filter import Filter
from lilrelay.models.messages import ClientMessage, CloseMessage, EventMessage, ReqMessage

from .exceptions import InvalidEventError, ProtocolError


def decode_client_message(raw: str | bytes) -> ClientMessage:
    """Decode one client frame.

    Args:
        raw: Text (or UTF-8 bytes) of a single WebSocket message.

    Returns:
        The decoded [EventMessage][lilrelay.models.messages.EventMessage],
        [ReqMessage][lilrelay.models.messages.ReqMessage], or
        [CloseMessage][lilrelay.models.messages.CloseMessage].

    Raises:
        InvalidEventError: ``EVENT`` payload with an id but a bad shape.
        ProtocolError: Any other malformed input.
    """
    try:
        msg = json.loads(raw)
        # \u escapes can decode to lone surrogates, which have no UTF-8 form
        json.dumps(msg, ensure_ascii=False).encode()
    except (json.JSONDecodeError, UnicodeError) as e:
        raise ProtocolError("invalid message format") from e

    if not isinstance(msg, list):
        raise ProtocolError("invalid message format")
    if not msg:
        raise ProtocolError("empty message")
    msg_type = msg[0]
    if not isinstance(msg_type, str):
        raise ProtocolError("invalid message type")

    if msg_type == MessageType.EVENT:
        return _decode_event(msg)
    if msg_type == MessageType.REQ:
        return _decode_req(msg)
    if msg_type == MessageType.CLOSE:
        return CloseMessage(subscription_id=_subscription_id(msg, MessageType.CLOSE))
    raise ProtocolError(f"unknown message type: {msg_type}")


def _decode_event(msg: list[Any]) -> EventMessage:
    if len(msg) < 2:  # noqa: PLR2004
        raise ProtocolError("invalid EVENT message")
    payload = msg[1]
    if not isinstance(payload, dict):
        raise ProtocolError("invalid EVENT message")
    event_id = payload.get("id")
    if not isinstance(event_id, str):
        raise ProtocolError("invalid event format")
    try:
        event = Event.from_dict(payload)
    except (TypeError, ValueError) as e:
        raise InvalidEventError(event_id, f"invalid: {e}") from e
    return EventMessage(event=event)


def _decode_req(msg: list[Any]) -> ReqMessage:
    subscription_id = _subscription_id(msg, MessageType.REQ)
    filters = []
    for raw_filter in msg[2:]:
        try:
            filters.append(Filter.from_dict(raw_filter))
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"invalid filter: {e}") from e
    return ReqMessage(subscription_id=subscription_id, filters=tuple(filters))


def _subscription_id(msg: list[Any], msg_type: MessageType) -> str:
    if len(msg) < 2:  # noqa: PLR2004
        raise ProtocolError(f"invalid {msg_type} message")
    subscription_id = msg[1]
    if not isinstance(subscription_id, str) or not subscription_id:
        raise ProtocolError("invalid subscription id")
    return subscription_id
