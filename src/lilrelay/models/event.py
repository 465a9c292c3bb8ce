"""
Immutable Nostr event with wire (de)serialization and signature checks.

An [Event][lilrelay.models.event.Event] holds the seven NIP-01 fields as
plain Python values so the matcher can read them without touching the SDK.
Cryptographic verification is delegated to ``nostr_sdk.Event``, which
recomputes the id from the canonical serialization and checks the Schnorr
signature against ``pubkey``.

See Also:
    [lilrelay.models.filter][]: Pure predicates evaluated against these
        fields.
    [lilrelay.core.store.EventStore][]: In-memory owner of every accepted
        event.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from nostr_sdk import Event as NostrEvent
from nostr_sdk import NostrSdkError

from ._validation import (
    require_keys,
    validate_hex,
    validate_instance,
    validate_int,
    validate_mapping,
    validate_str_list,
    validate_timestamp,
)
from .constants import EVENT_ID_LENGTH, EVENT_KIND_MAX, PUBKEY_LENGTH, SIGNATURE_LENGTH


_FIELDS: tuple[str, ...] = ("id", "pubkey", "created_at", "kind", "tags", "content", "sig")


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable NIP-01 event.

    Validation is performed eagerly at construction time, so an instance
    is always structurally sound. Whether it is *authentic* is a separate
    question answered by [verify()][lilrelay.models.event.Event.verify].

    Attributes:
        id: 64-char lowercase hex SHA-256 of the canonical serialization.
        pubkey: 64-char lowercase hex x-only public key of the author.
        created_at: Author-supplied Unix timestamp in seconds.
        kind: Integer category in ``0..65535``.
        tags: Tuple of tags; each tag is a non-empty tuple of strings whose
            first element is the tag name.
        content: Arbitrary string payload.
        sig: 128-char lowercase hex Schnorr signature.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a field has the right type but an invalid value.

    Examples:
        ```python
        event = Event.from_dict(json.loads(raw))
        event.verify()       # True for an untampered signed event
        event.to_dict()      # Wire shape, tags as lists
        ```
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...]
    content: str
    sig: str

    def __post_init__(self) -> None:
        validate_hex(self.id, EVENT_ID_LENGTH, "id")
        validate_hex(self.pubkey, PUBKEY_LENGTH, "pubkey")
        validate_timestamp(self.created_at, "created_at")
        validate_int(self.kind, "kind")
        if not 0 <= self.kind <= EVENT_KIND_MAX:
            raise ValueError(f"kind must be between 0 and {EVENT_KIND_MAX}")
        validate_instance(self.tags, tuple, "tags")
        for tag in self.tags:
            validate_instance(tag, tuple, "tag")
            if not tag:
                raise ValueError("tag must not be empty")
            for value in tag:
                validate_instance(value, str, "tag value")
        validate_instance(self.content, str, "content")
        validate_hex(self.sig, SIGNATURE_LENGTH, "sig")

    @classmethod
    def from_dict(cls, data: Any) -> Event:
        """Build an [Event][lilrelay.models.event.Event] from a decoded JSON object.

        Args:
            data: The event object as produced by ``json.loads``.

        Returns:
            A structurally valid (not yet verified) event.

        Raises:
            TypeError: If *data* is not an object or a field has the wrong type.
            ValueError: If a required field is missing or invalid.
        """
        validate_mapping(data, "event")
        require_keys(data, _FIELDS)
        raw_tags = data["tags"]
        if not isinstance(raw_tags, list):
            raise TypeError(f"tags must be a list, got {type(raw_tags).__name__}")
        tags = []
        for raw_tag in raw_tags:
            validate_str_list(raw_tag, "tag")
            tags.append(tuple(raw_tag))
        return cls(
            id=data["id"],
            pubkey=data["pubkey"],
            created_at=data["created_at"],
            kind=data["kind"],
            tags=tuple(tags),
            content=data["content"],
            sig=data["sig"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation (tags as lists)."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def to_json(self) -> str:
        """Serialize to compact JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    def verify(self) -> bool:
        """Check that ``id`` matches the content and ``sig`` is valid for ``pubkey``.

        Returns:
            ``True`` if both the id and the signature verify. ``False``
            otherwise, including when the SDK refuses to parse a field
            (e.g. a pubkey that is not a valid curve point, or text with
            no UTF-8 form).
        """
        try:
            inner = NostrEvent.from_json(self.to_json())
        except (NostrSdkError, UnicodeEncodeError):
            return False
        return bool(inner.verify())

    @property
    def size(self) -> int:
        """Length of the content payload in characters."""
        return len(self.content)
