"""
NIP-11 relay information document.

Typed Pydantic models for the JSON document a relay returns on a plain HTTP
``GET`` carrying ``Accept: application/nostr+json``. The relay builds the
document once at startup from its configuration; the advertised
[RelayLimitation][lilrelay.nips.nip11.RelayLimitation] values are the same
ones [Connection][lilrelay.services.relay.connection.Connection] enforces.

Examples:
    ```python
    info = RelayInformation(name="lilrelay", supported_nips=[1, 11])
    info.to_dict()
    # {'name': 'lilrelay', 'supported_nips': [1, 11], 'limitation': {...}}
    ```
"""

from __future__ import annotations

from typing import Any

from nostr_sdk import NostrSdkError, PublicKey
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, field_validator


NIP11_CONTENT_TYPE = "application/nostr+json"


class RelayLimitation(BaseModel):
    """Server-imposed limitations advertised in the NIP-11 document."""

    model_config = ConfigDict(frozen=True)

    max_message_length: StrictInt | None = None
    max_subscriptions: StrictInt | None = None
    max_filters: StrictInt | None = None
    max_limit: StrictInt | None = None
    max_subid_length: StrictInt | None = None
    max_event_tags: StrictInt | None = None
    max_content_length: StrictInt | None = None
    min_pow_difficulty: StrictInt = 0
    auth_required: StrictBool = False
    payment_required: StrictBool = False
    restricted_writes: StrictBool = False


class RelayInformation(BaseModel):
    """Complete NIP-11 relay information document.

    ``pubkey`` accepts either hex or ``npub`` form and is stored as
    lowercase hex, the form NIP-11 clients expect.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str | None = None
    description: str | None = None
    pubkey: str | None = None
    contact: str | None = None
    supported_nips: list[StrictInt] | None = None
    software: str | None = None
    version: str | None = None
    limitation: RelayLimitation = Field(default_factory=RelayLimitation)

    @field_validator("pubkey")
    @classmethod
    def _normalize_pubkey(cls, v: str | None) -> str | None:
        if not v:
            return None
        try:
            return PublicKey.parse(v).to_hex()
        except NostrSdkError as e:
            raise ValueError(f"invalid operator pubkey: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire document, omitting unset fields."""
        return self.model_dump(exclude_none=True, mode="json")
