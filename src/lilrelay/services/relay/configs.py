"""Relay service configuration models.

See Also:
    [Relay][lilrelay.services.relay.service.Relay]: The service class that
        consumes these configurations.
    [BaseServiceConfig][lilrelay.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``,
        and ``metrics`` fields.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from lilrelay.core.base_service import BaseServiceConfig
from lilrelay.nips.nip11 import RelayInformation, RelayLimitation


class LimitsConfig(BaseModel):
    """Per-connection request limits, enforced and advertised via NIP-11.

    Attributes:
        max_message_length: Largest accepted client frame, in UTF-8 bytes.
        max_subscriptions: Live subscriptions per connection.
        max_filters: Filters per ``REQ``.
        max_limit: Ceiling applied to each filter's ``limit``.
        max_subid_length: Longest subscription id.
        max_event_tags: Most tags a published event may carry.
        max_content_length: Longest ``content`` of a published event.
    """

    max_message_length: int = Field(default=16384, ge=1)
    max_subscriptions: int = Field(default=20, ge=1)
    max_filters: int = Field(default=100, ge=1)
    max_limit: int = Field(default=5000, ge=1)
    max_subid_length: int = Field(default=100, ge=1)
    max_event_tags: int = Field(default=100, ge=0)
    max_content_length: int = Field(default=8196, ge=0)


class RelayInfoConfig(BaseModel):
    """Static fields of the NIP-11 relay information document."""

    name: str = "Nostr Sample Relay"
    description: str = "A sample Nostr relay implementation in Go"
    pubkey: str | None = None
    contact: str = "admin@example.com"
    supported_nips: list[int] = Field(default_factory=lambda: [1, 2, 9, 11, 12, 15, 16, 20, 22])
    software: str = "nostr-sample"
    version: str = "1.0.0"


class RelayConfig(BaseServiceConfig):
    """Configuration for the relay service.

    Attributes:
        host: Bind address for the HTTP/WebSocket server.
        port: Listening port.
        queue_size: Capacity of each connection's outbound queue. A full
            queue on broadcast disconnects the connection.
        write_timeout: Seconds allowed for one frame to be written to a
            peer, and for the connection's own replies to find queue room.
        ping_interval: Seconds between WebSocket pings.
        ping_timeout: Seconds to wait for a pong before dropping the peer.
        idle_timeout: Close a connection that sends nothing for this many
            seconds. ``None`` disables the check.
        read_limit: Largest WebSocket frame accepted by the server, in bytes.
        limits: Protocol-level request limits.
        info: NIP-11 document fields.
    """

    host: str = Field(default="0.0.0.0", min_length=1, description="Bind address")  # noqa: S104
    port: int = Field(default=8080, ge=1, le=65535, description="Listening port")
    queue_size: int = Field(default=256, ge=1)
    write_timeout: float = Field(default=10.0, gt=0)
    ping_interval: float = Field(default=54.0, gt=0)
    ping_timeout: float = Field(default=60.0, gt=0)
    idle_timeout: float | None = Field(default=None, gt=0)
    read_limit: int = Field(default=524288, ge=1024)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    info: RelayInfoConfig = Field(default_factory=RelayInfoConfig)

    @model_validator(mode="after")
    def _validate_message_length(self) -> RelayConfig:
        if self.limits.max_message_length > self.read_limit:
            msg = (
                f"limits.max_message_length ({self.limits.max_message_length}) "
                f"must not exceed read_limit ({self.read_limit})"
            )
            raise ValueError(msg)
        return self

    def relay_information(self) -> RelayInformation:
        """Build the NIP-11 document advertised by this configuration."""
        limits = self.limits
        return RelayInformation(
            name=self.info.name,
            description=self.info.description,
            pubkey=self.info.pubkey,
            contact=self.info.contact,
            supported_nips=self.info.supported_nips,
            software=self.info.software,
            version=self.info.version,
            limitation=RelayLimitation(
                max_message_length=limits.max_message_length,
                max_subscriptions=limits.max_subscriptions,
                max_filters=limits.max_filters,
                max_limit=limits.max_limit,
                max_subid_length=limits.max_subid_length,
                max_event_tags=limits.max_event_tags,
                max_content_length=limits.max_content_length,
            ),
        )
