"""
Pytest configuration and shared fixtures for lilrelay tests.

Provides:
- nostr-sdk signing keys and a signed-event factory
- A forged-event helper (valid shape, broken signature)
- Logging configured at DEBUG
"""

import json
import logging
from collections.abc import Callable, Sequence

import pytest
from nostr_sdk import EventBuilder, Keys, Kind, Tag, Timestamp

from lilrelay.models.event import Event


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Nostr Fixtures
# ============================================================================

EventFactory = Callable[..., Event]


def sign_event(
    keys: Keys,
    *,
    kind: int = 1,
    content: str = "hello",
    tags: Sequence[Sequence[str]] = (),
    created_at: int = 1_700_000_000,
) -> Event:
    """Build, sign, and convert an event to the relay model."""
    builder = (
        EventBuilder(Kind(kind), content)
        .tags([Tag.parse(list(tag)) for tag in tags])
        .custom_created_at(Timestamp.from_secs(created_at))
    )
    signed = builder.sign_with_keys(keys)
    return Event.from_dict(json.loads(signed.as_json()))


def forge(event: Event) -> Event:
    """Return *event* with its signature replaced by a well-formed but wrong one."""
    bad_sig = ("0" if event.sig[0] != "0" else "1") + event.sig[1:]
    return Event(
        id=event.id,
        pubkey=event.pubkey,
        created_at=event.created_at,
        kind=event.kind,
        tags=event.tags,
        content=event.content,
        sig=bad_sig,
    )


@pytest.fixture(scope="session")
def keys() -> Keys:
    """Signing keys shared by a test session."""
    return Keys.generate()


@pytest.fixture(scope="session")
def other_keys() -> Keys:
    """A second author."""
    return Keys.generate()


@pytest.fixture
def make_event(keys: Keys) -> EventFactory:
    """Factory for signed events by ``keys``; pass ``keys=`` to sign as someone else."""

    def _make(**kwargs: object) -> Event:
        signer = kwargs.pop("keys", keys)
        return sign_event(signer, **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def event(make_event: EventFactory) -> Event:
    """A single signed kind-1 event."""
    return make_event(content="sample note", tags=[["t", "nostr"]])


@pytest.fixture
def forge_event() -> Callable[[Event], Event]:
    """The :func:`forge` helper, as a fixture."""
    return forge
