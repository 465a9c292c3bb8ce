"""
NIP-01 subscription filters and the pure event matcher.

A [Filter][lilrelay.models.filter.Filter] is a conjunction of optional
constraints; a list of filters is their disjunction. Matching is pure and
total: it never raises and never touches I/O, so it can run inside the
broadcast loop for every live subscription.

Note:
    ``ids`` and ``authors`` are matched by **prefix**, not equality. This is
    the protocol's short-id convention and is intentional.

    Tag constraints only inspect positions 0 (name) and 1 (first value) of
    each event tag; later positions are ignored.

See Also:
    [lilrelay.models.event.Event][]: The record being matched.
    [lilrelay.services.relay.connection.Subscription][]: Owns a tuple of
        filters per subscription id.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ._validation import validate_int, validate_int_list, validate_mapping, validate_str_list


if TYPE_CHECKING:
    from .event import Event


_TAG_PREFIX = "#"
_MIN_TAG_LENGTH = 2


@dataclass(frozen=True, slots=True)
class Filter:
    """Declarative predicate over event attributes.

    All populated fields are ANDed; an empty or absent field imposes no
    constraint, so ``Filter()`` matches every event.

    Attributes:
        ids: Event id prefixes.
        authors: Author pubkey prefixes.
        kinds: Accepted kinds.
        since: Inclusive lower bound on ``created_at``.
        until: Inclusive upper bound on ``created_at``.
        tags: Tag name to accepted first values (from ``#<name>`` keys).
        limit: Maximum number of stored events to replay for this filter.
            Has no effect on live matching.
    """

    ids: frozenset[str] = frozenset()
    authors: frozenset[str] = frozenset()
    kinds: frozenset[int] = frozenset()
    since: int | None = None
    until: int | None = None
    tags: Mapping[str, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))
    limit: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Filter:
        """Parse a REQ filter object.

        Unknown keys are ignored, as NIP-01 relays do.

        Raises:
            TypeError: If a known key carries the wrong type.
            ValueError: If ``limit`` is negative.
        """
        validate_mapping(data, "filter")
        kwargs: dict[str, Any] = {}

        for key in ("ids", "authors"):
            if key in data:
                validate_str_list(data[key], key)
                kwargs[key] = frozenset(data[key])

        if "kinds" in data:
            validate_int_list(data["kinds"], "kinds")
            kwargs["kinds"] = frozenset(data["kinds"])

        for key in ("since", "until", "limit"):
            value = data.get(key)
            if value is not None:
                validate_int(value, key)
                kwargs[key] = value
        if kwargs.get("limit", 0) < 0:
            raise ValueError("limit must be non-negative")

        tags: dict[str, frozenset[str]] = {}
        for key, values in data.items():
            if isinstance(key, str) and key.startswith(_TAG_PREFIX) and len(key) > 1:
                validate_str_list(values, key)
                tags[key[1:]] = frozenset(values)
        kwargs["tags"] = MappingProxyType(tags)

        return cls(**kwargs)

    def with_limit_cap(self, max_limit: int) -> Filter:
        """Return a copy whose ``limit`` does not exceed *max_limit*."""
        if self.limit is None or self.limit <= max_limit:
            return self
        return replace(self, limit=max_limit)

    def matches(self, event: Event) -> bool:
        """Return ``True`` if *event* satisfies every populated field."""
        if self.ids and not _has_prefix(event.id, self.ids):
            return False
        if self.authors and not _has_prefix(event.pubkey, self.authors):
            return False
        if self.kinds and event.kind not in self.kinds:
            return False
        if self.since is not None and event.created_at < self.since:
            return False
        if self.until is not None and event.created_at > self.until:
            return False
        for name, values in self.tags.items():
            if values and not _has_tag(event, name, values):
                return False
        return True


def _has_prefix(value: str, prefixes: Iterable[str]) -> bool:
    # Empty prefixes never match
    return any(prefix and value.startswith(prefix) for prefix in prefixes)


def _has_tag(event: Event, name: str, values: frozenset[str]) -> bool:
    return any(
        len(tag) >= _MIN_TAG_LENGTH and tag[0] == name and tag[1] in values for tag in event.tags
    )


def matches(event: Event, filters: Sequence[Filter]) -> bool:
    """Return ``True`` if *event* matches at least one of *filters*.

    An empty sequence matches nothing.
    """
    return any(f.matches(event) for f in filters)


def select_stored(events: Iterable[Event], filters: Sequence[Filter]) -> list[Event]:
    """Pick the stored events to replay for a new subscription.

    Without any ``limit`` this is every event matching *filters*, in the
    order given. A filter with a ``limit`` contributes only its newest
    ``limit`` matches (by ``created_at``, ties broken by id); contributions
    are merged without duplicates.

    Args:
        events: Snapshot of the store.
        filters: The subscription's filters.

    Returns:
        Events to deliver before the end-of-stored-events marker.
    """
    if all(f.limit is None for f in filters):
        return [event for event in events if matches(event, filters)]

    snapshot = list(events)
    selected: dict[str, Event] = {}
    for f in filters:
        hits = [event for event in snapshot if f.matches(event)]
        if f.limit is not None:
            hits.sort(key=lambda e: (e.created_at, e.id), reverse=True)
            hits = hits[: f.limit]
        for event in hits:
            selected.setdefault(event.id, event)
    return list(selected.values())
