"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by ``__post_init__`` and
``from_dict`` methods in sibling model modules to enforce runtime type
constraints on attacker-controlled wire data.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


_HEX_DIGITS = frozenset("0123456789abcdef")


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_int(value: Any, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    validate_int(value, name)
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_hex(value: Any, length: int, name: str) -> None:
    """Raise if *value* is not a lowercase hex string of exactly *length* chars."""
    validate_instance(value, str, name)
    if len(value) != length:
        raise ValueError(f"{name} must be {length} hex characters, got {len(value)}")
    if not set(value) <= _HEX_DIGITS:
        raise ValueError(f"{name} must be lowercase hex")


def validate_str_list(value: Any, name: str) -> None:
    """Raise ``TypeError`` if *value* is not a list of strings."""
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"{name} must contain only strings, got {type(item).__name__}")


def validate_int_list(value: Any, name: str) -> None:
    """Raise ``TypeError`` if *value* is not a list of ints (``bool`` excluded)."""
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    for item in value:
        validate_int(item, name)


def validate_mapping(value: Any, name: str) -> None:
    """Raise ``TypeError`` if *value* is not a ``Mapping``."""
    if not isinstance(value, Mapping):
        raise TypeError(f"{name} must be an object, got {type(value).__name__}")


def require_keys(data: Mapping[str, Any], keys: tuple[str, ...]) -> None:
    """Raise ``ValueError`` naming the first of *keys* missing from *data*."""
    for key in keys:
        if key not in data:
            raise ValueError(f"missing field: {key}")
