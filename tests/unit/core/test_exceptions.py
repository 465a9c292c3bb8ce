"""Unit tests for core.exceptions module."""

import pytest

from lilrelay.core.exceptions import (
    ConfigurationError,
    InvalidEventError,
    LilRelayError,
    ProtocolError,
    TransportClosedError,
)


class TestHierarchy:
    """Exception class relationships."""

    @pytest.mark.parametrize(
        "cls",
        [ConfigurationError, ProtocolError, InvalidEventError, TransportClosedError],
    )
    def test_all_derive_from_base(self, cls: type[Exception]) -> None:
        assert issubclass(cls, LilRelayError)

    def test_invalid_event_is_protocol_error(self) -> None:
        assert issubclass(InvalidEventError, ProtocolError)

    def test_transport_is_not_protocol_error(self) -> None:
        assert not issubclass(TransportClosedError, ProtocolError)


class TestInvalidEventError:
    """InvalidEventError attributes."""

    def test_attributes(self) -> None:
        err = InvalidEventError("a" * 64, "invalid: kind must be an int")
        assert err.event_id == "a" * 64
        assert err.reason == "invalid: kind must be an int"
        assert str(err) == "invalid: kind must be an int"

    def test_catchable_as_protocol_error(self) -> None:
        with pytest.raises(ProtocolError):
            raise InvalidEventError("x", "invalid: bad")
