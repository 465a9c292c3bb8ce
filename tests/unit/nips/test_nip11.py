"""Unit tests for nips.nip11 module."""

import pytest
from nostr_sdk import Keys
from pydantic import ValidationError

from lilrelay.nips.nip11 import RelayInformation, RelayLimitation


class TestRelayLimitation:
    """RelayLimitation defaults."""

    def test_defaults(self) -> None:
        limitation = RelayLimitation()
        assert limitation.max_subscriptions is None
        assert limitation.min_pow_difficulty == 0
        assert limitation.auth_required is False

    def test_strict_ints(self) -> None:
        with pytest.raises(ValidationError):
            RelayLimitation(max_filters="100")


class TestRelayInformation:
    """RelayInformation document."""

    def test_to_dict_drops_none(self) -> None:
        doc = RelayInformation(name="lilrelay", supported_nips=[1, 11]).to_dict()
        assert doc["name"] == "lilrelay"
        assert doc["supported_nips"] == [1, 11]
        assert "pubkey" not in doc
        assert "max_limit" not in doc["limitation"]
        assert doc["limitation"]["payment_required"] is False

    def test_pubkey_hex_kept(self, keys: Keys) -> None:
        hex_key = keys.public_key().to_hex()
        assert RelayInformation(pubkey=hex_key).pubkey == hex_key

    def test_pubkey_npub_normalized(self, keys: Keys) -> None:
        npub = keys.public_key().to_bech32()
        assert RelayInformation(pubkey=npub).pubkey == keys.public_key().to_hex()

    def test_empty_pubkey_is_none(self) -> None:
        assert RelayInformation(pubkey="").pubkey is None

    def test_invalid_pubkey(self) -> None:
        with pytest.raises(ValidationError, match="invalid operator pubkey"):
            RelayInformation(pubkey="not-a-key")

    def test_frozen(self) -> None:
        info = RelayInformation(name="a")
        with pytest.raises(ValidationError):
            info.name = "b"
