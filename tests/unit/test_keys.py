"""Unit tests for topic key derivation."""

from __future__ import annotations

import pytest
from web3 import Web3

from memvault.ledger.keys import derive_topic_key
from memvault.ledger.keys import TOPIC_KEY_SIZE
from memvault.ledger.keys import topic_key_hex


class TestDeriveTopicKey:
    def test_known_keccak_vectors(self):
        assert derive_topic_key("").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )
        assert derive_topic_key("hello").hex() == (
            "1c8aff950685c2ed4bc3174f3472287b56d9517b9c948127319a09a7a36deac8"
        )

    def test_is_deterministic_and_fixed_size(self):
        first = derive_topic_key("identity_profile")
        second = derive_topic_key("identity_profile")
        assert first == second
        assert isinstance(first, bytes)
        assert len(first) == TOPIC_KEY_SIZE

    @pytest.mark.parametrize(
        "variant",
        ["Goals", "goals ", " goals", "GOALS", "goals\n"],
    )
    def test_labels_are_not_normalized(self, variant):
        assert derive_topic_key(variant) != derive_topic_key("goals")

    def test_distinct_topics_get_distinct_keys(self):
        topics = ["identity_profile", "preferences", "risk_profile", "goals"]
        assert len({derive_topic_key(t) for t in topics}) == len(topics)

    def test_hashes_utf8_bytes(self):
        label = "préférences"
        assert derive_topic_key(label) == bytes(Web3.keccak(text=label))
        assert derive_topic_key(label) != derive_topic_key("preferences")

    def test_rejects_non_string(self):
        with pytest.raises(TypeError, match="topic must be str"):
            derive_topic_key(b"goals")  # type: ignore[arg-type]


class TestTopicKeyHex:
    def test_prefixed_hex_of_key(self):
        hex_key = topic_key_hex("preferences")
        assert hex_key.startswith("0x")
        assert len(hex_key) == 2 + 2 * TOPIC_KEY_SIZE
        assert bytes.fromhex(hex_key[2:]) == derive_topic_key("preferences")
