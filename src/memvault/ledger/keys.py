"""Topic label to ledger key derivation.

Keys are keccak-256 digests of the label's exact UTF-8 bytes, matching the
``keccak256(bytes(topic))`` slots used by the MemoryVault contract. Labels are
never trimmed or case-folded: ``"Goals"``, ``"goals"`` and ``"goals "`` map to
three different memory sets. Any normalization would move existing topics to
new slots and has to ship as a deliberate, versioned change.
"""

from __future__ import annotations

from web3 import Web3

TOPIC_KEY_SIZE = 32


def derive_topic_key(topic: str) -> bytes:
    """Return the 32-byte ledger key for *topic*."""
    if not isinstance(topic, str):
        raise TypeError(f"topic must be str, not {type(topic).__name__}")
    return bytes(Web3.keccak(primitive=topic.encode("utf-8")))


def topic_key_hex(topic: str) -> str:
    """Return the ``0x``-prefixed hex form of ``derive_topic_key(topic)``."""
    return "0x" + derive_topic_key(topic).hex()
