"""Ledger domain — topic keys, record schemas, backends and the vault protocol."""

from memvault.ledger.base import InMemoryVaultBackend
from memvault.ledger.base import VaultBackend
from memvault.ledger.evm_backend import EvmVaultBackend
from memvault.ledger.factory import build_vault_backend
from memvault.ledger.keys import derive_topic_key
from memvault.ledger.keys import topic_key_hex
from memvault.ledger.redis_backend import RedisVaultBackend
from memvault.ledger.schemas import MemoryRecord
from memvault.ledger.schemas import StoredMemory
from memvault.ledger.schemas import TopicMemory
from memvault.ledger.vault import VaultReader
from memvault.ledger.vault import VaultWriter

__all__ = [
    "EvmVaultBackend",
    "InMemoryVaultBackend",
    "MemoryRecord",
    "RedisVaultBackend",
    "StoredMemory",
    "TopicMemory",
    "VaultBackend",
    "VaultReader",
    "VaultWriter",
    "build_vault_backend",
    "derive_topic_key",
    "topic_key_hex",
]
