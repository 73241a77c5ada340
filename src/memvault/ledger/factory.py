"""Backend factory."""

from __future__ import annotations

from memvault.config import LedgerConfig
from memvault.ledger.base import InMemoryVaultBackend
from memvault.ledger.base import VaultBackend
from memvault.ledger.evm_backend import EvmVaultBackend
from memvault.ledger.redis_backend import RedisVaultBackend


def build_vault_backend(config: LedgerConfig) -> VaultBackend:
    """Create a concrete backend from ``LedgerConfig``."""

    backend = config.backend.strip().lower()
    if backend == "evm":
        return EvmVaultBackend.from_config(config)
    if backend == "redis":
        return RedisVaultBackend.from_url(config.redis_url, writer=config.writer_address)
    if backend == "memory":
        return InMemoryVaultBackend(writer=config.writer_address or "memvault-local")
    raise ValueError(
        f"Unsupported ledger backend '{config.backend}'. "
        "Supported backends: evm, redis, memory."
    )
