"""Ledger backend protocol and the process-local backend.

A backend exposes the four MemoryVault contract operations and returns raw
payloads; validation into ``MemoryRecord`` happens in ``VaultReader``.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from typing import Protocol
from typing import runtime_checkable

from memvault.ledger.schemas import MemoryRecord


@runtime_checkable
class VaultBackend(Protocol):
    """Append-only, multi-writer memory ledger keyed by (owner, topic key)."""

    @property
    def writer(self) -> str:
        """Identity attributed to appends made through this backend."""
        ...

    async def store_memory_for(self, owner: str, topic_key: bytes, content: str) -> str: ...

    async def get_latest_memory(self, owner: str, topic_key: bytes) -> object | None: ...

    async def get_memory(self, owner: str, topic_key: bytes, index: int) -> object: ...

    async def get_memory_count(self, owner: str, topic_key: bytes) -> int: ...

    async def aclose(self) -> None: ...


class InMemoryVaultBackend:
    """Process-local ledger; appends are visible immediately.

    Owners are compared case-insensitively, like addresses on chain. Every
    append records a ``MemoryStored`` event in ``events``.
    """

    def __init__(
        self,
        writer: str = "memvault-local",
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._writer = writer
        self._clock = clock
        self._sets: dict[tuple[str, bytes], list[MemoryRecord]] = {}
        self.events: list[dict] = []

    @property
    def writer(self) -> str:
        return self._writer

    async def store_memory_for(self, owner: str, topic_key: bytes, content: str) -> str:
        records = self._sets.setdefault((owner.lower(), topic_key), [])
        record = MemoryRecord(
            timestamp=int(self._clock()),
            writer=self._writer,
            content=content,
        )
        records.append(record)
        tx_id = f"tx_{uuid.uuid4().hex}"
        self.events.append(
            {
                "event": "MemoryStored",
                "owner": owner,
                "topic_key": "0x" + topic_key.hex(),
                "index": len(records) - 1,
                "writer": self._writer,
                "timestamp": record.timestamp,
                "tx_id": tx_id,
            }
        )
        return tx_id

    async def get_latest_memory(self, owner: str, topic_key: bytes) -> MemoryRecord | None:
        records = self._sets.get((owner.lower(), topic_key))
        return records[-1] if records else None

    async def get_memory(self, owner: str, topic_key: bytes, index: int) -> MemoryRecord:
        records = self._sets.get((owner.lower(), topic_key), [])
        if not 0 <= index < len(records):
            raise IndexError(index)
        return records[index]

    async def get_memory_count(self, owner: str, topic_key: bytes) -> int:
        return len(self._sets.get((owner.lower(), topic_key), []))

    async def aclose(self) -> None:
        return None
