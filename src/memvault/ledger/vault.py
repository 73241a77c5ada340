"""Read and write protocol over a ``VaultBackend``.

``VaultReader`` is the validation boundary: every payload a backend returns
is parsed into a ``MemoryRecord`` here, and every transport failure, timeout
or malformed payload becomes a ``ReadError``. An empty memory set is *not* an
error and reads as ``None``.

``VaultWriter`` submits single-shot appends. A returned transaction id does
not mean the record is readable yet; callers must not expect read-after-write
consistency within a turn.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable

from pydantic import ValidationError

from memvault.errors import RangeError
from memvault.errors import ReadError
from memvault.errors import WriteError
from memvault.ledger.base import VaultBackend
from memvault.ledger.keys import derive_topic_key
from memvault.ledger.schemas import MemoryRecord
from memvault.ledger.schemas import StoredMemory
from memvault.ledger.schemas import TopicMemory
from memvault.observability import track_latency

logger = logging.getLogger(__name__)


class VaultReader:
    """Queries against the ledger's latest finalized state."""

    def __init__(self, backend: VaultBackend, *, timeout_seconds: float = 15.0) -> None:
        self._backend = backend
        self._timeout_seconds = timeout_seconds

    async def _call(self, operation: str, call: Awaitable, *, index: int | None = None):
        with track_latency(f"ledger.{operation}"):
            try:
                return await asyncio.wait_for(call, self._timeout_seconds)
            except TimeoutError as exc:
                raise ReadError(
                    f"{operation} timed out after {self._timeout_seconds}s"
                ) from exc
            except IndexError as exc:
                if index is None:
                    raise ReadError(f"{operation} failed: {exc!r}") from exc
                raise
            except Exception as exc:
                raise ReadError(f"{operation} failed: {exc}") from exc

    @staticmethod
    def _parse(operation: str, raw: object) -> MemoryRecord:
        try:
            return MemoryRecord.from_raw(raw)
        except (ValidationError, ValueError, TypeError) as exc:
            raise ReadError(f"{operation} returned a malformed record: {exc}") from exc

    # -- key-level operations --

    async def get_latest(self, owner: str, topic_key: bytes) -> MemoryRecord | None:
        """Return the last-appended record, or ``None`` for an empty set."""
        raw = await self._call(
            "get_latest", self._backend.get_latest_memory(owner, topic_key)
        )
        if raw is None:
            return None
        return self._parse("get_latest", raw)

    async def get_count(self, owner: str, topic_key: bytes) -> int:
        """Return the number of records in the set."""
        raw = await self._call(
            "get_count", self._backend.get_memory_count(owner, topic_key)
        )
        try:
            count = int(raw)
        except (TypeError, ValueError) as exc:
            raise ReadError(f"get_count returned a non-integer: {raw!r}") from exc
        if count < 0:
            raise ReadError(f"get_count returned a negative count: {count}")
        return count

    async def get_at(self, owner: str, topic_key: bytes, index: int) -> MemoryRecord:
        """Return the record at *index*.

        Raises ``RangeError`` when ``index`` is negative or not below the
        current count.
        """
        count = await self.get_count(owner, topic_key)
        return await self._record_at(owner, topic_key, index, count)

    async def _record_at(
        self, owner: str, topic_key: bytes, index: int, count: int
    ) -> MemoryRecord:
        if not 0 <= index < count:
            raise RangeError(index, count)
        try:
            raw = await self._call(
                "get_at", self._backend.get_memory(owner, topic_key, index), index=index
            )
        except IndexError as exc:
            raise RangeError(index, count) from exc
        return self._parse("get_at", raw)

    # -- topic-level helpers --

    async def fetch_latest(self, owner: str, topic: str) -> TopicMemory | None:
        """``get_latest`` for a topic label."""
        record = await self.get_latest(owner, derive_topic_key(topic))
        return TopicMemory.from_record(topic, record) if record is not None else None

    async def fetch_all(self, owner: str, topic: str) -> list[TopicMemory]:
        """Every record under *topic* in write order, from a single count read."""
        key = derive_topic_key(topic)
        count = await self.get_count(owner, key)
        memories: list[TopicMemory] = []
        for index in range(count):
            record = await self._record_at(owner, key, index, count)
            memories.append(TopicMemory.from_record(topic, record))
        return memories


class VaultWriter:
    """Append-only writes attributed to the backend's writer identity."""

    def __init__(self, backend: VaultBackend, *, timeout_seconds: float = 60.0) -> None:
        self._backend = backend
        self._timeout_seconds = timeout_seconds

    @property
    def writer(self) -> str | None:
        return self._backend.writer

    async def store(self, owner: str, topic_key: bytes, content: str) -> str:
        """Append *content* under (owner, topic_key) and return the tx id.

        Failures and timeouts raise ``WriteError``; there is no retry. A
        timed-out submission may still land on the ledger later.
        """
        if not owner:
            raise ValueError("owner must be a non-empty address")
        if not content:
            raise ValueError("content must be a non-empty string")

        with track_latency("ledger.store"):
            try:
                tx_id = await asyncio.wait_for(
                    self._backend.store_memory_for(owner, topic_key, content),
                    self._timeout_seconds,
                )
            except TimeoutError as exc:
                raise WriteError(
                    f"store timed out after {self._timeout_seconds}s"
                ) from exc
            except Exception as exc:
                raise WriteError(f"store failed: {exc}") from exc

        logger.info(
            "stored memory owner=%s topic_key=0x%s writer=%s tx=%s",
            owner,
            topic_key.hex(),
            self.writer,
            tx_id,
        )
        return str(tx_id)

    async def store_topic(self, owner: str, topic: str, content: str) -> StoredMemory:
        """``store`` for a topic label, returning a receipt."""
        key = derive_topic_key(topic)
        tx_id = await self.store(owner, key, content)
        return StoredMemory(
            tx_id=tx_id,
            owner=owner,
            topic=topic,
            topic_key="0x" + key.hex(),
            writer=self.writer or "",
        )
