"""Redis-backed memory ledger.

Each (owner, topic key) memory set is a Redis list keyed by
``memvault:memories:{owner}:{topic_hex}`` holding JSON records. ``RPUSH`` is
atomic, so concurrent writers from several processes get a single total
order per set and the list index is the record index. Every append also adds
a ``MemoryStored`` entry to the ``memvault:events`` stream for external
indexers.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import Callable

from redis.asyncio import Redis  # type: ignore[import-untyped]

from memvault.ledger.schemas import MemoryRecord

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key prefixes
# ---------------------------------------------------------------------------

_PREFIX = "memvault"
_MEMORIES_KEY = f"{_PREFIX}:memories"
EVENTS_KEY = f"{_PREFIX}:events"

_EVENTS_MAXLEN = 10_000


def _decode(raw: bytes | str) -> str:
    return raw.decode("utf-8") if isinstance(raw, bytes) else raw


class RedisVaultBackend:
    """Append-only memory ledger on Redis lists."""

    def __init__(
        self,
        redis: Redis,
        *,
        writer: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self._writer = writer
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, *, writer: str | None = None) -> RedisVaultBackend:
        return cls(Redis.from_url(url), writer=writer)

    @property
    def writer(self) -> str | None:
        return self._writer

    @staticmethod
    def _key(owner: str, topic_key: bytes) -> str:
        return f"{_MEMORIES_KEY}:{owner.lower()}:{topic_key.hex()}"

    # -- write --

    async def store_memory_for(self, owner: str, topic_key: bytes, content: str) -> str:
        """Append *content* and publish a ``MemoryStored`` event."""
        if not self._writer:
            raise RuntimeError("no writer identity configured for this backend")

        record = MemoryRecord(
            timestamp=int(self._clock()),
            writer=self._writer,
            content=content,
        )
        length = await self._redis.rpush(
            self._key(owner, topic_key), record.model_dump_json()
        )
        tx_id = f"tx_{uuid.uuid4().hex}"

        # The record is already durable; a lost event only affects indexers.
        try:
            await self._redis.xadd(
                EVENTS_KEY,
                {
                    "owner": owner,
                    "topic_key": "0x" + topic_key.hex(),
                    "index": length - 1,
                    "writer": self._writer,
                    "timestamp": record.timestamp,
                    "tx_id": tx_id,
                },
                maxlen=_EVENTS_MAXLEN,
                approximate=True,
            )
        except Exception:
            logger.exception("failed to publish MemoryStored event tx=%s", tx_id)
        return tx_id

    # -- read --

    async def get_latest_memory(self, owner: str, topic_key: bytes) -> dict | None:
        raw = await self._redis.lindex(self._key(owner, topic_key), -1)
        if raw is None:
            return None
        return json.loads(_decode(raw))

    async def get_memory(self, owner: str, topic_key: bytes, index: int) -> dict:
        if index < 0:
            raise IndexError(index)
        raw = await self._redis.lindex(self._key(owner, topic_key), index)
        if raw is None:
            raise IndexError(index)
        return json.loads(_decode(raw))

    async def get_memory_count(self, owner: str, topic_key: bytes) -> int:
        return int(await self._redis.llen(self._key(owner, topic_key)))

    async def aclose(self) -> None:
        await self._redis.aclose()
