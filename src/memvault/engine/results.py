"""Per-topic read outcomes and the rule that aggregates them.

A failed topic is a value, not control flow: readers wrap every topic in a
``TopicResult`` and ``collect_memories`` decides what reaches the reply and
decision steps.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field

from memvault.errors import VaultError
from memvault.ledger.schemas import TopicMemory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopicResult:
    """Memories read for one topic, or the reason reading it failed."""

    topic: str
    memories: list[TopicMemory] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, topic: str, exc: BaseException) -> TopicResult:
        return cls(topic=topic, error=str(exc) or type(exc).__name__)


async def capture(topic: str, read: Awaitable[list[TopicMemory]]) -> TopicResult:
    """Await *read* and wrap its outcome; ledger errors become failures."""
    try:
        memories = await read
    except VaultError as exc:
        return TopicResult.failure(topic, exc)
    return TopicResult(topic=topic, memories=list(memories))


def collect_memories(results: Iterable[TopicResult]) -> list[TopicMemory]:
    """Flatten successful results in order; failed and empty topics are dropped."""
    memories: list[TopicMemory] = []
    for result in results:
        if not result.ok:
            logger.warning("skipping topic %r: %s", result.topic, result.error)
            continue
        memories.extend(result.memories)
    return memories


def failed_topics(results: Iterable[TopicResult]) -> list[str]:
    return [r.topic for r in results if not r.ok]
