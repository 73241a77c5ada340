"""Read-only enumeration of every record under a fixed topic catalog."""

from __future__ import annotations

from collections.abc import Sequence

from memvault.engine.results import capture
from memvault.engine.results import collect_memories
from memvault.engine.results import TopicResult
from memvault.ledger.schemas import TopicMemory
from memvault.ledger.vault import VaultReader


class MultiTopicScanner:
    """Flattens all records of a catalog into one topic-then-index sequence."""

    def __init__(self, reader: VaultReader) -> None:
        self._reader = reader

    async def scan_topic(self, owner: str, topic: str) -> TopicResult:
        """Read every record of *topic* (count-bounded); never raises for ledger errors."""
        return await capture(topic, self._reader.fetch_all(owner, topic))

    async def scan_results(self, owner: str, catalog: Sequence[str]) -> list[TopicResult]:
        results: list[TopicResult] = []
        for topic in catalog:
            results.append(await self.scan_topic(owner, topic))
        return results

    async def scan(self, owner: str, catalog: Sequence[str]) -> list[TopicMemory]:
        """Return every readable record, topic by topic, each in write order.

        Topics that fail to read or hold no records contribute nothing.
        """
        return collect_memories(await self.scan_results(owner, catalog))
