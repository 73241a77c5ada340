"""Per-turn conversation state machine.

One turn runs ``idle -> reading -> replying -> deciding -> (writing |
skipping) -> idle``. Each step degrades on its own: an unreadable topic is
left out, a failed reply is reported as missing, an unusable decision means
"do not store", and a failed write is recorded on the turn result. None of
them aborts the turn or the loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from enum import Enum

from memvault.config import DEFAULT_CANDIDATE_TOPICS
from memvault.config import DEFAULT_CATALOG
from memvault.engine.decision import Decision
from memvault.engine.decision import MemoryDecisionEngine
from memvault.engine.llm_adapters import LLMError
from memvault.engine.reply import ReplyGenerator
from memvault.engine.results import capture
from memvault.engine.results import collect_memories
from memvault.engine.results import failed_topics
from memvault.engine.results import TopicResult
from memvault.engine.scanner import MultiTopicScanner
from memvault.errors import WriteError
from memvault.ledger.schemas import StoredMemory
from memvault.ledger.schemas import TopicMemory
from memvault.ledger.vault import VaultReader
from memvault.ledger.vault import VaultWriter
from memvault.observability import track_latency

logger = logging.getLogger(__name__)


class TurnPhase(str, Enum):
    """States of one conversational turn."""

    idle = "idle"
    reading = "reading"
    replying = "replying"
    deciding = "deciding"
    writing = "writing"
    skipping = "skipping"


@dataclass
class TurnResult:
    """Everything one turn produced."""

    message: str
    memories: list[TopicMemory] = field(default_factory=list)
    failed_topics: list[str] = field(default_factory=list)
    reply: str | None = None
    reply_error: str | None = None
    decision: Decision | None = None
    stored: StoredMemory | None = None
    write_error: str | None = None

    @property
    def attempted_store(self) -> bool:
        return self.decision is not None and self.decision.actionable


TurnCallback = Callable[[TurnResult], Awaitable[None] | None]


class _TurnLoop:
    """Message-receive loop shared by the agent variants."""

    _responder: ReplyGenerator

    async def handle_turn(self, message: str) -> TurnResult:
        raise NotImplementedError

    async def _reply(self, turn: TurnResult) -> None:
        try:
            turn.reply = await self._responder.reply(turn.message, turn.memories)
        except LLMError as exc:
            logger.warning("reply generation failed: %s", exc)
            turn.reply_error = str(exc)
        except Exception as exc:
            logger.exception("reply generation raised unexpectedly")
            turn.reply_error = str(exc) or type(exc).__name__

    async def run(
        self,
        messages: AsyncIterator[str],
        on_turn: TurnCallback | None = None,
    ) -> int:
        """Handle one utterance per item until *messages* is exhausted.

        Blank utterances are ignored. Returns the number of turns handled.
        """
        turns = 0
        async for message in messages:
            if not message.strip():
                continue
            result = await self.handle_turn(message)
            turns += 1
            if on_turn is not None:
                outcome = on_turn(result)
                if inspect.isawaitable(outcome):
                    await outcome
        return turns


class ConversationOrchestrator(_TurnLoop):
    """Read known memories, reply, decide, and conditionally write."""

    def __init__(
        self,
        reader: VaultReader,
        writer: VaultWriter,
        decider: MemoryDecisionEngine,
        responder: ReplyGenerator,
        *,
        owner: str,
        topics: Sequence[str] = DEFAULT_CANDIDATE_TOPICS,
    ) -> None:
        if not owner:
            raise ValueError("owner must be a non-empty address")
        self._reader = reader
        self._writer = writer
        self._decider = decider
        self._responder = responder
        self._owner = owner
        self._topics = tuple(topics)
        self.phase = TurnPhase.idle

    async def _read_topic(self, topic: str) -> list[TopicMemory]:
        memory = await self._reader.fetch_latest(self._owner, topic)
        return [memory] if memory is not None else []

    async def read_memories(self) -> list[TopicResult]:
        """Latest memory of every candidate topic, read concurrently."""
        return list(
            await asyncio.gather(
                *(capture(t, self._read_topic(t)) for t in self._topics)
            )
        )

    async def handle_turn(self, message: str) -> TurnResult:
        with track_latency("agent.turn"):
            try:
                return await self._turn(message)
            finally:
                self.phase = TurnPhase.idle

    async def _turn(self, message: str) -> TurnResult:
        self.phase = TurnPhase.reading
        results = await self.read_memories()
        turn = TurnResult(
            message=message,
            memories=collect_memories(results),
            failed_topics=failed_topics(results),
        )

        self.phase = TurnPhase.replying
        await self._reply(turn)

        self.phase = TurnPhase.deciding
        turn.decision = await self._decider.decide(message, turn.memories)

        if not turn.decision.actionable:
            self.phase = TurnPhase.skipping
            return turn

        self.phase = TurnPhase.writing
        try:
            turn.stored = await self._writer.store_topic(
                self._owner, turn.decision.topic, turn.decision.summary
            )
        except WriteError as exc:
            logger.warning(
                "failed to store memory topic=%r: %s", turn.decision.topic, exc
            )
            turn.write_error = str(exc)
        return turn


class ReadOnlyConversation(_TurnLoop):
    """Read-only agent: scan the whole catalog and reply; never writes."""

    def __init__(
        self,
        scanner: MultiTopicScanner,
        responder: ReplyGenerator,
        *,
        owner: str,
        catalog: Sequence[str] = DEFAULT_CATALOG,
    ) -> None:
        if not owner:
            raise ValueError("owner must be a non-empty address")
        self._scanner = scanner
        self._responder = responder
        self._owner = owner
        self._catalog = tuple(catalog)
        self.phase = TurnPhase.idle

    async def handle_turn(self, message: str) -> TurnResult:
        with track_latency("agent.turn"):
            try:
                self.phase = TurnPhase.reading
                results = await self._scanner.scan_results(self._owner, self._catalog)
                turn = TurnResult(
                    message=message,
                    memories=collect_memories(results),
                    failed_topics=failed_topics(results),
                )
                self.phase = TurnPhase.replying
                await self._reply(turn)
                return turn
            finally:
                self.phase = TurnPhase.idle
