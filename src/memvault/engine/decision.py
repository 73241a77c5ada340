"""Memory-worthiness decision for a single user utterance.

The model is asked for one JSON object. Anything other than a valid
``Decision`` (transport failure, timeout, prose, malformed JSON, wrong field
types) degrades to ``Decision.skip()``: a bad answer must neither break the
conversation loop nor put malformed content on the ledger.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Sequence

from pydantic import BaseModel
from pydantic import StrictBool
from pydantic import ValidationError

from memvault.config import LLMConfig
from memvault.engine.llm_adapters import LLMAdapter
from memvault.engine.llm_adapters import LLMError
from memvault.engine.prompt_builder import build_decision_prompt
from memvault.engine.prompt_builder import DECISION_SYSTEM_PROMPT
from memvault.errors import DecisionParseError
from memvault.ledger.schemas import TopicMemory
from memvault.observability import track_latency

logger = logging.getLogger(__name__)

# Regex to strip Markdown code fences wrapping JSON output
_CODE_FENCE_RE = re.compile(
    r"^\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*$",
    re.DOTALL,
)


class Decision(BaseModel):
    """Outcome of one classification step."""

    model_config = {"frozen": True, "extra": "ignore"}

    should_store: StrictBool
    topic: str | None = None
    summary: str | None = None

    @property
    def actionable(self) -> bool:
        """True only when storing was requested with a usable topic and summary."""
        return bool(
            self.should_store
            and self.topic
            and self.topic.strip()
            and self.summary
            and self.summary.strip()
        )

    @classmethod
    def skip(cls) -> Decision:
        return cls(should_store=False)


def parse_decision(raw: str) -> Decision:
    """Parse raw model text into a ``Decision``.

    Raises ``DecisionParseError`` for anything that is not a JSON object
    matching the schema.
    """
    if not isinstance(raw, str):
        raise DecisionParseError(f"expected text, got {type(raw).__name__}")
    text = raw.strip()

    match = _CODE_FENCE_RE.match(text)
    if match:
        text = match.group(1).strip()

    try:
        data = json.loads(text)
    except ValueError as exc:
        raise DecisionParseError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DecisionParseError("decision must be a JSON object")

    try:
        return Decision.model_validate(data)
    except ValidationError as exc:
        raise DecisionParseError(f"schema validation failed: {exc}") from exc


class MemoryDecisionEngine:
    """Asks the model whether a message warrants a new stored fact."""

    def __init__(self, llm: LLMAdapter, llm_config: LLMConfig | None = None) -> None:
        self._llm = llm
        self._llm_config = llm_config or LLMConfig()

    async def decide(
        self,
        user_message: str,
        known_memories: Sequence[TopicMemory],
    ) -> Decision:
        """Classify *user_message*; never raises."""
        cfg = self._llm_config
        prompt = build_decision_prompt(user_message, known_memories)
        try:
            with track_latency("llm.decide"):
                raw = await asyncio.wait_for(
                    self._llm.complete(
                        prompt,
                        system=DECISION_SYSTEM_PROMPT,
                        temperature=cfg.decision_temperature,
                        max_tokens=cfg.max_tokens,
                        timeout_seconds=cfg.timeout_seconds,
                    ),
                    cfg.timeout_seconds,
                )
        except (LLMError, TimeoutError) as exc:
            logger.warning(
                "memory decision call failed: %s", str(exc) or type(exc).__name__
            )
            return Decision.skip()
        except Exception:
            logger.exception("memory decision call raised unexpectedly")
            return Decision.skip()

        try:
            return parse_decision(raw)
        except DecisionParseError as exc:
            logger.warning("discarding memory decision: %s", exc)
            return Decision.skip()
