"""Grounded natural-language replies."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from memvault.config import LLMConfig
from memvault.engine.llm_adapters import LLMAdapter
from memvault.engine.llm_adapters import LLMError
from memvault.engine.prompt_builder import ASSISTANT_SYSTEM_PROMPT
from memvault.engine.prompt_builder import build_reply_prompt
from memvault.engine.prompt_builder import READ_ONLY_SYSTEM_PROMPT
from memvault.ledger.schemas import TopicMemory
from memvault.observability import track_latency


class ReplyGenerator:
    """One completion per turn, grounded in the supplied memories.

    Has no ledger side effects. Failures and timeouts raise ``LLMError``.
    """

    def __init__(
        self,
        llm: LLMAdapter,
        llm_config: LLMConfig | None = None,
        *,
        system_prompt: str = ASSISTANT_SYSTEM_PROMPT,
        temperature: float | None = None,
        heading: str = "Memories",
        empty: str = "No memories stored.",
    ) -> None:
        self._llm = llm
        self._llm_config = llm_config or LLMConfig()
        self._system_prompt = system_prompt
        self._temperature = (
            self._llm_config.reply_temperature if temperature is None else temperature
        )
        self._heading = heading
        self._empty = empty

    @classmethod
    def assistant(cls, llm: LLMAdapter, llm_config: LLMConfig | None = None) -> ReplyGenerator:
        """Memory-aware assistant used by the write-capable agent."""
        return cls(llm, llm_config)

    @classmethod
    def read_only(cls, llm: LLMAdapter, llm_config: LLMConfig | None = None) -> ReplyGenerator:
        """Agent that answers strictly from stored memories."""
        cfg = llm_config or LLMConfig()
        return cls(
            llm,
            cfg,
            system_prompt=READ_ONLY_SYSTEM_PROMPT,
            temperature=cfg.read_only_temperature,
            heading="Retrieved memories",
            empty="No memories found.",
        )

    async def reply(self, user_message: str, memories: Sequence[TopicMemory]) -> str:
        prompt = build_reply_prompt(
            user_message, memories, heading=self._heading, empty=self._empty
        )
        cfg = self._llm_config
        with track_latency("llm.reply"):
            try:
                return await asyncio.wait_for(
                    self._llm.complete(
                        prompt,
                        system=self._system_prompt,
                        temperature=self._temperature,
                        max_tokens=cfg.max_tokens,
                        timeout_seconds=cfg.timeout_seconds,
                    ),
                    cfg.timeout_seconds,
                )
            except TimeoutError as exc:
                raise LLMError(f"reply timed out after {cfg.timeout_seconds}s") from exc
