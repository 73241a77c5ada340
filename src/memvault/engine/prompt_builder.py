"""Prompt construction for the reply and memory-decision steps.

Kept separate from the engines so wording can change without touching the
control flow around it.
"""

from __future__ import annotations

from collections.abc import Sequence

from memvault.ledger.schemas import TopicMemory

DECISION_SYSTEM_PROMPT = """\
Decide whether the user's latest message contains durable, long-term
information about the user (identity, preferences, goals, risk appetite)
that is not already captured by the known memories.

Return ONLY a single JSON object, with no prose and no code fences:
{
  "should_store": boolean,
  "topic": string | null,
  "summary": string | null
}

"topic" is a short snake_case label such as "identity_profile",
"preferences" or "risk_profile". "summary" is one self-contained sentence
in the third person, e.g. "User's name is Alex".
"""

ASSISTANT_SYSTEM_PROMPT = """\
You are a memory-aware assistant.
Use the user's long-term memories to give helpful, personal responses.
"""

READ_ONLY_SYSTEM_PROMPT = """\
You are a read-only memory agent.
You analyze the user's stored long-term memories and answer questions based
on them. NEVER invent new memories. Only use what is stored.
"""


def format_memories(
    memories: Sequence[TopicMemory],
    *,
    empty: str = "No existing memories.",
) -> str:
    """Render memories as ``- [topic] content`` lines."""
    if not memories:
        return empty
    return "\n".join(f"- [{m.topic}] {m.content}" for m in memories)


def build_decision_prompt(user_message: str, memories: Sequence[TopicMemory]) -> str:
    """User-side prompt for the memory decision."""
    return f'Memories:\n{format_memories(memories)}\n\nUser: "{user_message}"\n'


def build_reply_prompt(
    user_message: str,
    memories: Sequence[TopicMemory],
    *,
    heading: str = "Memories",
    empty: str = "No memories stored.",
) -> str:
    """User-side prompt for a grounded reply."""
    return (
        f"{heading}:\n{format_memories(memories, empty=empty)}\n\n"
        f'User: "{user_message}"\n'
    )
