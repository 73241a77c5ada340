"""Engine domain — model adapters, decision, replies and the agent loops."""

from memvault.engine.decision import Decision
from memvault.engine.decision import MemoryDecisionEngine
from memvault.engine.decision import parse_decision
from memvault.engine.llm_adapters import AnthropicMessagesAdapter
from memvault.engine.llm_adapters import build_llm_adapter
from memvault.engine.llm_adapters import LLMAdapter
from memvault.engine.llm_adapters import LLMError
from memvault.engine.llm_adapters import NoopLLMAdapter
from memvault.engine.llm_adapters import OpenAICompatibleLLMAdapter
from memvault.engine.orchestrator import ConversationOrchestrator
from memvault.engine.orchestrator import ReadOnlyConversation
from memvault.engine.orchestrator import TurnPhase
from memvault.engine.orchestrator import TurnResult
from memvault.engine.reply import ReplyGenerator
from memvault.engine.results import collect_memories
from memvault.engine.results import TopicResult
from memvault.engine.scanner import MultiTopicScanner

__all__ = [
    "AnthropicMessagesAdapter",
    "ConversationOrchestrator",
    "Decision",
    "LLMAdapter",
    "LLMError",
    "MemoryDecisionEngine",
    "MultiTopicScanner",
    "NoopLLMAdapter",
    "OpenAICompatibleLLMAdapter",
    "ReadOnlyConversation",
    "ReplyGenerator",
    "TopicResult",
    "TurnPhase",
    "TurnResult",
    "build_llm_adapter",
    "collect_memories",
    "parse_decision",
]
