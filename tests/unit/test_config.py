"""Unit tests for configuration dataclasses and environment loading."""

from dataclasses import FrozenInstanceError

import pytest

from memvault.config import AgentConfig
from memvault.config import DEFAULT_CANDIDATE_TOPICS
from memvault.config import DEFAULT_CATALOG
from memvault.config import LedgerConfig
from memvault.config import LLMConfig
from memvault.config import load_settings
from memvault.config import VaultSettings
from memvault.errors import ConfigurationError

FULL_ENV = {
    "ANTHROPIC_API_KEY": "sk-ant-test",
    "RPC_URL": "https://sepolia.example/rpc",
    "MEMORY_VAULT_ADDRESS": "0x5555555555555555555555555555555555555555",
    "AGENT_PRIVATE_KEY": "0x" + "4c" * 32,
    "USER_ADDRESS": "0x1111111111111111111111111111111111111111",
}


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


class TestLLMConfig:
    def test_defaults(self):
        cfg = LLMConfig()
        assert cfg.provider == "anthropic"
        assert cfg.model == "claude-sonnet-4-20250514"
        assert cfg.api_key is None
        assert cfg.decision_temperature == 0.2
        assert cfg.reply_temperature == 0.5
        assert cfg.read_only_temperature == 0.4
        assert cfg.max_tokens == 1024
        assert cfg.timeout_seconds == 30.0


class TestLedgerConfig:
    def test_defaults(self):
        cfg = LedgerConfig()
        assert cfg.backend == "evm"
        assert cfg.redis_url == "redis://localhost:6379"
        assert cfg.read_timeout_seconds == 15.0
        assert cfg.write_timeout_seconds == 60.0
        assert cfg.confirm_writes is False


class TestAgentConfig:
    def test_defaults(self):
        cfg = AgentConfig()
        assert cfg.candidate_topics == ("identity_profile", "preferences", "risk_profile")
        assert set(DEFAULT_CANDIDATE_TOPICS) <= set(cfg.catalog)
        assert cfg.catalog == DEFAULT_CATALOG


class TestFrozen:
    def test_settings_are_immutable(self):
        settings = VaultSettings()
        with pytest.raises(FrozenInstanceError):
            settings.llm = LLMConfig()  # type: ignore[misc]
        with pytest.raises(FrozenInstanceError):
            settings.ledger.backend = "memory"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# load_settings
# ---------------------------------------------------------------------------


class TestLoadSettings:
    def test_full_evm_environment(self):
        settings = load_settings(FULL_ENV)

        assert settings.llm.provider == "anthropic"
        assert settings.llm.api_key == "sk-ant-test"
        assert settings.ledger.backend == "evm"
        assert settings.ledger.rpc_url == "https://sepolia.example/rpc"
        assert settings.ledger.private_key == "0x" + "4c" * 32
        assert settings.agent.owner_address == FULL_ENV["USER_ADDRESS"]
        assert settings.agent.candidate_topics == DEFAULT_CANDIDATE_TOPICS

    def test_reports_every_missing_variable(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings({})

        assert exc_info.value.missing == [
            "ANTHROPIC_API_KEY",
            "RPC_URL",
            "MEMORY_VAULT_ADDRESS",
            "AGENT_PRIVATE_KEY",
            "USER_ADDRESS",
        ]
        assert "USER_ADDRESS" in str(exc_info.value)

    def test_blank_values_count_as_missing(self):
        env = {**FULL_ENV, "RPC_URL": "   "}
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(env)
        assert exc_info.value.missing == ["RPC_URL"]

    def test_read_only_agent_needs_no_signer(self):
        env = {k: v for k, v in FULL_ENV.items() if k != "AGENT_PRIVATE_KEY"}
        settings = load_settings(env, require_signer=False)
        assert settings.ledger.private_key is None

    def test_service_needs_no_llm_or_owner(self):
        env = {
            k: v
            for k, v in FULL_ENV.items()
            if k not in {"ANTHROPIC_API_KEY", "USER_ADDRESS"}
        }
        settings = load_settings(env, require_llm=False, require_owner=False)
        assert settings.agent.owner_address is None

    def test_openai_provider_uses_its_key_and_default_model(self):
        env = {
            k: v for k, v in FULL_ENV.items() if k != "ANTHROPIC_API_KEY"
        } | {"AI_PROVIDER": "OpenAI", "OPENAI_API_KEY": "sk-test"}
        settings = load_settings(env)
        assert settings.llm.provider == "openai"
        assert settings.llm.api_key == "sk-test"
        assert settings.llm.model == "gpt-4o-mini"

    def test_model_override(self):
        settings = load_settings({**FULL_ENV, "MODEL_ID": "claude-haiku"})
        assert settings.llm.model == "claude-haiku"

    def test_redis_backend_requires_writer_address(self):
        env = {"AI_PROVIDER": "noop", "MEMVAULT_BACKEND": "redis", "USER_ADDRESS": "0xabc"}
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(env)
        assert exc_info.value.missing == ["WRITER_ADDRESS"]

        settings = load_settings(env | {"WRITER_ADDRESS": "0xdef", "REDIS_URL": "redis://r:6380/1"})
        assert settings.ledger.writer_address == "0xdef"
        assert settings.ledger.redis_url == "redis://r:6380/1"

    def test_memory_backend_with_noop_model(self):
        settings = load_settings(
            {"AI_PROVIDER": "noop", "MEMVAULT_BACKEND": "memory", "USER_ADDRESS": "0xabc"}
        )
        assert settings.llm.provider == "noop"
        assert settings.ledger.backend == "memory"

    @pytest.mark.parametrize(
        ("name", "value"),
        [("AI_PROVIDER", "bedrock"), ("MEMVAULT_BACKEND", "postgres")],
    )
    def test_unsupported_choices_rejected(self, name, value):
        with pytest.raises(ConfigurationError, match="Unsupported"):
            load_settings({**FULL_ENV, name: value})

    def test_topic_lists_keep_labels_verbatim(self):
        settings = load_settings(
            {**FULL_ENV, "MEMVAULT_TOPICS": "goals,,Risk Profile", "MEMVAULT_CATALOG": ","}
        )
        assert settings.agent.candidate_topics == ("goals", "Risk Profile")
        assert settings.agent.catalog == DEFAULT_CATALOG

    @pytest.mark.parametrize(("raw", "expected"), [("true", True), ("1", True), ("no", False)])
    def test_confirm_writes_flag(self, raw, expected):
        settings = load_settings({**FULL_ENV, "MEMVAULT_CONFIRM_WRITES": raw})
        assert settings.ledger.confirm_writes is expected
