"""Application configuration dataclasses.

Frozen dataclasses with defaults for each subsystem. ``load_settings`` is the
single place that reads the process environment; components only ever receive
the resulting immutable values.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field

from memvault.errors import ConfigurationError

DEFAULT_CANDIDATE_TOPICS: tuple[str, ...] = (
    "identity_profile",
    "preferences",
    "risk_profile",
)

DEFAULT_CATALOG: tuple[str, ...] = (
    "identity_profile",
    "preferences",
    "risk_profile",
    "user_identity",
    "personal_identity",
    "wallet_profile",
    "goals",
)

_DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o-mini",
    "noop": "noop",
}

_SUPPORTED_BACKENDS = ("evm", "redis", "memory")


@dataclass(frozen=True)
class LLMConfig:
    """LLM provider settings shared by the reply and decision steps."""

    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    api_key: str | None = None
    base_url: str | None = None
    decision_temperature: float = 0.2
    reply_temperature: float = 0.5
    read_only_temperature: float = 0.4
    max_tokens: int = 1024
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class LedgerConfig:
    """Where memories live and who signs appends."""

    backend: str = "evm"
    rpc_url: str | None = None
    contract_address: str | None = None
    private_key: str | None = None
    redis_url: str = "redis://localhost:6379"
    writer_address: str | None = None
    read_timeout_seconds: float = 15.0
    write_timeout_seconds: float = 60.0
    confirm_writes: bool = False


@dataclass(frozen=True)
class AgentConfig:
    """Identity and topic lists used by the conversational agents."""

    owner_address: str | None = None
    candidate_topics: tuple[str, ...] = DEFAULT_CANDIDATE_TOPICS
    catalog: tuple[str, ...] = DEFAULT_CATALOG


@dataclass(frozen=True)
class VaultSettings:
    """Everything a process needs, resolved once at startup."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)


# ---------------------------------------------------------------------------
# Environment loading
# ---------------------------------------------------------------------------


def _get(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _topics(raw: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    # Topic labels are hashed byte-for-byte, so only empty items are dropped.
    if raw is None:
        return default
    parsed = tuple(item for item in raw.split(",") if item)
    return parsed if parsed else default


def _flag(raw: str | None) -> bool:
    return raw is not None and raw.lower() in {"1", "true", "yes", "on"}


def load_settings(
    environ: Mapping[str, str] | None = None,
    *,
    require_llm: bool = True,
    require_signer: bool = True,
    require_owner: bool = True,
) -> VaultSettings:
    """Build ``VaultSettings`` from environment variables.

    Raises ``ConfigurationError`` listing every missing variable at once so
    a misconfigured process fails on its first start, not one variable at a
    time.
    """
    env = os.environ if environ is None else environ
    missing: list[str] = []

    provider = (_get(env, "AI_PROVIDER") or "anthropic").lower()
    if provider not in _DEFAULT_MODELS:
        raise ConfigurationError(
            f"Unsupported AI_PROVIDER '{provider}'. "
            "Supported providers: anthropic, openai, noop."
        )
    api_key_var = {"anthropic": "ANTHROPIC_API_KEY", "openai": "OPENAI_API_KEY"}.get(
        provider
    )
    api_key = _get(env, api_key_var) if api_key_var else None
    if require_llm and api_key_var and api_key is None:
        missing.append(api_key_var)

    llm = LLMConfig(
        provider=provider,
        model=_get(env, "MODEL_ID") or _DEFAULT_MODELS[provider],
        api_key=api_key,
        base_url=_get(env, "LLM_BASE_URL"),
    )

    backend = (_get(env, "MEMVAULT_BACKEND") or "evm").lower()
    if backend not in _SUPPORTED_BACKENDS:
        raise ConfigurationError(
            f"Unsupported MEMVAULT_BACKEND '{backend}'. "
            f"Supported backends: {', '.join(_SUPPORTED_BACKENDS)}."
        )

    rpc_url = _get(env, "RPC_URL")
    contract_address = _get(env, "MEMORY_VAULT_ADDRESS")
    private_key = _get(env, "AGENT_PRIVATE_KEY")
    writer_address = _get(env, "WRITER_ADDRESS")
    if backend == "evm":
        if rpc_url is None:
            missing.append("RPC_URL")
        if contract_address is None:
            missing.append("MEMORY_VAULT_ADDRESS")
        if require_signer and private_key is None:
            missing.append("AGENT_PRIVATE_KEY")
    elif backend == "redis" and require_signer and writer_address is None:
        missing.append("WRITER_ADDRESS")

    ledger = LedgerConfig(
        backend=backend,
        rpc_url=rpc_url,
        contract_address=contract_address,
        private_key=private_key,
        redis_url=_get(env, "REDIS_URL") or LedgerConfig.redis_url,
        writer_address=writer_address,
        confirm_writes=_flag(_get(env, "MEMVAULT_CONFIRM_WRITES")),
    )

    owner = _get(env, "USER_ADDRESS")
    if require_owner and owner is None:
        missing.append("USER_ADDRESS")

    agent = AgentConfig(
        owner_address=owner,
        candidate_topics=_topics(env.get("MEMVAULT_TOPICS"), DEFAULT_CANDIDATE_TOPICS),
        catalog=_topics(env.get("MEMVAULT_CATALOG"), DEFAULT_CATALOG),
    )

    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing,
        )
    return VaultSettings(llm=llm, ledger=ledger, agent=agent)
