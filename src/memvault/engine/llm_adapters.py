"""LLM adapter protocol, concrete adapters and factory helpers."""

from __future__ import annotations

import asyncio
import json
from http.client import HTTPException
from typing import Protocol
from typing import runtime_checkable
from urllib.error import HTTPError
from urllib.error import URLError
from urllib.request import Request
from urllib.request import urlopen

from memvault.config import LLMConfig

# ---------------------------------------------------------------------------
# LLM abstraction
# ---------------------------------------------------------------------------


@runtime_checkable
class LLMAdapter(Protocol):
    """One text completion: system instruction + prompt in, free text out."""

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        timeout_seconds: float = 30.0,
    ) -> str: ...


class LLMError(Exception):
    """Raised by LLM adapters when a call fails."""


def _post_json(url: str, payload: dict, headers: dict[str, str], timeout: float) -> dict:
    request = Request(
        url=url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json", **headers},
        method="POST",
    )
    try:
        with urlopen(request, timeout=timeout) as response:
            raw = response.read().decode("utf-8")
    except HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise LLMError(f"provider HTTP {exc.code}: {detail[:200]}") from exc
    except URLError as exc:
        raise LLMError(f"provider network error: {exc.reason}") from exc
    except HTTPException as exc:
        raise LLMError(f"provider connection error: {exc!r}") from exc
    except OSError as exc:
        raise LLMError(f"provider IO error: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise LLMError("provider returned a non-UTF-8 body") from exc

    try:
        return json.loads(raw)
    except ValueError as exc:
        raise LLMError("provider returned a non-JSON body") from exc


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


class NoopLLMAdapter(LLMAdapter):
    """Deterministic adapter that never asks to store anything."""

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        timeout_seconds: float = 30.0,
    ) -> str:
        del prompt, system, temperature, max_tokens, timeout_seconds
        return '{"should_store": false}'


class AnthropicMessagesAdapter(LLMAdapter):
    """Anthropic Messages API adapter."""

    API_VERSION = "2023-06-01"

    def __init__(
        self,
        *,
        model: str,
        api_key: str,
        base_url: str = "https://api.anthropic.com/v1",
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        timeout_seconds: float = 30.0,
    ) -> str:
        return await asyncio.to_thread(
            self._complete_sync,
            prompt,
            system=system,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout_seconds=timeout_seconds,
        )

    def _complete_sync(
        self,
        prompt: str,
        *,
        system: str | None,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float,
    ) -> str:
        payload: dict = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system
        data = _post_json(
            f"{self._base_url}/messages",
            payload,
            {"x-api-key": self._api_key, "anthropic-version": self.API_VERSION},
            timeout_seconds,
        )
        return self._extract_text(data)

    @staticmethod
    def _extract_text(data: dict) -> str:
        try:
            blocks = data["content"]
            texts = [b["text"] for b in blocks if b.get("type") == "text"]
        except (KeyError, TypeError, AttributeError) as exc:
            raise LLMError("provider response missing content blocks") from exc
        if not texts:
            raise LLMError("provider response contained no text blocks")
        return "".join(texts)


class OpenAICompatibleLLMAdapter(LLMAdapter):
    """OpenAI-compatible chat-completions adapter."""

    def __init__(
        self,
        *,
        model: str,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 1024,
        timeout_seconds: float = 30.0,
    ) -> str:
        return await asyncio.to_thread(
            self._complete_sync,
            prompt,
            system=system,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout_seconds=timeout_seconds,
        )

    def _complete_sync(
        self,
        prompt: str,
        *,
        system: str | None,
        temperature: float,
        max_tokens: int,
        timeout_seconds: float,
    ) -> str:
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        data = _post_json(
            f"{self._base_url}/chat/completions",
            {
                "model": self._model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            {"Authorization": f"Bearer {self._api_key}"},
            timeout_seconds,
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(
                "provider response missing choices[0].message.content"
            ) from exc

        if isinstance(content, str):
            return content
        raise LLMError("provider response content must be a string")


def build_llm_adapter(config: LLMConfig) -> LLMAdapter:
    """Create a concrete adapter from ``LLMConfig``."""

    provider = config.provider.strip().lower()
    if provider == "anthropic":
        if not config.api_key:
            raise ValueError("llm_config.api_key is required when provider='anthropic'")
        return AnthropicMessagesAdapter(
            model=config.model,
            api_key=config.api_key,
            base_url=config.base_url or "https://api.anthropic.com/v1",
        )
    if provider == "openai":
        if not config.api_key:
            raise ValueError("llm_config.api_key is required when provider='openai'")
        return OpenAICompatibleLLMAdapter(
            model=config.model,
            api_key=config.api_key,
            base_url=config.base_url or "https://api.openai.com/v1",
        )
    if provider == "noop":
        return NoopLLMAdapter()
    raise ValueError(
        f"Unsupported llm_config.provider '{config.provider}'. "
        "Supported providers: anthropic, openai, noop."
    )
