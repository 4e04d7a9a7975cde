"""
Content Providers for the Mediation Cycle

The cycle never produces text itself. When a manifestation is missing it asks
a generator; when correction needs new content it asks a transformer. A
provider is both.

Supported providers:
- OllamaProvider: Local Ollama server (requests)
- OpenAIProvider: OpenAI API (optional `openai` extra)
- AnthropicProvider: Anthropic API (optional `anthropic` extra)
- MockProvider: Deterministic responses for testing

Blocking HTTP clients run in a worker thread so the cycle can enforce its
deadline with asyncio.wait_for.

Usage:
    from mediation_engine.providers import create_provider
    from mediation_engine.cycle import CycleState, Source, run_cycle

    provider = create_provider("ollama", "llama3")
    state = CycleState(source=Source("What is the capital of France?"))
    state = await run_cycle(state, generator=provider.generate, transform=provider.transform)
"""

import asyncio
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from mediation_engine.cycle import Source


SYSTEM_PROMPT = (
    "You answer precisely and briefly. State only what you can support. "
    "Do not add commentary."
)


def build_generation_prompt(source: Source) -> str:
    parts = [source.intent]
    if source.premises:
        parts.append("Premises:\n" + "\n".join(f"- {p}" for p in source.premises))
    return "\n\n".join(parts)


def build_transform_prompt(content: str, strategy: str) -> str:
    return (
        f"Rewrite the following content. Strategy: {strategy}.\n"
        f"Preserve its core intent and essential meaning. Reply with the rewritten content only.\n\n"
        f"{content}"
    )


# =============================================================================
# Provider Base Class
# =============================================================================

class ContentProvider(ABC):
    """Base class for generator/transformer collaborators."""

    @abstractmethod
    async def generate(self, source: Source) -> str:
        """Produce a manifestation for source."""
        pass

    @abstractmethod
    async def transform(self, content: str, strategy: str) -> str:
        """Rewrite content according to a correction strategy."""
        pass

    @abstractmethod
    def get_model_id(self) -> str:
        pass

    def get_info(self) -> Dict[str, Any]:
        return {
            "model_id": self.get_model_id(),
            "provider_type": self.__class__.__name__,
        }


class CompletionProvider(ContentProvider):
    """Providers backed by a blocking single-prompt completion call."""

    @abstractmethod
    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        pass

    async def generate(self, source: Source) -> str:
        return await asyncio.to_thread(self.complete, build_generation_prompt(source), SYSTEM_PROMPT)

    async def transform(self, content: str, strategy: str) -> str:
        return await asyncio.to_thread(self.complete, build_transform_prompt(content, strategy), SYSTEM_PROMPT)


# =============================================================================
# Ollama Provider
# =============================================================================

class OllamaProvider(CompletionProvider):
    """
    Provider for a local Ollama server.

    Requires Ollama to be running: https://ollama.ai
    """

    def __init__(
        self,
        model_name: str = "llama3",
        base_url: str = "http://localhost:11434",
        timeout: int = 120,
        max_tokens: int = 256,
        temperature: float = 0.2,
    ):
        self.model_name = model_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        data = {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
            "options": {
                "num_predict": self.max_tokens,
                "temperature": self.temperature,
            },
        }
        if system_prompt:
            data["system"] = system_prompt

        response = requests.post(
            f"{self.base_url}/api/generate",
            json=data,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json().get("response", "").strip()

    def get_model_id(self) -> str:
        return f"ollama/{self.model_name}"

    def get_info(self) -> Dict[str, Any]:
        return {
            "model_id": self.model_name,
            "provider_type": "OllamaProvider",
            "base_url": self.base_url,
        }

    def list_models(self) -> List[str]:
        response = requests.get(f"{self.base_url}/api/tags", timeout=self.timeout)
        response.raise_for_status()
        return [m["name"] for m in response.json().get("models", [])]


# =============================================================================
# OpenAI Provider
# =============================================================================

class OpenAIProvider(CompletionProvider):
    """
    Provider for the OpenAI API.

    Requires OPENAI_API_KEY or an explicit api_key.
    """

    def __init__(
        self,
        model_name: str = "gpt-4o",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = 120,
        max_retries: int = 3,
        max_tokens: int = 256,
    ):
        self.model_name = model_name
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.max_tokens = max_tokens

        if not self.api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self._client = None

    def _ensure_client(self):
        if self._client is not None:
            return

        try:
            from openai import OpenAI
        except ImportError:
            raise ImportError(
                "OpenAI provider requires the openai package. "
                "Install with: pip install mediation-engine[openai]"
            )

        kwargs = {
            "api_key": self.api_key,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        self._client = OpenAI(**kwargs)

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self._ensure_client()

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = self._client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            max_tokens=self.max_tokens,
        )
        return (response.choices[0].message.content or "").strip()

    def get_model_id(self) -> str:
        return f"openai/{self.model_name}"


# =============================================================================
# Anthropic Provider
# =============================================================================

class AnthropicProvider(CompletionProvider):
    """
    Provider for the Anthropic API.

    Requires ANTHROPIC_API_KEY or an explicit api_key.
    """

    def __init__(
        self,
        model_name: str = "claude-sonnet-4-20250514",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = 120,
        max_retries: int = 3,
        max_tokens: int = 256,
    ):
        self.model_name = model_name
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.max_tokens = max_tokens

        if not self.api_key:
            raise ValueError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self._client = None

    def _ensure_client(self):
        if self._client is not None:
            return

        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "Anthropic provider requires the anthropic package. "
                "Install with: pip install mediation-engine[anthropic]"
            )

        kwargs = {
            "api_key": self.api_key,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        self._client = Anthropic(**kwargs)

    def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self._ensure_client()

        kwargs = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        response = self._client.messages.create(**kwargs)
        text_parts = [block.text for block in response.content if hasattr(block, "text")]
        return "".join(text_parts).strip()

    def get_model_id(self) -> str:
        return f"anthropic/{self.model_name}"


# =============================================================================
# Mock Provider (for testing)
# =============================================================================

class MockProvider(ContentProvider):
    """
    Deterministic provider for testing.

    responses maps a substring of the intent to the generated content.
    transforms maps a substring of the strategy (or the content itself) to
    the rewritten content; default_transform applies otherwise, and None
    leaves the content unchanged.
    """

    def __init__(
        self,
        responses: Optional[Dict[str, str]] = None,
        default_response: str = "I don't know.",
        transforms: Optional[Dict[str, str]] = None,
        default_transform: Optional[str] = None,
        delay: float = 0.0,
        fail_with: Optional[BaseException] = None,
    ):
        self.responses = responses or {}
        self.default_response = default_response
        self.transforms = transforms or {}
        self.default_transform = default_transform
        self.delay = delay
        self.fail_with = fail_with
        self.generate_calls: List[str] = []
        self.transform_calls: List[tuple] = []

    async def _pause(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    async def generate(self, source: Source) -> str:
        self.generate_calls.append(source.intent)
        await self._pause()
        intent = source.intent.lower()
        for key, response in self.responses.items():
            if key.lower() in intent:
                return response
        return self.default_response

    async def transform(self, content: str, strategy: str) -> str:
        self.transform_calls.append((content, strategy))
        await self._pause()
        for key, rewritten in self.transforms.items():
            if key == content or key.lower() in strategy.lower():
                return rewritten
        if self.default_transform is not None:
            return self.default_transform
        return content

    def get_model_id(self) -> str:
        return "mock-provider"


# =============================================================================
# Provider Factory
# =============================================================================

def create_provider(
    provider_type: str,
    model_name: Optional[str] = None,
    **kwargs
) -> ContentProvider:
    """
    Factory function to create providers.

    Examples:
        provider = create_provider("ollama", "llama3")
        provider = create_provider("openai", "gpt-4o")
        provider = create_provider("mock", responses={"capital": "Paris"})
    """
    provider_type = provider_type.lower()

    if provider_type == "ollama":
        return OllamaProvider(model_name or "llama3", **kwargs)
    elif provider_type in ("openai", "gpt"):
        return OpenAIProvider(model_name or "gpt-4o", **kwargs)
    elif provider_type in ("anthropic", "claude"):
        return AnthropicProvider(model_name or "claude-sonnet-4-20250514", **kwargs)
    elif provider_type == "mock":
        return MockProvider(**kwargs)
    else:
        raise ValueError(
            f"Unknown provider type: {provider_type}. "
            "Choose from: ollama, openai, anthropic, mock"
        )
