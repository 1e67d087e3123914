"""
Provider Registry

Each LLM provider is a ProviderVariant: a closed, tagged record pairing the
provider's credential checks with a client factory and an async transport
function. ProviderRegistry resolves a provider id to a Provider (variant +
credentials + client) and caches the client for reuse.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import anthropic
import httpx
import openai
from google import genai
from google.genai import types
from pydantic import BaseModel

from clip_segmenter.errors import ConfigurationError
from clip_segmenter.models import (
    AnthropicSettings,
    AzureOpenAISettings,
    ChatMessage,
    GenerationSettings,
    GoogleGeminiSettings,
    OllamaSettings,
    OpenAISettings,
    ProviderId,
    SendOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_AZURE_DEPLOYMENT = "gpt-35-turbo"

Transport = Callable[[Any, Any, list[ChatMessage], SendOptions], Awaitable[str]]


@dataclass(frozen=True)
class ProviderVariant:
    provider_id: ProviderId
    display_name: str
    locally_hosted: bool
    credentials: Callable[[GenerationSettings], BaseModel]
    missing_credentials: Callable[[Any], list[str]]
    build_client: Callable[[Any], Any]
    transport: Transport


@dataclass
class Provider:
    """A resolved provider: send a message list, get completion text back."""

    variant: ProviderVariant
    credentials: BaseModel
    client: Any

    @property
    def name(self) -> str:
        return self.variant.display_name

    @property
    def locally_hosted(self) -> bool:
        return self.variant.locally_hosted

    async def send(self, messages: list[ChatMessage], options: Optional[SendOptions] = None) -> str:
        return await self.variant.transport(
            self.client, self.credentials, messages, options or SendOptions()
        )


# --- Message helpers ---


def _system_text(messages: list[ChatMessage]) -> str:
    return "\n\n".join(m.content for m in messages if m.role == "system")


def _chat_dicts(messages: list[ChatMessage], include_system: bool = True) -> list[dict]:
    return [
        {"role": m.role, "content": m.content}
        for m in messages
        if include_system or m.role != "system"
    ]


def build_plain_prompt(messages: list[ChatMessage]) -> str:
    """Flatten a chat into a single completion prompt ending with 'Assistant:'."""
    parts = [f"{m.role.capitalize()}: {m.content}\n" for m in messages]
    parts.append("Assistant:")
    return "\n".join(parts)


# --- Local (Ollama) ---


def _missing_ollama(creds: OllamaSettings) -> list[str]:
    return [] if creds.model else ["model"]


def _build_ollama(creds: OllamaSettings) -> httpx.AsyncClient:
    # No client-side timeout; the caller bounds the request
    return httpx.AsyncClient(base_url=creds.base_url.rstrip("/"), timeout=None)


async def _send_ollama(
    client: httpx.AsyncClient,
    creds: OllamaSettings,
    messages: list[ChatMessage],
    options: SendOptions,
) -> str:
    payload = {
        "model": creds.model,
        "prompt": build_plain_prompt(messages),
        "stream": False,
        "options": {
            "temperature": options.temperature,
            "top_p": options.top_p,
            "num_predict": options.max_output_tokens,
        },
    }
    response = await client.post("/api/generate", json=payload)
    response.raise_for_status()
    return response.json().get("response") or ""


# --- OpenAI / Azure OpenAI ---


def _missing_openai(creds: OpenAISettings) -> list[str]:
    return [] if creds.api_key else ["api_key"]


def _build_openai(creds: OpenAISettings) -> openai.AsyncOpenAI:
    return openai.AsyncOpenAI(api_key=creds.api_key)


async def _chat_completion(client, model: str, messages: list[ChatMessage], options: SendOptions) -> str:
    response = await client.chat.completions.create(
        model=model,
        messages=_chat_dicts(messages),
        temperature=options.temperature,
        top_p=options.top_p,
        max_tokens=options.max_output_tokens,
    )
    return response.choices[0].message.content or ""


async def _send_openai(client, creds: OpenAISettings, messages, options) -> str:
    return await _chat_completion(client, creds.model, messages, options)


def _missing_azure(creds: AzureOpenAISettings) -> list[str]:
    missing = []
    if not creds.api_key:
        missing.append("api_key")
    if not creds.endpoint:
        missing.append("endpoint")
    return missing


def _build_azure(creds: AzureOpenAISettings) -> openai.AsyncAzureOpenAI:
    return openai.AsyncAzureOpenAI(
        api_key=creds.api_key,
        azure_endpoint=creds.endpoint,
        api_version=creds.api_version,
    )


async def _send_azure(client, creds: AzureOpenAISettings, messages, options) -> str:
    deployment = creds.deployment_name or DEFAULT_AZURE_DEPLOYMENT
    return await _chat_completion(client, deployment, messages, options)


# --- Anthropic ---


def _missing_anthropic(creds: AnthropicSettings) -> list[str]:
    return [] if creds.api_key else ["api_key"]


def _build_anthropic(creds: AnthropicSettings) -> anthropic.AsyncAnthropic:
    return anthropic.AsyncAnthropic(api_key=creds.api_key)


async def _send_anthropic(
    client: anthropic.AsyncAnthropic,
    creds: AnthropicSettings,
    messages: list[ChatMessage],
    options: SendOptions,
) -> str:
    request = {
        "model": creds.model,
        "max_tokens": options.max_output_tokens,
        # Newer Claude models reject temperature and top_p together
        "temperature": options.temperature,
        "messages": _chat_dicts(messages, include_system=False),
    }
    system = _system_text(messages)
    if system:
        request["system"] = system

    message = await client.messages.create(**request)
    return "".join(block.text for block in message.content if block.type == "text")


# --- Google Gemini ---


def _missing_gemini(creds: GoogleGeminiSettings) -> list[str]:
    return [] if creds.api_key else ["api_key"]


def _build_gemini(creds: GoogleGeminiSettings) -> genai.Client:
    return genai.Client(api_key=creds.api_key)


async def _send_gemini(
    client: genai.Client,
    creds: GoogleGeminiSettings,
    messages: list[ChatMessage],
    options: SendOptions,
) -> str:
    contents = "\n\n".join(m.content for m in messages if m.role != "system")
    response = await client.aio.models.generate_content(
        model=creds.model,
        contents=contents,
        config=types.GenerateContentConfig(
            system_instruction=_system_text(messages) or None,
            temperature=options.temperature,
            top_p=options.top_p,
            max_output_tokens=options.max_output_tokens,
        ),
    )
    return response.text or ""


PROVIDER_VARIANTS: dict[ProviderId, ProviderVariant] = {
    ProviderId.LOCAL: ProviderVariant(
        provider_id=ProviderId.LOCAL,
        display_name="Ollama",
        locally_hosted=True,
        credentials=lambda s: s.ollama,
        missing_credentials=_missing_ollama,
        build_client=_build_ollama,
        transport=_send_ollama,
    ),
    ProviderId.OPENAI: ProviderVariant(
        provider_id=ProviderId.OPENAI,
        display_name="OpenAI",
        locally_hosted=False,
        credentials=lambda s: s.openai,
        missing_credentials=_missing_openai,
        build_client=_build_openai,
        transport=_send_openai,
    ),
    ProviderId.ANTHROPIC: ProviderVariant(
        provider_id=ProviderId.ANTHROPIC,
        display_name="Anthropic",
        locally_hosted=False,
        credentials=lambda s: s.anthropic,
        missing_credentials=_missing_anthropic,
        build_client=_build_anthropic,
        transport=_send_anthropic,
    ),
    ProviderId.AZURE_OPENAI: ProviderVariant(
        provider_id=ProviderId.AZURE_OPENAI,
        display_name="Azure OpenAI",
        locally_hosted=False,
        credentials=lambda s: s.azure_openai,
        missing_credentials=_missing_azure,
        build_client=_build_azure,
        transport=_send_azure,
    ),
    ProviderId.GOOGLE_GEMINI: ProviderVariant(
        provider_id=ProviderId.GOOGLE_GEMINI,
        display_name="Google Gemini",
        locally_hosted=False,
        credentials=lambda s: s.google_gemini,
        missing_credentials=_missing_gemini,
        build_client=_build_gemini,
        transport=_send_gemini,
    ),
}


class ProviderRegistry:
    """
    Resolves provider ids to ready-to-use providers.

    Clients are built on first resolution and cached per (provider id,
    credentials). The owner decides the registry's lifetime and should call
    `aclose()` when done with it.
    """

    def __init__(self, variants: Optional[dict[ProviderId, ProviderVariant]] = None):
        self._variants = dict(PROVIDER_VARIANTS if variants is None else variants)
        self._cache: dict[tuple, Provider] = {}

    def variant(self, provider_id: Union[ProviderId, str]) -> ProviderVariant:
        try:
            key = ProviderId(provider_id)
        except ValueError:
            raise ConfigurationError(f"Unknown LLM provider: {provider_id}")

        variant = self._variants.get(key)
        if variant is None:
            raise ConfigurationError(f"Unknown LLM provider: {key.value}")
        return variant

    def resolve(self, provider_id: Union[ProviderId, str], settings: GenerationSettings) -> Provider:
        """
        Return the provider for `provider_id`, building its client on first use.

        Raises:
            ConfigurationError: If the id is unknown or a required credential is missing
        """
        variant = self.variant(provider_id)
        credentials = variant.credentials(settings)

        missing = variant.missing_credentials(credentials)
        if missing:
            raise ConfigurationError(
                f"LLM Provider '{variant.provider_id.value}' is not configured "
                f"(missing {', '.join(missing)}). Please configure it before generating segments."
            )

        key = (variant.provider_id, credentials)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        logger.info(f"Creating {variant.display_name} client (first use, will be cached)")
        provider = Provider(variant=variant, credentials=credentials, client=variant.build_client(credentials))
        # Concurrent first resolutions may both build; only one is kept
        return self._cache.setdefault(key, provider)

    def __len__(self) -> int:
        return len(self._cache)

    async def aclose(self) -> None:
        """Close cached clients and empty the cache."""
        providers = list(self._cache.values())
        self._cache.clear()
        for provider in providers:
            closer = getattr(provider.client, "aclose", None) or getattr(provider.client, "close", None)
            if closer is None:
                continue
            result = closer()
            if inspect.isawaitable(result):
                await result
