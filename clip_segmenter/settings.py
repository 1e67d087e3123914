import os

from clip_segmenter.errors import ConfigurationError
from clip_segmenter.models import (
    AnthropicSettings,
    AzureOpenAISettings,
    GenerationSettings,
    GoogleGeminiSettings,
    OllamaSettings,
    OpenAISettings,
    ProviderId,
)
from clip_segmenter.prompts import DEFAULT_SYSTEM_PROMPT, DEFAULT_USER_PROMPT, load_prompt_template


class Settings:
    """Application settings loaded from environment variables."""

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Generation defaults
    PROVIDER: str = os.getenv("SEGMENTER_PROVIDER", "Local")
    SEGMENT_COUNT: int = int(os.getenv("SEGMENT_COUNT", "5"))
    SEGMENT_LENGTH_S: float = float(os.getenv("SEGMENT_LENGTH_S", "60"))
    SYSTEM_PROMPT_PATH: str = os.getenv("SYSTEM_PROMPT_PATH", "")
    USER_PROMPT_PATH: str = os.getenv("USER_PROMPT_PATH", "")

    # Local (Ollama)
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "")
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

    # Hosted providers
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")

    AZURE_OPENAI_API_KEY: str = os.getenv("AZURE_OPENAI_API_KEY", "")
    AZURE_OPENAI_ENDPOINT: str = os.getenv("AZURE_OPENAI_ENDPOINT", "")
    AZURE_OPENAI_DEPLOYMENT: str = os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-35-turbo")
    AZURE_OPENAI_API_VERSION: str = os.getenv("AZURE_OPENAI_API_VERSION", "2024-10-21")

    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-pro")


settings = Settings()


def load_generation_settings(**overrides) -> GenerationSettings:
    """
    Build an immutable GenerationSettings snapshot from the environment.

    Keyword overrides replace top-level snapshot fields (segment_count,
    segment_length_s, provider, system_prompt, user_prompt). Credentials
    always come from the environment.
    """
    requested_provider = overrides.pop("provider", None) or settings.PROVIDER
    try:
        provider = ProviderId(requested_provider)
    except ValueError:
        raise ConfigurationError(f"Unknown LLM provider: {requested_provider}")

    values = {
        "segment_count": settings.SEGMENT_COUNT,
        "segment_length_s": settings.SEGMENT_LENGTH_S,
        "provider": provider,
        "system_prompt": load_prompt_template(settings.SYSTEM_PROMPT_PATH, DEFAULT_SYSTEM_PROMPT),
        "user_prompt": load_prompt_template(settings.USER_PROMPT_PATH, DEFAULT_USER_PROMPT),
        "ollama": OllamaSettings(
            model=settings.OLLAMA_MODEL or None,
            base_url=settings.OLLAMA_BASE_URL,
        ),
        "openai": OpenAISettings(
            api_key=settings.OPENAI_API_KEY or None,
            model=settings.OPENAI_MODEL,
        ),
        "anthropic": AnthropicSettings(
            api_key=settings.ANTHROPIC_API_KEY or None,
            model=settings.ANTHROPIC_MODEL,
        ),
        "azure_openai": AzureOpenAISettings(
            api_key=settings.AZURE_OPENAI_API_KEY or None,
            endpoint=settings.AZURE_OPENAI_ENDPOINT or None,
            deployment_name=settings.AZURE_OPENAI_DEPLOYMENT or None,
            api_version=settings.AZURE_OPENAI_API_VERSION,
        ),
        "google_gemini": GoogleGeminiSettings(
            api_key=settings.GEMINI_API_KEY or None,
            model=settings.GEMINI_MODEL,
        ),
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return GenerationSettings(**values)
