"""
Data model for segment generation.

SegmentDescriptor is the raw, AI-authored candidate; Segment is what survives
validation. GenerationSettings is an immutable snapshot for one call.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# --- Enums ---


class ProviderId(str, Enum):
    LOCAL = "Local"
    OPENAI = "OpenAI"
    ANTHROPIC = "Anthropic"
    AZURE_OPENAI = "AzureOpenAI"
    GOOGLE_GEMINI = "GoogleGemini"


class SegmentStatus(str, Enum):
    GENERATED = "Generated"      # Identified by the model (or the fallback)
    APPROVED = "Approved"        # Approved for extraction
    EXTRACTING = "Extracting"
    EXTRACTED = "Extracted"
    FAILED = "Failed"


# --- Provider credentials ---


class OllamaSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: Optional[str] = None
    base_url: str = "http://localhost:11434"


class OpenAISettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"


class AnthropicSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    model: str = "claude-sonnet-4-20250514"


class AzureOpenAISettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    endpoint: Optional[str] = None
    deployment_name: Optional[str] = None
    api_version: str = "2024-10-21"


class GoogleGeminiSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    model: str = "gemini-2.5-pro"


class GenerationSettings(BaseModel):
    """Immutable snapshot of everything one generation call needs."""

    model_config = ConfigDict(frozen=True)

    segment_count: int = Field(default=5, ge=1)
    segment_length_s: float = Field(default=60.0, gt=0)
    system_prompt: Optional[str] = None
    user_prompt: Optional[str] = None
    provider: ProviderId = ProviderId.LOCAL

    ollama: OllamaSettings = OllamaSettings()
    openai: OpenAISettings = OpenAISettings()
    anthropic: AnthropicSettings = AnthropicSettings()
    azure_openai: AzureOpenAISettings = AzureOpenAISettings()
    google_gemini: GoogleGeminiSettings = GoogleGeminiSettings()


# --- Provider boundary ---


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class SendOptions(BaseModel):
    """Sampling options for the single completion request."""

    temperature: float = 0.1
    top_p: float = 0.9
    max_output_tokens: int = 4000


# --- Segments ---


class SegmentDescriptor(BaseModel):
    """
    One candidate segment as written by the model.

    Providers are asked for Start/End/Duration/Reasoning/Excerpt keys; the
    lowercase spellings are accepted as well and anything else is ignored.
    Timestamps stay strings here and are only interpreted by the validator.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    start: str = Field(default="", validation_alias=AliasChoices("Start", "start"))
    end: str = Field(default="", validation_alias=AliasChoices("End", "end"))
    duration: float = Field(default=0.0, validation_alias=AliasChoices("Duration", "duration"))
    excerpt: str = Field(default="", validation_alias=AliasChoices("Excerpt", "excerpt"))
    reasoning: str = Field(default="", validation_alias=AliasChoices("Reasoning", "reasoning"))
    summary: Optional[str] = Field(default=None, validation_alias=AliasChoices("Summary", "summary"))


class Segment(BaseModel):
    """A validated clip definition. Offsets are seconds from the start of the media."""

    project_id: str
    start_offset: float
    end_offset: float
    transcript_excerpt: str = ""
    summary: str = ""
    reasoning: str = ""
    status: SegmentStatus = SegmentStatus.GENERATED


class GenerationResult(BaseModel):
    success: bool
    segments: list[Segment] = Field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None
    fallback_used: bool = False
