import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from clip_segmenter.errors import ConfigurationError
from clip_segmenter.generator import CANCELLED, generate_segments
from clip_segmenter.models import GenerationResult, ProviderId
from clip_segmenter.providers import ProviderRegistry
from clip_segmenter.settings import load_generation_settings, settings

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Provider clients live as long as the app
registry = ProviderRegistry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await registry.aclose()


app = FastAPI(
    title="Clip Segmenter API",
    description="Turn transcripts into validated video segments using an LLM",
    version="0.1.0",
    lifespan=lifespan,
)


# HTTP status per hard-failure kind
ERROR_STATUS = {
    "EmptyInputError": 400,
    "ConfigurationError": 500,
    "UpstreamError": 502,
    "EmptyResponseError": 502,
    "MisunderstoodTaskError": 502,
    CANCELLED: 504,
}


# --- Pydantic Models ---


class HealthResponse(BaseModel):
    ok: bool


class GenerateSegmentsRequest(BaseModel):
    project_id: str
    transcript: str
    media_duration_s: Optional[float] = None
    provider: Optional[ProviderId] = None           # Uses SEGMENTER_PROVIDER if None
    segment_count: Optional[int] = Field(default=None, ge=1)
    segment_length_s: Optional[float] = Field(default=None, gt=0)
    system_prompt: Optional[str] = None
    user_prompt: Optional[str] = None
    timeout_s: Optional[float] = Field(default=None, gt=0)


# --- Endpoints ---


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return {"ok": True}


@app.post("/generate-segments", response_model=GenerationResult)
async def generate_segments_endpoint(request: GenerateSegmentsRequest):
    """
    Generate segments for a project transcript.

    Provider credentials are read from the environment. Returns 200 with
    `fallback_used: true` when the model output was unusable and segments
    were distributed evenly instead.
    """
    try:
        logger.info(
            f"Received generate-segments request: project={request.project_id}, "
            f"provider={request.provider}, segment_count={request.segment_count}"
        )

        try:
            generation_settings = load_generation_settings(
                provider=request.provider,
                segment_count=request.segment_count,
                segment_length_s=request.segment_length_s,
                system_prompt=request.system_prompt,
                user_prompt=request.user_prompt,
            )
        except ConfigurationError as e:
            raise HTTPException(status_code=500, detail=str(e))

        result = await generate_segments(
            registry,
            request.project_id,
            request.transcript,
            generation_settings,
            request.media_duration_s,
            timeout_s=request.timeout_s,
        )

        if not result.success:
            raise HTTPException(
                status_code=ERROR_STATUS.get(result.error_type, 500),
                detail=result.error,
            )

        return result

    except HTTPException:
        raise
    except Exception:
        logger.exception("Segment generation endpoint failed")
        raise HTTPException(
            status_code=500,
            detail="Segment generation failed. Check server logs for details.",
        )
