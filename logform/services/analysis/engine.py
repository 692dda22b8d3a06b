"""
Extraction orchestrator.

Sends one document plus the fixed instruction set to an OpenAI-compatible
vision model and hands the raw answer to the envelope validator. There is
exactly one model call per request and no automatic retry: a failed call is
reported to the caller, who decides whether to try again.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from ...config import AppSettings
from ...errors import ResponseShapeError, UpstreamServiceError
from .envelope import validate_envelope
from .gatekeeper import DocumentSubmission, check_submission
from .models import AnalysisEnvelope, ModelTier
from .prompts import PROMPT_VERSION, SYSTEM_PROMPT, build_instructions

logger = logging.getLogger(__name__)


def model_for_tier(tier: ModelTier, settings: AppSettings) -> str:
    if tier is ModelTier.HIGH_FIDELITY:
        return settings.llm_high_fidelity_model
    return settings.llm_fast_model


def build_messages(submission: DocumentSubmission) -> List[Dict[str, Any]]:
    """Chat messages carrying the instructions and the document itself."""
    if submission.is_pdf:
        document_part: Dict[str, Any] = {
            "type": "file",
            "file": {"filename": "document.pdf", "file_data": submission.data_url},
        }
    else:
        document_part = {"type": "image_url", "image_url": {"url": submission.data_url}}

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": build_instructions()},
                document_part,
            ],
        },
    ]


def create_llm_client(settings: AppSettings) -> AsyncOpenAI:
    if not settings.llm_api_key:
        raise UpstreamServiceError("Extraction model is not configured", detail="LLM_API_KEY is empty")
    kwargs: Dict[str, Any] = {
        "api_key": settings.llm_api_key,
        "timeout": settings.llm_timeout,
        "max_retries": 0,
    }
    if settings.llm_base_url:
        kwargs["base_url"] = settings.llm_base_url
    return AsyncOpenAI(**kwargs)


async def request_envelope(
    submission: DocumentSubmission,
    settings: AppSettings,
    *,
    llm_client: Optional[Any] = None,
) -> str:
    """
    Call the extraction model once and return its raw JSON text.

    Raises:
        UpstreamServiceError: the model endpoint is unreachable or answered with a fault.
        ResponseShapeError: the answer is empty or is not a bare JSON object.
    """
    client = llm_client or create_llm_client(settings)
    model = model_for_tier(submission.tier, settings)

    request: Dict[str, Any] = {
        "model": model,
        "messages": build_messages(submission),
        "temperature": settings.llm_temperature,
        "response_format": {"type": "json_object"},
    }
    if settings.llm_max_tokens:
        request["max_tokens"] = settings.llm_max_tokens

    started = time.perf_counter()
    try:
        response = await client.chat.completions.create(**request)
    except (OpenAIError, httpx.HTTPError) as exc:
        logger.warning("Extraction call to %s failed after %.1fs: %s", model, time.perf_counter() - started, exc)
        raise UpstreamServiceError("Extraction service unavailable", detail=str(exc)) from exc

    logger.info(
        "Extraction model %s answered in %.1fs (prompt %s, %d bytes %s)",
        model,
        time.perf_counter() - started,
        PROMPT_VERSION,
        submission.size_bytes,
        submission.mime_type,
    )

    if not response.choices:
        raise ResponseShapeError("Extraction model returned no choices")

    text = (response.choices[0].message.content or "").strip()
    if not text:
        raise ResponseShapeError("Extraction model returned an empty answer")
    if not text.startswith("{") or not text.endswith("}"):
        raise ResponseShapeError("Invalid JSON response from model", detail=text[:200])
    return text


async def analyze_document(
    mime_type: str,
    data: str,
    settings: AppSettings,
    *,
    model: Optional[str] = None,
    llm_client: Optional[Any] = None,
) -> AnalysisEnvelope:
    """Gatekeeper, model call and envelope validation for one document."""
    submission = check_submission(mime_type, data, settings, model=model)
    raw = await request_envelope(submission, settings, llm_client=llm_client)
    return validate_envelope(raw, enforce_order=settings.enforce_template_order)
