"""
API route for document analysis.

Turns one uploaded manufacturing-log image or PDF into its field schema,
Markdown layout template and HTML render template.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..config import AppSettings
from ..dependencies import check_origin, get_settings, limit_request_size
from ..schemas import AnalyzeRequest
from ..services.analysis import analyze_document

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["analysis"])


def get_llm_client():
    """Extraction model client; ``None`` lets the engine build one from settings."""
    return None


@router.post("/analyze", dependencies=[Depends(limit_request_size), Depends(check_origin)])
async def analyze(
    request: AnalyzeRequest,
    settings: AppSettings = Depends(get_settings),
    llm_client: Any = Depends(get_llm_client),
) -> Dict[str, Any]:
    """
    Analyse a document.

    Returns ``data_schema``, ``markdown_template`` and ``html_template``; every
    placeholder in the templates is guaranteed to be a ``data_schema`` key.
    """
    logger.info(
        "Analyze request: %s, model=%s, tier=%s",
        request.mime_type,
        request.model or "default",
        request.user_tier or "-",
    )
    envelope = await analyze_document(
        request.mime_type,
        request.data,
        settings,
        model=request.model,
        llm_client=llm_client,
    )
    return envelope.to_response()
