from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..config import AppSettings
from ..dependencies import get_settings
from ..services.analysis.prompts import PROMPT_VERSION

router = APIRouter(prefix="/api", tags=["system"])


def _settings_snapshot(settings: AppSettings) -> Dict[str, Dict[str, Any]]:
    return {
        "llm": {
            "base_url": settings.llm_base_url,
            "configured": bool(settings.llm_api_key),
            "fast_model": settings.llm_fast_model,
            "high_fidelity_model": settings.llm_high_fidelity_model,
            "temperature": settings.llm_temperature,
            "timeout_sec": settings.llm_timeout,
            "prompt_version": PROMPT_VERSION,
        },
        "limits": {
            "allowed_mime_types": list(settings.allowed_mime_types),
            "max_document_bytes": settings.max_document_bytes,
            "max_base64_chars": settings.max_base64_chars,
            "max_request_bytes": settings.max_request_bytes,
        },
        "store": {
            "default_table_name": settings.default_table_name,
            "timeout_sec": settings.store_timeout,
        },
    }


@router.get("/health")
async def health(settings: AppSettings = Depends(get_settings)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "environment": settings.environment,
        "settings": _settings_snapshot(settings),
    }
