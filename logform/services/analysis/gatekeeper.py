from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Optional

from ...config import AppSettings
from ...errors import InputValidationError, PayloadTooLargeError
from .models import ModelTier

logger = logging.getLogger(__name__)

MIME_ALIASES = {"image/jpg": "image/jpeg"}


@dataclass(frozen=True)
class DocumentSubmission:
    mime_type: str
    data_b64: str
    size_bytes: int
    tier: ModelTier

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data_b64}"

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == "application/pdf"


def resolve_model_tier(model: Optional[str], settings: AppSettings) -> ModelTier:
    """Map a tier name or a configured model name to a ``ModelTier``."""
    if model is None or not str(model).strip():
        return ModelTier.FAST
    value = str(model).strip()
    lowered = value.lower()
    for tier in ModelTier:
        if lowered == tier.value:
            return tier
    if value == settings.llm_fast_model:
        return ModelTier.FAST
    if value == settings.llm_high_fidelity_model:
        return ModelTier.HIGH_FIDELITY
    raise InputValidationError("Unsupported model selection", detail=value)


def _decoded_size(data: str) -> int:
    try:
        return len(base64.b64decode(data, validate=True))
    except (binascii.Error, ValueError) as exc:
        raise InputValidationError("Document data is not valid base64", detail=str(exc)) from exc


def check_submission(
    mime_type: str,
    data: str,
    settings: AppSettings,
    *,
    model: Optional[str] = None,
) -> DocumentSubmission:
    """Reject unsupported or oversized documents before anything leaves the process."""
    normalized = (mime_type or "").strip().lower()
    if normalized not in settings.allowed_mime_types:
        logger.info("Rejected document with mime type %r", mime_type)
        raise InputValidationError(
            "Unsupported file type (supported: JPG, PNG, WebP, PDF)",
            detail=mime_type,
        )

    if not data:
        raise InputValidationError("Document data is empty")

    data = "".join(data.split())
    if len(data) > settings.max_base64_chars:
        logger.info("Rejected document: base64 length %d over %d", len(data), settings.max_base64_chars)
        raise PayloadTooLargeError(
            "File is too large",
            detail=f"{len(data)} base64 characters, limit {settings.max_base64_chars}",
        )

    size = _decoded_size(data)
    if size == 0:
        raise InputValidationError("Document data is empty")
    if size > settings.max_document_bytes:
        logger.info("Rejected document: %d bytes over %d", size, settings.max_document_bytes)
        raise PayloadTooLargeError(
            "File is too large",
            detail=f"{size} bytes, limit {settings.max_document_bytes}",
        )

    tier = resolve_model_tier(model, settings)
    return DocumentSubmission(
        mime_type=MIME_ALIASES.get(normalized, normalized),
        data_b64=data,
        size_bytes=size,
        tier=tier,
    )
