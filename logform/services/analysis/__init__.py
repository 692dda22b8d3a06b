"""
Document analysis pipeline.

This module provides:
- Type/size gatekeeping of submitted documents
- A single call to the extraction model with a fixed instruction set
- Validation of the returned schema and templates
"""

from .engine import analyze_document, request_envelope
from .envelope import extract_placeholders, validate_envelope
from .gatekeeper import DocumentSubmission, check_submission
from .models import AnalysisEnvelope, DataSchema, FieldDefinition, ModelTier

__all__ = [
    "AnalysisEnvelope",
    "DataSchema",
    "DocumentSubmission",
    "FieldDefinition",
    "ModelTier",
    "analyze_document",
    "check_submission",
    "extract_placeholders",
    "request_envelope",
    "validate_envelope",
]
