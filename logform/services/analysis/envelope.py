"""
Envelope validation.

Turns the model's raw answer into an ``AnalysisEnvelope`` or raises
``ResponseShapeError``. Besides the structural checks, every ``{{key}}``
placeholder in both templates must name a field of the schema, and the
layout template must introduce placeholders in field order.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from ...errors import ResponseShapeError
from .models import AnalysisEnvelope, FieldDefinition

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")

REQUIRED_MEMBERS = ("data_schema", "markdown_template", "html_template")


def extract_placeholders(template: str) -> List[str]:
    """Placeholder tokens in order of appearance, duplicates included."""
    return PLACEHOLDER_RE.findall(template or "")


def _first_occurrences(tokens: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for token in tokens:
        if token in seen:
            continue
        seen.add(token)
        ordered.append(token)
    return ordered


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors()[:5]:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def _parse(raw: str) -> Dict[str, Any]:
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ResponseShapeError("Model response is not valid JSON", detail=str(exc)) from exc
    if not isinstance(payload, dict):
        raise ResponseShapeError("Model response is not a JSON object")
    return payload


def check_unique_keys(fields: List[FieldDefinition]) -> None:
    seen = set()
    duplicates = []
    for field in fields:
        if field.key in seen:
            duplicates.append(field.key)
        seen.add(field.key)
    if duplicates:
        raise ResponseShapeError("Duplicate field keys in data_schema", detail=", ".join(sorted(set(duplicates))))


def check_placeholders(envelope: AnalysisEnvelope) -> None:
    known = {f.key for f in envelope.fields}
    unknown = set()
    for name in ("markdown_template", "html_template"):
        for token in extract_placeholders(getattr(envelope, name)):
            if token not in known:
                unknown.add(token)
    if unknown:
        raise ResponseShapeError(
            "Template placeholders do not match data_schema keys",
            detail="unknown: " + ", ".join(sorted(unknown)),
        )


def check_placeholder_order(envelope: AnalysisEnvelope) -> None:
    """Placeholders must first appear in both templates in field order."""
    order_of = {f.key: f.order for f in envelope.fields}
    for name in ("markdown_template", "html_template"):
        previous = None
        for token in _first_occurrences(extract_placeholders(getattr(envelope, name))):
            current = order_of[token]
            if previous is not None and current < previous[1]:
                raise ResponseShapeError(
                    "Template section order does not follow field order",
                    detail=f"{name}: '{token}' (order {current}) appears after '{previous[0]}' (order {previous[1]})",
                )
            previous = (token, current)


def validate_envelope(raw: str, *, enforce_order: bool = True) -> AnalysisEnvelope:
    payload = _parse(raw)

    missing = [m for m in REQUIRED_MEMBERS if m not in payload]
    if missing:
        raise ResponseShapeError("Model response is incomplete", detail="missing: " + ", ".join(missing))

    for name in ("markdown_template", "html_template"):
        value = payload[name]
        if not isinstance(value, str) or not value.strip():
            raise ResponseShapeError("Model response is incomplete", detail=f"{name} is empty")

    schema = payload["data_schema"]
    if not isinstance(schema, dict) or not isinstance(schema.get("fields"), list):
        raise ResponseShapeError("data_schema must be an object with a fields list")

    try:
        envelope = AnalysisEnvelope.model_validate(payload)
    except ValidationError as exc:
        raise ResponseShapeError("data_schema is malformed", detail=_describe_validation_error(exc)) from exc

    check_unique_keys(envelope.fields)
    check_placeholders(envelope)
    if enforce_order:
        check_placeholder_order(envelope)

    ordered = sorted(envelope.fields, key=lambda f: f.order)
    if ordered != list(envelope.fields):
        envelope = envelope.model_copy(
            update={"data_schema": envelope.data_schema.model_copy(update={"fields": ordered})}
        )

    logger.info(
        "Validated envelope '%s' with %d fields (%d placeholders)",
        envelope.title,
        len(envelope.fields),
        len(extract_placeholders(envelope.markdown_template)),
    )
    return envelope
