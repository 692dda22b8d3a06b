"""
Data entry ingestion.

Coerces one submitted form (field key -> raw string) by the declared field
types and inserts it as a single row. Empty values become NULL; ``id`` and
``created_at`` are filled in by the store and come back with the row.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Mapping, Optional, Sequence

import httpx

from ...config import AppSettings
from ...errors import InputValidationError, StorageWriteError
from ..analysis.models import FieldDefinition
from .backends import BackendError, StoreCoordinates, open_backend
from .mapper import check_identifier

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "1"}
TIME_REFERENCE_DATE = date(1970, 1, 1)

_CURRENCY_RE = re.compile(r"^[$€£¥₩]\s*|\s*[$€£¥₩]$")
_GROUPED_NUMBER_RE = re.compile(r"[+-]?\d{1,3}(,\d{3})+(\.\d+)?")
_PLAIN_NUMBER_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?|[+-]?(nan|inf|infinity)", re.IGNORECASE)
# "2024. 1. 5." as typed on Korean forms
_DOTTED_DATE_RE = re.compile(r"^(\d{4})\.\s*(\d{1,2})\.\s*(\d{1,2})\.?(.*)$")

DATETIME_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y%m%d",
    "%d.%m.%Y",
    "%d.%m.%Y %H:%M",
)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_number(value: str) -> float:
    """Plain decimal, optionally with a currency symbol and comma thousands groups."""
    text = _CURRENCY_RE.sub("", value.strip())
    if "," in text:
        if not _GROUPED_NUMBER_RE.fullmatch(text):
            raise ValueError(f"bad digit grouping in {value!r}")
        text = text.replace(",", "")
    if not _PLAIN_NUMBER_RE.fullmatch(text):
        raise ValueError(f"not a number {value!r}")
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"non-finite number {value!r}")
    return number


def parse_boolean(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def parse_instant(value: str) -> datetime:
    """Parse a date or date-time into an aware UTC datetime. Naive input is taken as UTC."""
    text = value.strip()
    dotted = _DOTTED_DATE_RE.match(text)
    if dotted:
        year, month, day, rest = dotted.groups()
        text = f"{year}-{int(month):02d}-{int(day):02d}"
        if rest.strip():
            text = f"{text} {rest.strip()}"

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        raise ValueError(f"unrecognised date {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_time(value: str) -> datetime:
    """Time of day on the epoch date, so it fits a timestamp column. Full date-times pass through."""
    try:
        clock = time.fromisoformat(value.strip())
    except ValueError:
        return parse_instant(value)
    moment = datetime.combine(TIME_REFERENCE_DATE, clock)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_instant(moment: datetime) -> str:
    """Canonical text form, e.g. ``2024-01-05T00:00:00.000Z``."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"


def coerce_value(field: FieldDefinition, raw: Any) -> Any:
    if _is_empty(raw):
        return None
    value = raw if isinstance(raw, str) else str(raw)
    try:
        if field.type == "number":
            return parse_number(value)
        if field.type == "boolean":
            return parse_boolean(value)
        if field.type in ("date", "datetime"):
            return format_instant(parse_instant(value))
        if field.type == "time":
            return format_instant(parse_time(value))
    except ValueError as exc:
        raise InputValidationError(
            f"Invalid value for field '{field.key}'",
            detail=str(exc),
        ) from exc
    return value


def coerce_record(fields: Sequence[FieldDefinition], data: Mapping[str, Any]) -> Dict[str, Any]:
    """Row values for every field, in field order. Keys that are not fields are ignored."""
    record: Dict[str, Any] = {}
    for field in sorted(fields, key=lambda f: f.order):
        record[field.key] = coerce_value(field, data.get(field.key))
    return record


def _restore_booleans(fields: Sequence[FieldDefinition], row: Dict[str, Any]) -> Dict[str, Any]:
    # SQLite hands booleans back as 0/1
    for field in fields:
        if field.type == "boolean" and isinstance(row.get(field.key), int) and not isinstance(row[field.key], bool):
            row[field.key] = bool(row[field.key])
    return row


async def save_record(
    coords: StoreCoordinates,
    fields: Sequence[FieldDefinition],
    data: Mapping[str, Any],
    settings: AppSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Insert one coerced record and return the stored row."""
    table = check_identifier(coords.table_name or settings.default_table_name, "table name")
    for field in fields:
        check_identifier(field.key, "field key")
    record = coerce_record(fields, data)

    backend = open_backend(coords, settings, transport=transport)
    try:
        row = await backend.insert(table, record)
    except BackendError as exc:
        if exc.missing_column:
            message = "Record does not match the table columns"
        elif exc.missing_relation:
            message = f"Table '{table}' does not exist; create the schema first"
        elif exc.unreachable:
            message = "Database is unreachable"
        else:
            message = "Saving data failed"
        logger.warning("Insert into %s failed: %s", table, exc.message)
        raise StorageWriteError(message, detail=exc.message) from exc

    logger.info("Saved record %s into %s", row.get("id"), table)
    return _restore_booleans(fields, row)
