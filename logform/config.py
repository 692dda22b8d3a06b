from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


DEFAULT_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp", "application/pdf")


@dataclass(frozen=True)
class AppSettings:
    environment: str
    frontend_origin: str
    allowed_origins: Tuple[str, ...]
    llm_base_url: str
    llm_api_key: str
    llm_fast_model: str
    llm_high_fidelity_model: str
    llm_temperature: float
    llm_max_tokens: Optional[int]
    llm_timeout: float
    allowed_mime_types: Tuple[str, ...]
    max_document_bytes: int
    max_base64_chars: int
    max_request_bytes: int
    store_timeout: float
    default_table_name: str
    sqlite_dir: Path
    message_locale: str
    enforce_template_order: bool
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _int_env(name: str, default: str) -> int:
    return int(os.environ.get(name, default) or default)


def _float_env(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw or default)
    except (TypeError, ValueError):
        return float(default)


def _str_env(name: str, default: str = "") -> str:
    return (os.environ.get(name, default) or default).strip()


def _bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _list_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _optional_int_env(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def load_settings() -> AppSettings:
    environment = _str_env("APP_ENV", "development").lower()
    frontend_origin = _str_env("FRONTEND_ORIGIN", f"http://localhost:{os.environ.get('FRONTEND_PORT', '5173')}")

    max_document_bytes = _int_env("MAX_DOCUMENT_BYTES", str(10 * 1024 * 1024))
    # base64 grows the payload by 4/3, padded to a multiple of four
    default_base64_chars = math.ceil(max_document_bytes / 3) * 4
    max_base64_chars = _int_env("MAX_BASE64_CHARS", str(default_base64_chars))
    # JSON envelope around the base64 string
    max_request_bytes = _int_env("MAX_REQUEST_BYTES", str(max_base64_chars + 64 * 1024))

    message_locale = _str_env("MESSAGE_LOCALE", "en").lower()
    if message_locale not in {"en", "ko"}:
        message_locale = "en"

    return AppSettings(
        environment=environment,
        frontend_origin=frontend_origin,
        allowed_origins=_list_env("ALLOWED_ORIGINS", (frontend_origin,)),
        llm_base_url=_str_env("LLM_BASE_URL"),
        llm_api_key=_str_env("LLM_API_KEY"),
        llm_fast_model=_str_env("LLM_FAST_MODEL", "gemini-2.5-flash"),
        llm_high_fidelity_model=_str_env("LLM_HIGH_FIDELITY_MODEL", "gemini-2.5-pro"),
        llm_temperature=_float_env("LLM_TEMPERATURE", "0.1"),
        llm_max_tokens=_optional_int_env("LLM_MAX_TOKENS"),
        llm_timeout=_float_env("LLM_TIMEOUT", "180"),
        allowed_mime_types=tuple(m.lower() for m in _list_env("ALLOWED_MIME_TYPES", DEFAULT_MIME_TYPES)),
        max_document_bytes=max_document_bytes,
        max_base64_chars=max_base64_chars,
        max_request_bytes=max_request_bytes,
        store_timeout=_float_env("STORE_TIMEOUT", "15"),
        default_table_name=_str_env("DEFAULT_TABLE_NAME", "log_entries"),
        sqlite_dir=Path(os.environ.get("SQLITE_DIR", "/app_data/stores")),
        message_locale=message_locale,
        enforce_template_order=_bool_env("ENFORCE_TEMPLATE_ORDER", True),
        log_level=_str_env("LOG_LEVEL", "INFO").upper(),
    )
