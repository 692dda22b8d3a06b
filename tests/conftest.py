"""Pytest configuration and shared fixtures."""

import base64
import json
from dataclasses import replace
from types import SimpleNamespace
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from logform.app import create_app
from logform.config import AppSettings, load_settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    """Settings independent of the developer's environment.

    Returns:
        AppSettings: development settings with a temporary SQLite directory
    """
    return replace(
        load_settings(),
        environment="development",
        allowed_origins=("http://localhost:5173",),
        llm_base_url="http://llm.test/v1",
        llm_api_key="test-key",
        llm_fast_model="fast-model",
        llm_high_fidelity_model="pro-model",
        llm_max_tokens=None,
        allowed_mime_types=("image/jpeg", "image/jpg", "image/png", "image/webp", "application/pdf"),
        max_document_bytes=1024,
        max_base64_chars=1368,
        max_request_bytes=4096,
        default_table_name="log_entries",
        sqlite_dir=tmp_path / "stores",
        message_locale="en",
        enforce_template_order=True,
    )


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def make_envelope(
    fields: Optional[list] = None,
    markdown: str = "# Log\n\n| Temp |\n|---|\n| {{temp}} |",
    html: str = '<div style="background: white; color: black;">{{temp}}</div>',
    title: str = "Temperature log",
) -> Dict[str, Any]:
    if fields is None:
        fields = [{"key": "temp", "label": "Temperature", "type": "number", "order": 1}]
    return {
        "data_schema": {"title": title, "fields": fields},
        "markdown_template": markdown,
        "html_template": html,
    }


def make_llm_client(content: Optional[str] = None, *, side_effect: Any = None) -> MagicMock:
    """OpenAI-style client whose chat completion returns ``content``."""
    client = MagicMock()
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


@pytest.fixture
def envelope_json() -> str:
    return json.dumps(make_envelope())


@pytest.fixture
def llm_client(envelope_json: str) -> MagicMock:
    return make_llm_client(envelope_json)


@pytest.fixture
def app(settings: AppSettings):
    return create_app(settings)


@pytest.fixture
def test_client(app) -> TestClient:
    """Create FastAPI test client.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)
