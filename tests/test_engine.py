"""Tests for the extraction orchestrator."""

import json

import httpx
import openai
import pytest

from conftest import PNG_BYTES, b64, make_envelope, make_llm_client
from logform.errors import ResponseShapeError, UpstreamServiceError
from logform.services.analysis import ModelTier, analyze_document, check_submission, request_envelope
from logform.services.analysis.engine import build_messages
from logform.services.analysis.prompts import PROMPT_VERSION, SYSTEM_PROMPT, build_instructions


class TestInstructions:
    def test_instructions_are_fixed(self):
        assert build_instructions() == build_instructions()
        assert PROMPT_VERSION

    def test_instructions_demand_single_json_object(self):
        text = SYSTEM_PROMPT + build_instructions()
        for member in ("data_schema", "markdown_template", "html_template"):
            assert member in text
        assert "{{key}}" in build_instructions()
        assert "@page { size: A4; margin: 10mm }" in build_instructions()

    def test_image_is_sent_as_data_url(self, settings):
        submission = check_submission("image/png", b64(PNG_BYTES), settings)
        messages = build_messages(submission)

        parts = messages[1]["content"]
        assert parts[1]["type"] == "image_url"
        assert parts[1]["image_url"]["url"].startswith("data:image/png;base64,")

    def test_pdf_is_sent_as_file_part(self, settings):
        submission = check_submission("application/pdf", b64(b"%PDF-1.4 test"), settings)
        parts = build_messages(submission)[1]["content"]
        assert parts[1]["type"] == "file"
        assert parts[1]["file"]["file_data"].startswith("data:application/pdf;base64,")


class TestRequestEnvelope:
    @pytest.mark.asyncio
    async def test_returns_raw_text_and_uses_tier_model(self, settings, envelope_json):
        client = make_llm_client("  " + envelope_json + "\n")
        submission = check_submission("image/png", b64(PNG_BYTES), settings, model="high_fidelity")

        raw = await request_envelope(submission, settings, llm_client=client)

        assert raw == envelope_json
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "pro-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert submission.tier is ModelTier.HIGH_FIDELITY

    @pytest.mark.asyncio
    async def test_prose_around_json_is_shape_error(self, settings, envelope_json):
        client = make_llm_client("Here you go:\n" + envelope_json)
        submission = check_submission("image/png", b64(PNG_BYTES), settings)

        with pytest.raises(ResponseShapeError):
            await request_envelope(submission, settings, llm_client=client)

    @pytest.mark.asyncio
    async def test_code_fence_is_shape_error(self, settings, envelope_json):
        client = make_llm_client("```json\n" + envelope_json + "\n```")
        submission = check_submission("image/png", b64(PNG_BYTES), settings)

        with pytest.raises(ResponseShapeError):
            await request_envelope(submission, settings, llm_client=client)

    @pytest.mark.asyncio
    async def test_empty_answer_is_shape_error(self, settings):
        client = make_llm_client(None)
        submission = check_submission("image/png", b64(PNG_BYTES), settings)

        with pytest.raises(ResponseShapeError):
            await request_envelope(submission, settings, llm_client=client)

    @pytest.mark.asyncio
    async def test_connection_failure_is_upstream_error_without_retry(self, settings):
        failure = openai.APIConnectionError(request=httpx.Request("POST", "http://llm.test/v1/chat/completions"))
        client = make_llm_client(side_effect=failure)
        submission = check_submission("image/png", b64(PNG_BYTES), settings)

        with pytest.raises(UpstreamServiceError):
            await request_envelope(submission, settings, llm_client=client)

        assert client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_status_error_is_upstream_error(self, settings):
        request = httpx.Request("POST", "http://llm.test/v1/chat/completions")
        failure = openai.InternalServerError(
            "boom",
            response=httpx.Response(500, request=request),
            body=None,
        )
        client = make_llm_client(side_effect=failure)
        submission = check_submission("image/png", b64(PNG_BYTES), settings)

        with pytest.raises(UpstreamServiceError):
            await request_envelope(submission, settings, llm_client=client)


class TestAnalyzeDocument:
    @pytest.mark.asyncio
    async def test_full_pipeline(self, settings, llm_client):
        envelope = await analyze_document("image/png", b64(PNG_BYTES), settings, llm_client=llm_client)

        assert envelope.title == "Temperature log"
        assert envelope.fields[0].key == "temp"

    @pytest.mark.asyncio
    async def test_missing_render_template_returns_nothing(self, settings):
        payload = make_envelope()
        del payload["html_template"]
        client = make_llm_client(json.dumps(payload))

        with pytest.raises(ResponseShapeError):
            await analyze_document("image/png", b64(PNG_BYTES), settings, llm_client=client)
