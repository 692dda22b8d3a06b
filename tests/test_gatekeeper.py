"""Tests for document type/size gatekeeping."""

import pytest

from conftest import PNG_BYTES, b64, make_llm_client
from logform.errors import InputValidationError, PayloadTooLargeError
from logform.services.analysis import ModelTier, analyze_document, check_submission


class TestCheckSubmission:
    @pytest.mark.parametrize(
        "mime_type",
        ["image/jpeg", "image/jpg", "image/png", "image/webp", "application/pdf"],
    )
    def test_accepts_allowed_types_at_ceiling(self, settings, mime_type):
        data = b"x" * settings.max_document_bytes

        submission = check_submission(mime_type, b64(data), settings)

        assert submission.size_bytes == settings.max_document_bytes
        assert submission.tier is ModelTier.FAST

    def test_jpg_alias_is_normalized(self, settings):
        submission = check_submission("image/jpg", b64(PNG_BYTES), settings)
        assert submission.mime_type == "image/jpeg"
        assert submission.data_url.startswith("data:image/jpeg;base64,")

    @pytest.mark.parametrize("mime_type", ["image/gif", "text/html", "", "application/zip"])
    def test_rejects_unsupported_types(self, settings, mime_type):
        with pytest.raises(InputValidationError) as exc_info:
            check_submission(mime_type, b64(PNG_BYTES), settings)
        assert exc_info.value.status_code == 400

    def test_rejects_decoded_size_over_ceiling(self, settings):
        data = b"x" * (settings.max_document_bytes + 1)
        with pytest.raises(PayloadTooLargeError) as exc_info:
            check_submission("image/png", b64(data), settings)
        assert exc_info.value.status_code == 413

    def test_rejects_base64_length_over_ceiling(self, settings):
        with pytest.raises(PayloadTooLargeError):
            check_submission("image/png", "A" * (settings.max_base64_chars + 4), settings)

    def test_rejects_invalid_base64(self, settings):
        with pytest.raises(InputValidationError) as exc_info:
            check_submission("image/png", "not base64!!", settings)
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize(
        "model, expected",
        [
            (None, ModelTier.FAST),
            ("fast", ModelTier.FAST),
            ("high_fidelity", ModelTier.HIGH_FIDELITY),
            ("fast-model", ModelTier.FAST),
            ("pro-model", ModelTier.HIGH_FIDELITY),
        ],
    )
    def test_resolves_model_tier(self, settings, model, expected):
        submission = check_submission("image/png", b64(PNG_BYTES), settings, model=model)
        assert submission.tier is expected

    def test_rejects_unknown_model(self, settings):
        with pytest.raises(InputValidationError):
            check_submission("image/png", b64(PNG_BYTES), settings, model="gpt-unknown")


class TestNoCollaboratorCallOnRejection:
    @pytest.mark.asyncio
    async def test_oversized_document_never_reaches_model(self, settings, envelope_json):
        client = make_llm_client(envelope_json)
        data = b"x" * (settings.max_document_bytes + 1)

        with pytest.raises(PayloadTooLargeError):
            await analyze_document("image/png", b64(data), settings, llm_client=client)

        assert client.chat.completions.create.await_count == 0

    @pytest.mark.asyncio
    async def test_bad_mime_never_reaches_model(self, settings, envelope_json):
        client = make_llm_client(envelope_json)

        with pytest.raises(InputValidationError):
            await analyze_document("image/gif", b64(PNG_BYTES), settings, llm_client=client)

        assert client.chat.completions.create.await_count == 0

    @pytest.mark.asyncio
    async def test_document_at_ceiling_reaches_model_once(self, settings, envelope_json):
        client = make_llm_client(envelope_json)
        data = b"x" * settings.max_document_bytes

        await analyze_document("image/png", b64(data), settings, llm_client=client)

        assert client.chat.completions.create.await_count == 1
