"""Tests for envelope parsing and placeholder integrity."""

import json

import pytest

from conftest import make_envelope
from logform.errors import ResponseShapeError
from logform.services.analysis import extract_placeholders, validate_envelope

TWO_FIELDS = [
    {"key": "batch_no", "label": "Batch No.", "type": "string", "order": 1, "required": True},
    {"key": "temp", "label": "Temperature", "type": "number", "order": 2, "unit": "°C"},
]


def _raw(**kwargs) -> str:
    return json.dumps(make_envelope(**kwargs), ensure_ascii=False)


class TestValidateEnvelope:
    def test_valid_envelope(self):
        envelope = validate_envelope(_raw())

        assert envelope.title == "Temperature log"
        assert [f.key for f in envelope.fields] == ["temp"]
        assert envelope.fields[0].type == "number"
        assert "{{temp}}" in envelope.html_template

    def test_fields_are_sorted_by_order(self):
        fields = [dict(TWO_FIELDS[1], order=20), dict(TWO_FIELDS[0], order=10)]
        envelope = validate_envelope(
            _raw(fields=fields, markdown="{{batch_no}} {{temp}}", html="{{batch_no}}{{temp}}")
        )
        assert [f.key for f in envelope.fields] == ["batch_no", "temp"]

    def test_enum_choices_serialize_under_enum_key(self):
        fields = [
            {"key": "result", "label": "Result", "type": "radio", "order": 1, "enum": ["OK", "NG"]},
        ]
        envelope = validate_envelope(_raw(fields=fields, markdown="{{result}}", html="{{result}}"))

        assert envelope.fields[0].choices == ["OK", "NG"]
        assert envelope.to_response()["data_schema"]["fields"][0]["enum"] == ["OK", "NG"]

    @pytest.mark.parametrize("member", ["data_schema", "markdown_template", "html_template"])
    def test_missing_member_is_rejected(self, member):
        payload = make_envelope()
        del payload[member]
        with pytest.raises(ResponseShapeError):
            validate_envelope(json.dumps(payload))

    def test_blank_render_template_is_rejected(self):
        with pytest.raises(ResponseShapeError):
            validate_envelope(_raw(html="   "))

    def test_missing_title_is_rejected(self):
        with pytest.raises(ResponseShapeError):
            validate_envelope(_raw(title=""))

    def test_invalid_json_is_rejected(self):
        with pytest.raises(ResponseShapeError):
            validate_envelope('{"data_schema": ')

    def test_array_schema_is_rejected(self):
        payload = make_envelope()
        payload["data_schema"] = [{"name": "temp", "type": "number"}]
        with pytest.raises(ResponseShapeError):
            validate_envelope(json.dumps(payload))

    @pytest.mark.parametrize("missing", ["key", "label", "type", "order"])
    def test_field_without_required_attribute_is_rejected(self, missing):
        field = {"key": "temp", "label": "Temperature", "type": "number", "order": 1}
        del field[missing]
        with pytest.raises(ResponseShapeError):
            validate_envelope(_raw(fields=[field]))

    def test_unknown_field_type_is_rejected(self):
        field = {"key": "temp", "label": "Temperature", "type": "signature_pad", "order": 1}
        with pytest.raises(ResponseShapeError):
            validate_envelope(_raw(fields=[field]))

    def test_key_with_spaces_is_rejected(self):
        field = {"key": "batch no", "label": "Batch", "type": "string", "order": 1}
        with pytest.raises(ResponseShapeError):
            validate_envelope(_raw(fields=[field], markdown="x", html="x"))

    def test_duplicate_keys_are_rejected(self):
        fields = [TWO_FIELDS[1], dict(TWO_FIELDS[1], order=3)]
        with pytest.raises(ResponseShapeError) as exc_info:
            validate_envelope(_raw(fields=fields))
        assert "temp" in exc_info.value.detail


class TestPlaceholderIntegrity:
    def test_unknown_placeholder_in_layout_is_rejected(self):
        with pytest.raises(ResponseShapeError) as exc_info:
            validate_envelope(_raw(markdown="| {{temp}} | {{operator}} |"))
        assert "operator" in exc_info.value.detail

    def test_unknown_placeholder_in_render_template_is_rejected(self):
        with pytest.raises(ResponseShapeError):
            validate_envelope(_raw(html="<div>{{temp}} {{ signature }}</div>"))

    def test_out_of_order_layout_is_rejected(self):
        with pytest.raises(ResponseShapeError):
            validate_envelope(
                _raw(fields=TWO_FIELDS, markdown="{{temp}}\n{{batch_no}}", html="{{batch_no}}{{temp}}")
            )

    def test_out_of_order_render_template_is_rejected(self):
        with pytest.raises(ResponseShapeError) as exc_info:
            validate_envelope(
                _raw(
                    fields=TWO_FIELDS,
                    markdown="{{batch_no}} {{temp}}",
                    html="<div>{{temp}}</div><div>{{batch_no}}</div>",
                )
            )
        assert exc_info.value.detail.startswith("html_template")

    def test_out_of_order_layout_allowed_when_not_enforced(self):
        envelope = validate_envelope(
            _raw(fields=TWO_FIELDS, markdown="{{temp}}\n{{batch_no}}", html="{{batch_no}}{{temp}}"),
            enforce_order=False,
        )
        assert len(envelope.fields) == 2

    def test_repeated_placeholders_are_allowed(self):
        envelope = validate_envelope(
            _raw(fields=TWO_FIELDS, markdown="{{batch_no}} {{temp}} {{batch_no}}", html="{{temp}}")
        )
        assert len(envelope.fields) == 2

    def test_extract_placeholders_trims_whitespace(self):
        assert extract_placeholders("a {{ temp }} b {{batch_no}} {{temp}}") == ["temp", "batch_no", "temp"]
