"""Value types of the document-analysis pipeline."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FIELD_TYPES = (
    "string",
    "number",
    "boolean",
    "date",
    "time",
    "datetime",
    "enum",
    "textarea",
    "checkbox",
    "radio",
)

# word characters only, so keys are usable as placeholders and column names
KEY_PATTERN = r"^\w+$"


class ModelTier(str, Enum):
    FAST = "fast"
    HIGH_FIDELITY = "high_fidelity"


class FieldDefinition(BaseModel):
    """One inferred data point of the source document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., min_length=1, max_length=63, pattern=KEY_PATTERN)
    label: str
    type: str
    required: bool = False
    order: int
    choices: Optional[List[str]] = Field(default=None, alias="enum")
    unit: Optional[str] = None
    format: Optional[str] = None
    group: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            if value not in FIELD_TYPES:
                raise ValueError(f"unsupported field type '{value}'")
        return value

    @field_validator("choices", mode="before")
    @classmethod
    def _normalize_choices(cls, value: object) -> object:
        if value is None or value == "":
            return None
        if isinstance(value, list):
            return [str(item) for item in value]
        return value


class DataSchema(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    fields: List[FieldDefinition]


class AnalysisEnvelope(BaseModel):
    """The schema, layout template and render template of one document."""

    model_config = ConfigDict(frozen=True)

    data_schema: DataSchema
    markdown_template: str = Field(..., min_length=1)
    html_template: str = Field(..., min_length=1)

    @property
    def title(self) -> str:
        return self.data_schema.title

    @property
    def fields(self) -> List[FieldDefinition]:
        return self.data_schema.fields

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
