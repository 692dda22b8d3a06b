"""
Instruction set sent to the extraction model with every document.

Bump PROMPT_VERSION whenever the text changes so results can be traced back
to the instructions that produced them.
"""

from __future__ import annotations

from .models import FIELD_TYPES

PROMPT_VERSION = "2024.09-r3"

SYSTEM_PROMPT = """You are an expert in reverse-engineering scanned manufacturing logs into structured, reusable digital templates.
Your absolute priority is to faithfully preserve the original page's layout, spacing, and visual style.
Never modernize or beautify the design. Be literal and conservative.

Produce three artifacts in order: data_schema, then markdown_template, then html_template.
When writing html_template, do not look at the image/PDF again; build it only from the first two artifacts.

OUTPUT FORMAT:
- Output exactly ONE valid JSON object and nothing else.
- No prose, no explanations, no code fences.
- The object has exactly three top-level members: "data_schema", "markdown_template", "html_template"."""

_SCHEMA_STEP = """STEP 1 - data_schema
Analyse the uploaded manufacturing log and describe every data field, in the original visual order:
{{
  "data_schema": {{
    "title": "short name of the original document",
    "fields": [
      {{
        "key": "identifier without spaces or special characters, based on the original label",
        "label": "original label text (any language, spaces allowed)",
        "type": "{types}",
        "required": true | false,
        "order": <integer position in the original visual order>,
        "enum": ["choice 1", "choice 2"],
        "unit": "unit of measure, if any",
        "format": "date|time|datetime|regex|none",
        "group": "section or table name, if any",
        "notes": "reasoning behind uncertain guesses, if any"
      }}
    ]
  }}
}}
Rules:
- Every key is unique.
- Express checkboxes, radio buttons, signature boxes and total rows with the closest type.
- When unsure, choose the conservative type and explain in notes."""

_MARKDOWN_STEP = """STEP 2 - markdown_template
Describe the original layout as pure Markdown. HTML tags are forbidden.
- Headings: only #, ## and ###
- Tables: pipe syntax only; column width hints may follow a header name in parentheses, e.g. | Item(40%) | Check(20%) | Remarks(40%) |
- Emphasis: bold and italic only
- Rules: ---
- Lists: - and 1.
- Placeholders: {{{{key}}}} where key is one of data_schema.fields[].key
- Checkboxes: [ ] or [x] only
- Keep the original section order, table structure, labels and cell placement.
- Sections and tables appear in the same order as the fields' "order" values."""

_HTML_STEP = """STEP 3 - html_template
Using only data_schema and markdown_template, produce a Vanilla CSS html_template that looks as close to the original as possible.
- Root container: white background, black text, e.g. <div style="min-height: 100vh; background: white; color: black;"> ... </div>
- Inline styles or a <style> element only.
- Every data slot keeps its {{{{key}}}} placeholder for later substitution.
- Map the Markdown headings, tables, rules and lists faithfully; turn the % width hints into CSS width.
- Checkboxes and radios become <input type="checkbox"> / <input type="radio"> with the placeholder kept as the value.
- Include print styles: @media print {{ @page {{ size: A4; margin: 10mm }} }}
- Do not rearrange or decorate anything the Markdown does not describe."""

_CHECKS = """SELF-CHECK BEFORE ANSWERING:
- Every {{{{key}}}} in both templates exists in data_schema.fields[].key. Unknown placeholders are not allowed.
- Table and section order in html_template matches markdown_template.
- The answer starts with {{ and ends with }}."""


def build_instructions() -> str:
    """Full user-side instruction text for one extraction request."""
    parts = [
        _SCHEMA_STEP.format(types="|".join(FIELD_TYPES)),
        _MARKDOWN_STEP.format(),
        _HTML_STEP.format(),
        _CHECKS.format(),
    ]
    return "\n\n--------------------------------\n".join(parts)
