"""Prompt construction and response parsing for text-generation backends."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator

from faux_foundry.core.types import Record
from faux_foundry.spec.models import Specification

logger = logging.getLogger(__name__)

# Share of required fields a parsed record must carry to be kept.
REQUIRED_FIELD_RATIO = 0.8

_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")

_REQUIREMENTS = """
Requirements:
- Each record must be unique
- Output only valid JSON objects, one per line
- Follow the field constraints exactly
- Make the data realistic and diverse
- Do not include any explanatory text

Generate the records now:"""


def build_prompt(spec: Specification, count: int) -> str:
    lines = [
        f"Generate {count} unique JSON records for {spec.dataset.domain}.",
        "",
        "Each record should be a valid JSON object with the following fields:",
    ]
    for field in spec.dataset.fields:
        line = f"- {field.name} ({field.type.value})"
        if field.required:
            line += " [required]"
        if field.description:
            line += f": {field.description}"
        if field.pattern:
            line += f" (pattern: {field.pattern})"
        if field.range:
            line += f" (range: {field.range[0]}-{field.range[1]})"
        if field.values:
            line += f" (values: {', '.join(field.values)})"
        lines.append(line)
    return "\n".join(lines) + "\n" + _REQUIREMENTS


def parse_records(text: str, spec: Specification) -> list[Record]:
    """Extract JSON object records from free-form model output.

    Every top-level ``{...}`` in the text is a candidate, so one object
    per line, concatenated objects, fenced code blocks and JSON arrays
    all work; surrounding prose is ignored. Objects that fail to parse,
    even after trailing-comma repair, or that miss too many required
    fields, are skipped.
    """
    records: list[Record] = []
    skipped = 0
    for chunk in _top_level_objects(text):
        parsed = _try_parse_object(chunk)
        if parsed is not None and _has_required(parsed, spec):
            records.append(parsed)
        else:
            skipped += 1
    if skipped:
        logger.debug("Skipped %d unparseable or incomplete objects", skipped)
    return records


def _top_level_objects(text: str) -> Iterator[str]:
    """Yield brace-balanced substrings whose opening brace is not nested.

    A ``[`` enclosing objects is not counted as nesting, so the elements
    of a top-level array are yielded individually.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            if depth > 0:
                in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start : i + 1]


def _try_parse_object(chunk: str) -> dict | None:
    for candidate in (chunk, _TRAILING_COMMA_RE.sub(r"\1", chunk)):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        return data if isinstance(data, dict) else None
    return None


def _has_required(record: dict, spec: Specification) -> bool:
    required = spec.dataset.required_fields
    if not required:
        return len(record) > 0
    present = sum(1 for f in required if f.name in record)
    return present / len(required) >= REQUIRED_FIELD_RATIO
