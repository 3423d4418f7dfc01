"""Procedural records derived from the field schema.

Used when every backend strategy has failed. Values are a pure function
of ``(field, index)``: enums cycle through their values, numeric fields
step through their range, patterned strings expand the pattern. The
output is repetitive, but producing it cannot time out or fail.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from faux_foundry.core.types import Record
from faux_foundry.retry.patterns import PatternError, expand_pattern
from faux_foundry.spec.models import FieldSpec, FieldType, Specification

logger = logging.getLogger(__name__)

_ANCHOR = datetime(2024, 1, 1, tzinfo=UTC)
_UUID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://faux-foundry.dev/fallback")
_PATTERNED_TYPES = frozenset(
    {FieldType.STRING, FieldType.TEXT, FieldType.EMAIL, FieldType.PHONE, FieldType.URL}
)


def synthesize_records(spec: Specification, count: int, start: int = 0) -> list[Record]:
    """Return ``count`` records for indexes ``start .. start + count - 1``."""
    return [
        {field.name: synthesize_value(field, i) for field in spec.dataset.fields}
        for i in range(start, start + count)
    ]


def synthesize_value(field: FieldSpec, i: int) -> Any:
    if field.pattern and field.type in _PATTERNED_TYPES:
        try:
            return expand_pattern(field.pattern, i)
        except PatternError as exc:
            logger.debug("Pattern %r not expandable: %s", field.pattern, exc)

    match field.type:
        case FieldType.STRING:
            return f"fallback_{field.name}_{i}"
        case FieldType.TEXT:
            return f"Fallback {field.name.replace('_', ' ')} number {i}."
        case FieldType.EMAIL:
            return f"user{i}@example.com"
        case FieldType.URL:
            return f"https://example.com/{field.name}/{i}"
        case FieldType.UUID:
            return str(uuid.uuid5(_UUID_NAMESPACE, f"{field.name}:{i}"))
        case FieldType.PHONE:
            return f"+1-555-{(i // 10000) % 1000:03d}-{i % 10000:04d}"
        case FieldType.INTEGER:
            if field.range:
                lo, hi = field.range
                return lo + i % (hi - lo)
            return i + 1
        case FieldType.FLOAT:
            if field.range:
                lo, hi = field.range
                return round(lo + (i % 100) / 100.0 * (hi - lo), 4)
            return i + 0.5
        case FieldType.BOOLEAN:
            return i % 2 == 0
        case FieldType.ENUM:
            values = field.values or []
            return values[i % len(values)] if values else None
        case FieldType.DATE:
            return (_ANCHOR - timedelta(days=i)).date().isoformat()
        case FieldType.DATETIME:
            return (_ANCHOR - timedelta(hours=i)).isoformat()
        case FieldType.TIME:
            return f"{(i // 60) % 24:02d}:{i % 60:02d}:00"
        case FieldType.OBJECT:
            return {"index": i}
        case FieldType.ARRAY:
            return [f"item_{i}_1", f"item_{i}_2"]
    return f"fallback_{field.type}_{i}"

